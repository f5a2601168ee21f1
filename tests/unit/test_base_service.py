from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from slotbook.core.exceptions import ServiceException
from slotbook.services.base import BaseService


class _SampleService(BaseService):
    @BaseService.measure_operation("sample")
    def sample(self, fail: bool = False) -> str:
        if fail:
            raise ValueError("boom")
        return "ok"


@pytest.fixture(autouse=True)
def _reset_metrics():
    BaseService._class_metrics.pop("_SampleService", None)
    yield
    BaseService._class_metrics.pop("_SampleService", None)


def test_measure_operation_records_success_and_failure():
    service = _SampleService(MagicMock())

    assert service.sample() == "ok"
    with pytest.raises(ValueError):
        service.sample(fail=True)

    metrics = service.get_metrics()["sample"]
    assert metrics["count"] == 2
    assert metrics["success_rate"] == 0.5
    assert metrics["max_time"] >= 0.0


def test_get_metrics_is_empty_before_any_call():
    assert _SampleService(MagicMock()).get_metrics() == {}


def test_transaction_commits_on_success():
    session = MagicMock()
    service = _SampleService(session)

    with service.transaction():
        pass

    session.commit.assert_called_once()
    session.rollback.assert_not_called()


def test_transaction_wraps_database_errors():
    session = MagicMock()
    session.commit.side_effect = OperationalError("COMMIT", {}, Exception("locked"))
    service = _SampleService(session)

    with pytest.raises(ServiceException):
        with service.transaction():
            pass

    session.rollback.assert_called_once()


def test_transaction_reraises_other_errors_after_rollback():
    session = MagicMock()
    service = _SampleService(session)

    with pytest.raises(KeyError):
        with service.transaction():
            raise KeyError("missing")

    session.rollback.assert_called_once()
    session.commit.assert_not_called()
