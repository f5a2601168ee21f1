"""Availability-constrained booking scheduler."""

__version__ = "0.1.0"
