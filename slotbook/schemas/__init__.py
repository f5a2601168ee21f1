"""Request and response schemas for the HTTP layer."""
