"""Input validation."""

from .service import (
    ValidationOutcome,
    validate_app_name,
    validate_generation_request,
    validate_package_name,
    validate_website_url,
)

__all__ = [
    "ValidationOutcome",
    "validate_app_name",
    "validate_generation_request",
    "validate_package_name",
    "validate_website_url",
]
