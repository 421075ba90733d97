"""
Input Validation Service.

Pure checks for the three identity fields of a generation request. Each check
returns a ValidationOutcome; the request-level helper raises on the first
rejection so no workspace is ever created for invalid input.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from ...core.exceptions import ValidationError

APP_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_]+$")
APP_NAME_MIN_LENGTH = 2
APP_NAME_MAX_LENGTH = 50

URL_FORBIDDEN_CHARS = re.compile(r"['\"`\s]")
URL_MISSING_SLASHES = re.compile(r"^https?:[^/]", re.IGNORECASE)
HOSTNAME_PATTERN = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
TLD_PATTERN = re.compile(r"^[a-zA-Z]{2,}$")
LOOPBACK_HOSTS = ("localhost", "127.0.0.1")

PACKAGE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$")
PACKAGE_MIN_SEGMENTS = 3
PACKAGE_MAX_SEGMENTS = 5
RESERVED_PACKAGE_PREFIXES = ("com.android", "com.google", "java", "javax")
RESERVED_PACKAGE_WORDS = ("android", "java", "javax")

PACKAGE_FORMAT_MESSAGE = (
    "Package name must follow Java package naming conventions:\n"
    "• Must start with a lowercase letter\n"
    "• Can contain lowercase letters, numbers, and underscores\n"
    "• Must have at least one dot (e.g., com.company.appname)\n"
    "• Each part must start with a letter\n"
    "Example: com.yourcompany.appname"
)


class ValidationOutcome(BaseModel):
    """Acceptance (possibly with a warning) or rejection with a reason."""

    is_valid: bool
    message: str | None = Field(default=None, description="Rejection reason")
    warning: str | None = Field(default=None, description="Non-fatal note on acceptance")

    @classmethod
    def accept(cls, warning: str | None = None) -> ValidationOutcome:
        return cls(is_valid=True, warning=warning)

    @classmethod
    def reject(cls, message: str) -> ValidationOutcome:
        return cls(is_valid=False, message=message)


def validate_app_name(app_name: Any) -> ValidationOutcome:
    """Check the display name: 2-50 letters, digits, spaces, hyphens, underscores."""
    if not app_name or not isinstance(app_name, str):
        return ValidationOutcome.reject("App name is required and must be a string")

    if not APP_NAME_MIN_LENGTH <= len(app_name) <= APP_NAME_MAX_LENGTH:
        return ValidationOutcome.reject(
            f"App name must be between {APP_NAME_MIN_LENGTH} and {APP_NAME_MAX_LENGTH} characters"
        )

    if not APP_NAME_PATTERN.match(app_name):
        return ValidationOutcome.reject(
            "App name can only contain letters, numbers, spaces, hyphens, and underscores"
        )

    return ValidationOutcome.accept()


def validate_website_url(url: Any) -> ValidationOutcome:
    """Check the website URL.

    Loopback hosts are accepted with a warning since the shell can only reach
    them from an emulator or a device on the same machine.
    """
    if not url or not isinstance(url, str):
        return ValidationOutcome.reject("Website URL is required")

    if URL_FORBIDDEN_CHARS.search(url):
        return ValidationOutcome.reject(
            "Website URL contains invalid characters (quotes, spaces not allowed)"
        )

    if URL_MISSING_SLASHES.match(url):
        return ValidationOutcome.reject(
            "Invalid URL format. Use https:// or http:// (e.g., https://example.com)"
        )

    invalid_format = ValidationOutcome.reject(
        "Invalid URL format. Please enter a valid website URL (e.g., https://example.com)"
    )
    try:
        parts = urlsplit(url)
        hostname = parts.hostname or ""
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return invalid_format

    if not parts.scheme:
        return invalid_format

    if parts.scheme.lower() not in ("http", "https"):
        return ValidationOutcome.reject("Website URL must use HTTP or HTTPS protocol")

    if len(hostname) < 3:
        return ValidationOutcome.reject("Website URL must have a valid hostname")

    if hostname in LOOPBACK_HOSTS:
        return ValidationOutcome.accept(
            warning="Warning: Using localhost URL - this will only work for local testing"
        )

    if "." not in hostname:
        return ValidationOutcome.reject(
            "Website URL must have a valid domain with extension (e.g., example.com)"
        )

    if not HOSTNAME_PATTERN.match(hostname):
        return ValidationOutcome.reject(
            "Website URL must have a valid domain name (e.g., example.com)"
        )

    if not TLD_PATTERN.match(hostname.rsplit(".", 1)[-1]):
        return ValidationOutcome.reject(
            "Website URL must have a valid domain extension (e.g., .com, .org, .net)"
        )

    return ValidationOutcome.accept()


def validate_package_name(package_name: Any) -> ValidationOutcome:
    """Check the reverse-domain identifier: 3-5 segments, no reserved namespaces."""
    if not package_name or not isinstance(package_name, str):
        return ValidationOutcome.reject("Package name is required")

    if not PACKAGE_PATTERN.match(package_name):
        return ValidationOutcome.reject(PACKAGE_FORMAT_MESSAGE)

    segments = package_name.split(".")
    if len(segments) < PACKAGE_MIN_SEGMENTS:
        return ValidationOutcome.reject(
            "Package name must have at least 3 parts separated by dots (e.g., com.company.appname)"
        )

    if len(segments) > PACKAGE_MAX_SEGMENTS:
        return ValidationOutcome.reject(
            "Package name should not have more than 5 parts for simplicity"
        )

    for prefix in RESERVED_PACKAGE_PREFIXES:
        if package_name == prefix or package_name.startswith(prefix + "."):
            return ValidationOutcome.reject(f"Package name cannot start with reserved prefix: {prefix}")

    for segment in segments:
        if segment in RESERVED_PACKAGE_WORDS:
            return ValidationOutcome.reject(f"Package name cannot use reserved word: {segment}")

    return ValidationOutcome.accept()


def validate_generation_request(app_name: Any, website_url: Any, package_name: Any) -> list[str]:
    """Validate all identity fields in order.

    Returns:
        Warnings produced by accepted fields

    Raises:
        ValidationError: On the first rejected field, naming the field and reason
    """
    checks = (
        ("appName", "Invalid app name", validate_app_name, app_name),
        ("websiteUrl", "Invalid website URL", validate_website_url, website_url),
        ("packageName", "Invalid package name", validate_package_name, package_name),
    )

    warnings: list[str] = []
    for field_name, label, check, value in checks:
        outcome = check(value)
        if not outcome.is_valid:
            raise ValidationError(
                message=outcome.message or label,
                field_name=field_name,
                context={"error": label},
            )
        if outcome.warning:
            warnings.append(outcome.warning)
    return warnings
