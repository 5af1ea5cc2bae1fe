"""Policy-based request validation.

Checks caller inputs before a request is assembled: required subject
fields, country code shape, allowed flavors, role presence, and the
caller's signing key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives.asymmetric import rsa

from eidas_csr.qcstatements.flavors import CertificateFlavor

if TYPE_CHECKING:
    from eidas_csr.config import ValidationConfig
    from eidas_csr.crypto.csr import SigningKey
    from eidas_csr.request import RequestDetails

_COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

_REQUIRED_FIELDS = ("country_code", "organization_name", "organization_id", "common_name")


@dataclass(frozen=True)
class ValidationResult:
    """Result of request validation."""

    valid: bool
    errors: tuple[str, ...]

    @classmethod
    def success(cls) -> ValidationResult:
        """Create successful validation result."""
        return cls(valid=True, errors=())

    @classmethod
    def failure(cls, *errors: str) -> ValidationResult:
        """Create failed validation result with errors."""
        return cls(valid=False, errors=errors)


def validate_request(
    details: RequestDetails,
    config: ValidationConfig,
    signing_key: SigningKey | None = None,
) -> ValidationResult:
    """Validate request inputs against policy configuration.

    Errors are collected rather than raised so every problem is reported at once.

    Args:
        details: Caller inputs.
        config: Validation policy configuration.
        signing_key: Caller-supplied key, if any.

    Returns:
        ValidationResult with valid flag and any error messages.
    """
    errors: list[str] = []

    errors.extend(_validate_required_fields(details))

    country_error = _validate_country_code(details)
    if country_error:
        errors.append(country_error)

    flavor_error = _validate_flavor(details, config)
    if flavor_error:
        errors.append(flavor_error)

    if config.require_roles and not details.roles:
        errors.append("At least one PSP role is required")

    if signing_key is not None:
        key_error = _validate_signing_key(signing_key, config)
        if key_error:
            errors.append(key_error)

    if errors:
        return ValidationResult.failure(*errors)
    return ValidationResult.success()


def _validate_required_fields(details: RequestDetails) -> list[str]:
    """Check that all subject inputs are non-empty."""
    errors: list[str] = []
    for field in _REQUIRED_FIELDS:
        if not getattr(details, field).strip():
            errors.append(f"Required field missing: {field}")
    return errors


def _validate_country_code(details: RequestDetails) -> str | None:
    """Country code must be two uppercase letters."""
    if not details.country_code:
        # Presence is reported by _validate_required_fields
        return None
    if not _COUNTRY_CODE_PATTERN.match(details.country_code):
        return f"Country code '{details.country_code}' is not two uppercase letters"
    return None


def _validate_flavor(details: RequestDetails, config: ValidationConfig) -> str | None:
    """Validate flavor against allowed flavors."""
    if not isinstance(details.flavor, CertificateFlavor):
        return f"Unknown QC type: {details.flavor}"

    if details.flavor not in config.allowed_flavors:
        allowed = ", ".join(flavor.value for flavor in config.allowed_flavors)
        return f"Certificate type {details.flavor.value} not in allowed types: {allowed}"

    return None


def _validate_signing_key(signing_key: SigningKey, config: ValidationConfig) -> str | None:
    """Validate key type and size."""
    if not isinstance(signing_key, rsa.RSAPrivateKey):
        return f"Unsupported key type: {type(signing_key).__name__}"

    if signing_key.key_size < config.min_key_size:
        return (
            f"Key size {signing_key.key_size} bits below minimum "
            f"{config.min_key_size} bits"
        )
    return None
