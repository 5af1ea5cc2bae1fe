"""Custom exception hierarchy for eidas-csr.

All exceptions inherit from EidasError for consistent handling.
Each exception maps to an HTTP status code for REST API responses.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class EidasError(Exception):
    """Base exception for all eidas-csr errors.

    Attributes:
        message: Human-readable error description.
        http_status: HTTP status code for REST API responses.
        details: Additional context for audit logging.
    """

    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        details: Mapping[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error description.
            details: Additional context for audit logging.
        """
        super().__init__(message)
        self.message = message
        self.details = dict(details) if details else {}

    def to_audit_dict(self) -> dict[str, str | int | bool | None]:
        """Return dictionary suitable for audit logging.

        Returns:
            Dictionary with exception type, message, and details.
        """
        return {
            "exception_type": self.__class__.__name__,
            "message": self.message,
            **self.details,
        }


class UnknownCountryCodeError(EidasError):
    """No competent authority is registered for a country code.

    HTTP Status: 404 Not Found
    """

    http_status = HTTPStatus.NOT_FOUND

    @classmethod
    def for_code(cls, code: str) -> UnknownCountryCodeError:
        """Create exception for an unregistered country code.

        Args:
            code: The ISO 3166-1 alpha-2 code that was looked up.

        Returns:
            UnknownCountryCodeError instance.
        """
        return cls(f"Unknown country code: {code}", details={"country_code": code})


class UnknownRoleError(EidasError):
    """PSP role token outside the closed role set.

    HTTP Status: 400 Bad Request
    """

    http_status = HTTPStatus.BAD_REQUEST

    @classmethod
    def for_role(cls, role: str) -> UnknownRoleError:
        """Create exception for an unrecognised role token.

        Args:
            role: The rejected role token.

        Returns:
            UnknownRoleError instance.
        """
        return cls(f"Unknown role: {role}", details={"role": role})


class UnknownFlavorError(EidasError):
    """Certificate flavor is neither QWAC nor QSEAL.

    HTTP Status: 400 Bad Request
    """

    http_status = HTTPStatus.BAD_REQUEST

    @classmethod
    def for_flavor(cls, flavor: object) -> UnknownFlavorError:
        """Create exception for an unrecognised certificate flavor.

        Args:
            flavor: The rejected flavor value.

        Returns:
            UnknownFlavorError instance.
        """
        return cls(f"Unknown QC type: {flavor}", details={"flavor": str(flavor)})


class EncodingError(EidasError):
    """DER structure could not be built.

    HTTP Status: 500 Internal Server Error
    """

    http_status = HTTPStatus.INTERNAL_SERVER_ERROR

    @classmethod
    def failed(cls, *, structure: str, reason: str) -> EncodingError:
        """Create exception for an encoding failure.

        Args:
            structure: Name of the structure being encoded.
            reason: Why encoding failed.

        Returns:
            EncodingError instance.
        """
        return cls(
            f"Failed to encode {structure}: {reason}",
            details={"structure": structure, "reason": reason},
        )


class DecodingError(EidasError):
    """Input is not the expected DER structure.

    HTTP Status: 400 Bad Request
    """

    http_status = HTTPStatus.BAD_REQUEST

    @classmethod
    def failed(cls, *, structure: str, reason: str) -> DecodingError:
        """Create exception for malformed or unexpected DER input.

        Args:
            structure: Name of the structure being decoded.
            reason: Why decoding failed.

        Returns:
            DecodingError instance.
        """
        return cls(
            f"Failed to decode {structure}: {reason}",
            details={"structure": structure, "reason": reason},
        )


class RequestValidationError(EidasError):
    """Request inputs failed policy validation.

    HTTP Status: 400 Bad Request
    """

    http_status = HTTPStatus.BAD_REQUEST

    @classmethod
    def missing_required_field(cls, *, field: str) -> RequestValidationError:
        """Create exception for a missing required input.

        Args:
            field: The missing field name.

        Returns:
            RequestValidationError instance.
        """
        return cls(f"Missing required field: {field}", details={"validation_phase": "inputs", "field": field})

    @classmethod
    def policy_violation(cls, *, reason: str) -> RequestValidationError:
        """Create exception for generic policy violation.

        Args:
            reason: Description of the policy violation(s).

        Returns:
            RequestValidationError instance.
        """
        return cls(
            f"Request policy validation failed: {reason}",
            details={"validation_phase": "policy", "reason": reason},
        )


class RequestSigningError(EidasError):
    """The certificate request could not be signed.

    HTTP Status: 500 Internal Server Error
    """

    http_status = HTTPStatus.INTERNAL_SERVER_ERROR

    @classmethod
    def unsupported_key(cls, *, key_type: str) -> RequestSigningError:
        """Create exception for a key that cannot sign requests.

        Args:
            key_type: Name of the rejected key class.

        Returns:
            RequestSigningError instance.
        """
        return cls(f"Unsupported signing key type: {key_type}", details={"key_type": key_type})

    @classmethod
    def signing_failed(cls, *, reason: str) -> RequestSigningError:
        """Create exception for a failed signature operation.

        Args:
            reason: Why signing failed.

        Returns:
            RequestSigningError instance.
        """
        return cls(f"Failed to generate csr: {reason}", details={"phase": "signing", "reason": reason})


class ConfigurationError(EidasError):
    """Configuration error.

    HTTP Status: 500 Internal Server Error (startup failure)
    """

    http_status = HTTPStatus.INTERNAL_SERVER_ERROR

    @classmethod
    def invalid_config(cls, *, field: str, reason: str) -> ConfigurationError:
        """Create exception for invalid configuration.

        Args:
            field: The configuration field with the error.
            reason: Why the configuration is invalid.

        Returns:
            ConfigurationError instance.
        """
        return cls(f"Invalid configuration for '{field}': {reason}", details={"field": field, "reason": reason})


class OutputError(EidasError):
    """Generated request or key could not be written.

    HTTP Status: 500 Internal Server Error
    """

    http_status = HTTPStatus.INTERNAL_SERVER_ERROR

    @classmethod
    def write_failed(cls, *, path: str, reason: str) -> OutputError:
        """Create exception for a failed file write.

        Args:
            path: Destination that could not be written.
            reason: Why the write failed.

        Returns:
            OutputError instance.
        """
        return cls(f"Failed to write {path}: {reason}", details={"path": path, "reason": reason})
