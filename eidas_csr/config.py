"""Configuration management for eidas-csr.

Loads configuration from YAML file and validates with Pydantic models.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from eidas_csr.exceptions import ConfigurationError
from eidas_csr.qcstatements.flavors import CertificateFlavor
from eidas_csr.qcstatements.roles import Role


class KeyConfig(BaseModel):
    """RSA key generation parameters."""

    model_config = ConfigDict(frozen=True)

    key_size: Annotated[int, Field(ge=1024, le=16384)] = 2048
    public_exponent: Annotated[int, Field(ge=3)] = 65537

    @field_validator("public_exponent")
    @classmethod
    def validate_exponent(cls, v: int) -> int:
        """RSA public exponents must be odd."""
        if v % 2 == 0:
            msg = f"Public exponent must be odd, got {v}"
            raise ValueError(msg)
        return v


class DefaultsConfig(BaseModel):
    """Defaults applied when the caller leaves roles or flavor unset."""

    model_config = ConfigDict(frozen=True)

    roles: list[Role] = [Role.ACCOUNT_INFORMATION]
    flavor: CertificateFlavor = CertificateFlavor.QWAC

    @field_validator("roles", mode="before")
    @classmethod
    def split_roles(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [token.strip() for token in v.split(",") if token.strip()]
        return v


class OutputConfig(BaseModel):
    """Output file locations."""

    model_config = ConfigDict(frozen=True)

    csr_file: Path = Path("out.csr")
    key_file: Path = Path("out.key")


class ValidationConfig(BaseModel):
    """Request policy validation configuration."""

    model_config = ConfigDict(frozen=True)

    min_key_size: Annotated[int, Field(ge=1024, le=16384)] = 2048
    allowed_flavors: list[CertificateFlavor] = [CertificateFlavor.QWAC, CertificateFlavor.QSEAL]
    require_roles: bool = True


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: Annotated[int, Field(ge=1, le=65535)] = 8080


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class AuditConfig(BaseModel):
    """Audit logging configuration."""

    model_config = ConfigDict(frozen=True)

    log_file: Path = Path("./logs/audit.log")
    log_level: LogLevel = LogLevel.INFO


class Settings(BaseModel):
    """Root configuration model for eidas-csr."""

    model_config = ConfigDict(frozen=True)

    key: KeyConfig = KeyConfig()
    defaults: DefaultsConfig = DefaultsConfig()
    output: OutputConfig = OutputConfig()
    validation: ValidationConfig = ValidationConfig()
    server: ServerConfig = ServerConfig()
    audit: AuditConfig = AuditConfig()


def load_config(config_path: Path | str) -> Settings:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration YAML file.

    Returns:
        Validated Settings instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        yaml.YAMLError: If YAML parsing fails.
        ConfigurationError: If the document is not a mapping.
        pydantic.ValidationError: If configuration validation fails.
    """
    path = Path(config_path)
    with path.open("r") as f:
        data = yaml.safe_load(f)

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError.invalid_config(
            field=str(path),
            reason=f"top level must be a mapping, got {type(data).__name__}",
        )

    return Settings.model_validate(data or {})


def load_config_from_env(
    env_var: str = "EIDAS_CSR_CONFIG",
    default_paths: list[Path] | None = None,
) -> Settings:
    """Load configuration from environment variable or default paths.

    Args:
        env_var: Environment variable name containing config path.
        default_paths: List of default paths to try if env var not set.

    Returns:
        Validated Settings instance, or defaults if no file is found.
    """
    # Try environment variable first
    config_path = os.environ.get(env_var)
    if config_path:
        return load_config(config_path)

    if default_paths is None:
        default_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/etc/eidas-csr/config.yaml"),
        ]

    for path in default_paths:
        if path.exists():
            return load_config(path)

    return Settings()
