"""Qualified statement endpoints.

Implements:
- GET /health - Service status and version
- GET /authorities - List competent authorities by country code
- POST /qcstatements - Encode roles and authority as a hex qualified statement
- POST /qcstatements/decode - Decode a hex qualified statement
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict

from eidas_csr import __version__
from eidas_csr.audit.logger import (
    clear_correlation_id,
    log_qc_statement_decoded,
    log_qc_statement_encoded,
    set_correlation_id,
)
from eidas_csr.config import Settings
from eidas_csr.exceptions import DecodingError
from eidas_csr.qcstatements.authorities import all_authorities, lookup
from eidas_csr.qcstatements.codec import extract, serialize
from eidas_csr.qcstatements.flavors import CertificateFlavor

router = APIRouter()


class AuthorityModel(BaseModel):
    """Competent authority as returned by the API."""

    name: str
    id: str


class EncodeRequest(BaseModel):
    """Body of POST /qcstatements. Unset fields fall back to configured defaults."""

    model_config = ConfigDict(frozen=True)

    country_code: str
    roles: list[str] | None = None
    flavor: str | None = None


class EncodeResponse(BaseModel):
    """Hex-encoded DER qualified statement."""

    qc_statement: str


class DecodeRequest(BaseModel):
    """Body of POST /qcstatements/decode."""

    model_config = ConfigDict(frozen=True)

    qc_statement: str


class DecodeResponse(BaseModel):
    """Decoded qualified statement."""

    roles: list[str]
    role_oids: list[str]
    authority_name: str
    authority_id: str
    certificate_types: list[str]


class HealthResponse(BaseModel):
    """Service status."""

    status: str
    version: str


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


@router.get("/health")
async def health_check() -> HealthResponse:
    """Health check endpoint for monitoring."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/authorities")
async def list_authorities() -> dict[str, AuthorityModel]:
    """List competent authorities keyed by country code."""
    return {
        code: AuthorityModel(name=authority.name, id=authority.id)
        for code, authority in sorted(all_authorities().items())
    }


@router.post("/qcstatements")
async def encode_qc_statement(
    body: EncodeRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> EncodeResponse:
    """Encode a qualified statement.

    Returns:
        Hex of the DER qcStatements extension value.
    """
    set_correlation_id()
    try:
        roles = body.roles if body.roles is not None else [role.value for role in settings.defaults.roles]
        flavor = CertificateFlavor.from_name(body.flavor) if body.flavor else settings.defaults.flavor
        authority = lookup(body.country_code)

        data = serialize(roles, authority, flavor)

        log_qc_statement_encoded(roles=roles, authority_id=authority.id, flavor=flavor.value)
        return EncodeResponse(qc_statement=data.hex())
    finally:
        clear_correlation_id()


@router.post("/qcstatements/decode")
async def decode_qc_statement(body: DecodeRequest) -> DecodeResponse:
    """Decode a hex qualified statement into roles and authority."""
    set_correlation_id()
    try:
        try:
            data = bytes.fromhex(body.qc_statement.strip())
        except ValueError as e:
            raise DecodingError.failed(structure="hex", reason=str(e)) from e

        statement = extract(data)

        log_qc_statement_decoded(roles=statement.roles, authority_id=statement.authority_id)
        return DecodeResponse(
            roles=statement.roles,
            role_oids=statement.role_oids,
            authority_name=statement.authority_name,
            authority_id=statement.authority_id,
            certificate_types=list(statement.certificate_types),
        )
    finally:
        clear_correlation_id()
