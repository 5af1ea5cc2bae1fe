"""Certificate request assembly for QWAC and QSEAL certificates.

Ties together the authority table, the qualified statement codec, the
extension and subject builders, and the request signer. One call produces
one signed PKCS#10 request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives.asymmetric import rsa

from eidas_csr.audit.logger import log_files_written, log_request_generated
from eidas_csr.config import KeyConfig
from eidas_csr.crypto.csr import (
    create_signed_request,
    encode_private_key_pem,
    encode_request_pem,
    generate_private_key,
    request_fingerprint,
)
from eidas_csr.crypto.extensions import build_extensions
from eidas_csr.crypto.subject import build_subject, format_subject, parse_subject
from eidas_csr.exceptions import OutputError, RequestSigningError
from eidas_csr.qcstatements.authorities import lookup
from eidas_csr.qcstatements.codec import serialize
from eidas_csr.qcstatements.flavors import CertificateFlavor
from eidas_csr.qcstatements.roles import Role

if TYPE_CHECKING:
    from eidas_csr.crypto.csr import SigningKey
    from eidas_csr.qcstatements.authorities import CompetentAuthority


@dataclass(frozen=True)
class RequestDetails:
    """Caller inputs for one certificate request.

    Attributes:
        country_code: ISO 3166-1 alpha-2 code; selects the competent authority.
        organization_name: Legal name, placed in O.
        organization_id: PSD2 organisation identifier, e.g. "PSDGB-FCA-123456".
        common_name: Placed in CN.
        roles: PSP roles in encoding order.
        flavor: QWAC or QSEAL.
    """

    country_code: str
    organization_name: str
    organization_id: str
    common_name: str
    roles: tuple[Role | str, ...] = (Role.ACCOUNT_INFORMATION,)
    flavor: CertificateFlavor = CertificateFlavor.QWAC


@dataclass(frozen=True)
class GeneratedRequest:
    """A signed request and the key it was made for."""

    csr_der: bytes
    private_key: SigningKey = field(repr=False)
    fingerprint: str
    authority: CompetentAuthority
    qc_statement: bytes

    def csr_pem(self) -> bytes:
        """Request as PEM."""
        return encode_request_pem(self.csr_der)

    def key_pem(self) -> bytes:
        """Private key as unencrypted PKCS#8 PEM."""
        return encode_private_key_pem(self.private_key)


def generate_request(
    details: RequestDetails,
    signing_key: SigningKey | None = None,
    *,
    key_config: KeyConfig | None = None,
) -> GeneratedRequest:
    """Build and sign a certificate request.

    Args:
        details: Subject, roles and flavor of the request.
        signing_key: RSA key to sign with. A new key is generated if omitted.
        key_config: Key generation parameters, used only when generating.

    Returns:
        GeneratedRequest with DER request, key and fingerprint.

    Raises:
        UnknownCountryCodeError: If no authority exists for the country code.
        UnknownRoleError: If a role is outside the PSP role set.
        UnknownFlavorError: If the flavor is not QWAC or QSEAL.
        RequestSigningError: If the key is not RSA or signing fails.
    """
    authority = lookup(details.country_code)
    qc_statement = serialize(details.roles, authority, details.flavor)

    if signing_key is None:
        key_config = key_config or KeyConfig()
        signing_key = generate_private_key(key_config.key_size, key_config.public_exponent)
    elif not isinstance(signing_key, rsa.RSAPrivateKey):
        raise RequestSigningError.unsupported_key(key_type=type(signing_key).__name__)

    extensions = build_extensions(details.flavor, signing_key.public_key(), qc_statement)
    subject = build_subject(
        details.country_code,
        details.organization_name,
        details.organization_id,
        details.common_name,
    )
    csr_der = create_signed_request(subject, extensions, signing_key)
    fingerprint = request_fingerprint(csr_der)

    log_request_generated(
        subject=format_subject(parse_subject(subject)),
        flavor=details.flavor.value,
        roles=[Role(role).value for role in details.roles],
        authority_id=authority.id,
        fingerprint=fingerprint,
    )

    return GeneratedRequest(
        csr_der=csr_der,
        private_key=signing_key,
        fingerprint=fingerprint,
        authority=authority,
        qc_statement=qc_statement,
    )


def write_request_files(
    generated: GeneratedRequest,
    csr_path: Path | str,
    key_path: Path | str,
) -> str:
    """Write the request and its private key as PEM files.

    The key file is readable by the owner only.

    Args:
        generated: Output of generate_request.
        csr_path: Destination for the PEM request.
        key_path: Destination for the PEM private key.

    Returns:
        SHA-256 fingerprint of the DER request.

    Raises:
        OutputError: If either file cannot be written.
    """
    csr_path = Path(csr_path)
    key_path = Path(key_path)

    try:
        csr_path.write_bytes(generated.csr_pem())
    except OSError as e:
        raise OutputError.write_failed(path=str(csr_path), reason=str(e)) from e

    try:
        key_path.touch(mode=0o600, exist_ok=True)
        key_path.chmod(0o600)
        key_path.write_bytes(generated.key_pem())
    except OSError as e:
        raise OutputError.write_failed(path=str(key_path), reason=str(e)) from e

    log_files_written(csr_path=str(csr_path), key_path=str(key_path))
    return generated.fingerprint
