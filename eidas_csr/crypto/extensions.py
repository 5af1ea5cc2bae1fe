"""Certificate request extensions for QWAC and QSEAL requests.

Selects key usage and extended key usage by certificate flavor and encodes
each extension value as DER, ready to be placed in the PKCS#10
extensionRequest attribute.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from pyasn1 import error as asn1_error
from pyasn1.codec.der import encoder
from pyasn1.type import univ
from pyasn1_modules import rfc5280

from eidas_csr.exceptions import EncodingError, UnknownFlavorError
from eidas_csr.qcstatements.flavors import CertificateFlavor

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

KEY_USAGE_OID = "2.5.29.15"
EXTENDED_KEY_USAGE_OID = "2.5.29.37"
SUBJECT_KEY_IDENTIFIER_OID = "2.5.29.14"
QC_STATEMENTS_OID = "1.3.6.1.5.5.7.1.3"

TLS_SERVER_AUTH_OID = "1.3.6.1.5.5.7.3.1"
TLS_CLIENT_AUTH_OID = "1.3.6.1.5.5.7.3.2"


class KeyUsage(IntEnum):
    """KeyUsage bit positions (RFC 5280 section 4.2.1.3)."""

    DIGITAL_SIGNATURE = 0
    CONTENT_COMMITMENT = 1
    KEY_ENCIPHERMENT = 2
    DATA_ENCIPHERMENT = 3
    KEY_AGREEMENT = 4
    KEY_CERT_SIGN = 5
    CRL_SIGN = 6
    ENCIPHER_ONLY = 7
    DECIPHER_ONLY = 8


@dataclass(frozen=True)
class Extension:
    """A single request extension.

    Attributes:
        oid: Dotted extension identifier.
        critical: Whether relying parties must understand the extension.
        value: DER-encoded extension value (the extnValue contents).
    """

    oid: str
    critical: bool
    value: bytes

    def to_asn1(self) -> rfc5280.Extension:
        """Return the pyasn1 Extension structure for this extension."""
        ext = rfc5280.Extension()
        ext["extnID"] = univ.ObjectIdentifier(self.oid)
        if self.critical:
            ext["critical"] = True
        ext["extnValue"] = univ.OctetString(self.value)
        return ext


def key_usage_for(flavor: CertificateFlavor) -> tuple[KeyUsage, ...]:
    """Key usage bits for a certificate flavor.

    Raises:
        UnknownFlavorError: If flavor is not a CertificateFlavor.
    """
    if flavor is CertificateFlavor.QWAC:
        return (KeyUsage.DIGITAL_SIGNATURE,)
    if flavor is CertificateFlavor.QSEAL:
        return (KeyUsage.DIGITAL_SIGNATURE, KeyUsage.CONTENT_COMMITMENT)
    raise UnknownFlavorError.for_flavor(flavor)


def extended_key_usage_for(flavor: CertificateFlavor) -> tuple[str, ...]:
    """Extended key usage purposes for a certificate flavor.

    An empty result means no extended key usage extension is emitted.

    Raises:
        UnknownFlavorError: If flavor is not a CertificateFlavor.
    """
    if flavor is CertificateFlavor.QWAC:
        return (TLS_SERVER_AUTH_OID, TLS_CLIENT_AUTH_OID)
    if flavor is CertificateFlavor.QSEAL:
        return ()
    raise UnknownFlavorError.for_flavor(flavor)


def build_key_usage_extension(bits: Sequence[KeyUsage]) -> Extension:
    """Build the critical KeyUsage extension.

    Bit 0 is the most significant bit of the first content octet. Trailing
    zero bits are not encoded.

    Args:
        bits: Key usage bits to set.

    Returns:
        KeyUsage Extension.

    Raises:
        EncodingError: If no bits are given.
    """
    if not bits:
        raise EncodingError.failed(structure="KeyUsage", reason="no key usage bits")

    positions = {int(bit) for bit in bits}
    bin_value = "".join("1" if i in positions else "0" for i in range(max(positions) + 1))
    try:
        value = encoder.encode(rfc5280.KeyUsage(binValue=bin_value))
    except asn1_error.PyAsn1Error as e:
        raise EncodingError.failed(structure="KeyUsage", reason=str(e)) from e
    return Extension(oid=KEY_USAGE_OID, critical=True, value=value)


def build_extended_key_usage_extension(oids: Sequence[str]) -> Extension:
    """Build the non-critical ExtendedKeyUsage extension.

    Args:
        oids: Key purpose OIDs, in order.

    Returns:
        ExtendedKeyUsage Extension.

    Raises:
        EncodingError: If oids is empty or an OID is malformed.
    """
    if not oids:
        raise EncodingError.failed(structure="ExtendedKeyUsage", reason="no key purposes")

    try:
        usages = rfc5280.ExtKeyUsageSyntax()
        for oid in oids:
            usages.append(rfc5280.KeyPurposeId(oid))
        value = encoder.encode(usages)
    except asn1_error.PyAsn1Error as e:
        raise EncodingError.failed(structure="ExtendedKeyUsage", reason=str(e)) from e
    return Extension(oid=EXTENDED_KEY_USAGE_OID, critical=False, value=value)


def subject_key_identifier(public_key: PublicKeyTypes) -> bytes:
    """SHA-1 digest of the DER PKCS#1 RSAPublicKey.

    Raises:
        EncodingError: If the key is not an RSA public key.
    """
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise EncodingError.failed(
            structure="SubjectKeyIdentifier",
            reason=f"unsupported key type {type(public_key).__name__}",
        )
    digest = hashes.Hash(hashes.SHA1())  # noqa: S303 - RFC 5280 key identifier method 1
    digest.update(public_key.public_bytes(Encoding.DER, PublicFormat.PKCS1))
    return digest.finalize()


def build_subject_key_identifier_extension(public_key: PublicKeyTypes) -> Extension:
    """Build the non-critical SubjectKeyIdentifier extension."""
    value = encoder.encode(rfc5280.SubjectKeyIdentifier(subject_key_identifier(public_key)))
    return Extension(oid=SUBJECT_KEY_IDENTIFIER_OID, critical=False, value=value)


def build_qualified_statement_extension(data: bytes) -> Extension:
    """Wrap an encoded qualified statement as the qcStatements extension."""
    return Extension(oid=QC_STATEMENTS_OID, critical=False, value=data)


def build_extensions(
    flavor: CertificateFlavor,
    public_key: PublicKeyTypes,
    qc_statement: bytes,
) -> list[Extension]:
    """Build the request extensions for a flavor, in emission order.

    Order: key usage, extended key usage (QWAC only), subject key
    identifier, qualified statement.

    Args:
        flavor: QWAC or QSEAL.
        public_key: Requester's RSA public key.
        qc_statement: Output of the qualified statement codec.

    Returns:
        List of Extension.

    Raises:
        UnknownFlavorError: If flavor is not a CertificateFlavor.
        EncodingError: If an extension cannot be encoded.
    """
    extensions = [build_key_usage_extension(key_usage_for(flavor))]

    purposes = extended_key_usage_for(flavor)
    if purposes:
        extensions.append(build_extended_key_usage_extension(purposes))

    extensions.append(build_subject_key_identifier_extension(public_key))
    extensions.append(build_qualified_statement_extension(qc_statement))
    return extensions
