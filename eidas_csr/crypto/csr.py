"""PKCS#10 certificate request signing and inspection.

Assembles CertificationRequestInfo around a pre-built subject and an ordered
extension list, signs it with the requester's RSA key, and parses finished
requests back for inspection.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from pyasn1 import error as asn1_error
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import namedtype, tag, univ
from pyasn1_modules import rfc5280

from eidas_csr.crypto.extensions import QC_STATEMENTS_OID
from eidas_csr.crypto.subject import format_subject, parse_subject
from eidas_csr.exceptions import DecodingError, RequestSigningError
from eidas_csr.qcstatements.codec import QualifiedStatement, extract
from eidas_csr.qcstatements.flavors import CertificateFlavor

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

    from eidas_csr.crypto.extensions import Extension

# pkcs-9-at-extensionRequest
EXTENSION_REQUEST_OID = "1.2.840.113549.1.9.14"
SHA256_WITH_RSA_OID = "1.2.840.113549.1.1.11"

# Type alias for keys that can sign requests
SigningKey = rsa.RSAPrivateKey

# --- ASN.1 schema (RFC 2986) ---


class _AttributeValues(univ.SetOf):
    componentType = univ.Any()


class _Attribute(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("type", univ.ObjectIdentifier()),
        namedtype.NamedType("values", _AttributeValues()),
    )


class _Attributes(univ.SetOf):
    componentType = _Attribute()
    tagSet = univ.SetOf.tagSet.tagImplicitly(
        tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0),
    )


class CertificationRequestInfo(univ.Sequence):
    """CertificationRequestInfo with typed subject and key."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("version", univ.Integer()),
        namedtype.NamedType("subject", rfc5280.Name()),
        namedtype.NamedType("subjectPKInfo", rfc5280.SubjectPublicKeyInfo()),
        namedtype.NamedType("attributes", _Attributes()),
    )


class _SignatureAlgorithm(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("algorithm", univ.ObjectIdentifier()),
        namedtype.NamedType("parameters", univ.Null()),
    )


class CertificationRequest(univ.Sequence):
    """Signed PKCS#10 request."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("certificationRequestInfo", CertificationRequestInfo()),
        namedtype.NamedType("signatureAlgorithm", _SignatureAlgorithm()),
        namedtype.NamedType("signature", univ.BitString()),
    )


# --- Key handling ---


def generate_private_key(key_size: int = 2048, public_exponent: int = 65537) -> SigningKey:
    """Generate an RSA key pair for a new request."""
    return rsa.generate_private_key(public_exponent=public_exponent, key_size=key_size)


def encode_private_key_pem(key: SigningKey) -> bytes:
    """Encode private key as unencrypted PKCS#8 PEM.

    Args:
        key: The private key to encode.

    Returns:
        PEM-encoded bytes.
    """
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


# --- Request creation ---


def _extension_request(extensions: Sequence[Extension]) -> _Attribute:
    encoded = rfc5280.Extensions()
    for extension in extensions:
        encoded.append(extension.to_asn1())

    attribute = _Attribute()
    attribute["type"] = univ.ObjectIdentifier(EXTENSION_REQUEST_OID)
    values = _AttributeValues()
    values.append(univ.Any(encoder.encode(encoded)))
    attribute["values"] = values
    return attribute


def create_signed_request(
    subject: bytes,
    extensions: Sequence[Extension],
    signing_key: SigningKey,
) -> bytes:
    """Create a DER PKCS#10 request signed with sha256WithRSAEncryption.

    The subject is embedded as given so its attribute order is kept.
    Extensions are placed in a single extensionRequest attribute, in order.

    Args:
        subject: DER-encoded RDNSequence.
        extensions: Request extensions in emission order.
        signing_key: RSA private key matching the requested public key.

    Returns:
        DER-encoded CertificationRequest.

    Raises:
        RequestSigningError: If the key is not RSA, the subject is malformed,
            or signing fails.
    """
    if not isinstance(signing_key, rsa.RSAPrivateKey):
        raise RequestSigningError.unsupported_key(key_type=type(signing_key).__name__)

    try:
        name, rest = decoder.decode(subject, asn1Spec=rfc5280.Name())
        if rest:
            raise RequestSigningError.signing_failed(reason="trailing bytes after subject")

        spki_der = signing_key.public_key().public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
        spki, _ = decoder.decode(spki_der, asn1Spec=rfc5280.SubjectPublicKeyInfo())

        attributes = _Attributes()
        attributes.clear()
        if extensions:
            attributes.append(_extension_request(extensions))

        info = CertificationRequestInfo()
        info["version"] = 0
        info["subject"] = name
        info["subjectPKInfo"] = spki
        info["attributes"] = attributes

        signature = signing_key.sign(encoder.encode(info), padding.PKCS1v15(), hashes.SHA256())

        algorithm = _SignatureAlgorithm()
        algorithm["algorithm"] = univ.ObjectIdentifier(SHA256_WITH_RSA_OID)
        algorithm["parameters"] = univ.Null("")

        request = CertificationRequest()
        request["certificationRequestInfo"] = info
        request["signatureAlgorithm"] = algorithm
        request["signature"] = univ.BitString.fromOctetString(signature)
        return encoder.encode(request)
    except asn1_error.PyAsn1Error as e:
        raise RequestSigningError.signing_failed(reason=str(e)) from e


def request_fingerprint(der: bytes) -> str:
    """SHA-256 of the DER request, as lowercase hex."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(der)
    return digest.finalize().hex()


def encode_request_pem(der: bytes) -> bytes:
    """Encode a DER request to PEM format.

    Args:
        der: DER-encoded request.

    Returns:
        PEM-encoded bytes.
    """
    return x509.load_der_x509_csr(der).public_bytes(Encoding.PEM)


# --- Inspection ---

_KEY_USAGE_FIELDS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
)


@dataclass(frozen=True)
class RequestInfo:
    """Parsed information from a certificate request."""

    csr: x509.CertificateSigningRequest
    subject: list[tuple[str, str]]
    subject_dn: str
    key_type: str
    key_size: int
    signature_valid: bool
    extension_oids: tuple[str, ...]
    key_usage: tuple[str, ...]
    extended_key_usage: tuple[str, ...]
    qualified_statement: QualifiedStatement | None

    @property
    def flavor(self) -> CertificateFlavor | None:
        """Certificate flavor named by the qualified statement, if any."""
        if self.qualified_statement is None:
            return None
        for flavor in CertificateFlavor:
            if flavor.oid in self.qualified_statement.certificate_types:
                return flavor
        return None


def _load_request(data: bytes | str) -> x509.CertificateSigningRequest:
    if isinstance(data, str):
        data = data.strip()
        data = data.encode("utf-8") if data.startswith("-----BEGIN") else base64.b64decode(data)

    if data.startswith(b"-----BEGIN"):
        return x509.load_pem_x509_csr(data)
    return x509.load_der_x509_csr(data)


def _extract_key_info(public_key: PublicKeyTypes) -> tuple[str, int]:
    if isinstance(public_key, rsa.RSAPublicKey):
        return "RSA", public_key.key_size
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return "EC", public_key.curve.key_size
    return "UNKNOWN", 0


def _extract_key_usage(csr: x509.CertificateSigningRequest) -> tuple[str, ...]:
    try:
        usage = csr.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return ()
    names = [field for field in _KEY_USAGE_FIELDS if getattr(usage, field)]
    if usage.key_agreement:
        names.extend(field for field in ("encipher_only", "decipher_only") if getattr(usage, field))
    return tuple(names)


def _extract_extended_key_usage(csr: x509.CertificateSigningRequest) -> tuple[str, ...]:
    try:
        usage = csr.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return ()
    return tuple(oid.dotted_string for oid in usage)


def _extract_qualified_statement(csr: x509.CertificateSigningRequest) -> QualifiedStatement | None:
    try:
        ext = csr.extensions.get_extension_for_oid(x509.ObjectIdentifier(QC_STATEMENTS_OID))
    except x509.ExtensionNotFound:
        return None
    return extract(ext.value.value)


def parse_request(data: bytes | str) -> RequestInfo:
    """Parse a PKCS#10 request from PEM, DER or base64 DER.

    Args:
        data: Request bytes (DER or PEM) or a PEM/base64 string.

    Returns:
        RequestInfo with parsed information.

    Raises:
        DecodingError: If the request or its qualified statement cannot be parsed.
    """
    try:
        csr = _load_request(data)
        extension_oids = tuple(ext.oid.dotted_string for ext in csr.extensions)
    except ValueError as e:
        raise DecodingError.failed(structure="CertificationRequest", reason=str(e)) from e

    subject = parse_subject(csr.subject.public_bytes())
    key_type, key_size = _extract_key_info(csr.public_key())

    return RequestInfo(
        csr=csr,
        subject=subject,
        subject_dn=format_subject(subject),
        key_type=key_type,
        key_size=key_size,
        signature_valid=csr.is_signature_valid,
        extension_oids=extension_oids,
        key_usage=_extract_key_usage(csr),
        extended_key_usage=_extract_extended_key_usage(csr),
        qualified_statement=_extract_qualified_statement(csr),
    )
