"""Certificate request subject for PSD2 certificates.

The subject carries organizationIdentifier (2.5.4.97), which generic name
builders either drop or reorder. The RDN sequence is therefore assembled
attribute by attribute in the order C, O, organizationIdentifier, CN.
"""

from __future__ import annotations

from pyasn1 import error as asn1_error
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import char, univ
from pyasn1_modules import rfc5280

from eidas_csr.exceptions import DecodingError, EncodingError

COUNTRY_NAME_OID = "2.5.4.6"
ORGANIZATION_NAME_OID = "2.5.4.10"
ORGANIZATION_IDENTIFIER_OID = "2.5.4.97"
COMMON_NAME_OID = "2.5.4.3"

# OID to short name mapping for subject fields
OID_SHORT_NAMES = {
    COUNTRY_NAME_OID: "C",
    ORGANIZATION_NAME_OID: "O",
    ORGANIZATION_IDENTIFIER_OID: "organizationIdentifier",
    COMMON_NAME_OID: "CN",
}


def build_subject(
    country_code: str,
    organization_name: str,
    organization_id: str,
    common_name: str,
) -> bytes:
    """Build the DER RDNSequence for a request subject.

    Each attribute is its own single-valued RDN. Country is a
    PrintableString, the other values are UTF8String.

    Args:
        country_code: ISO 3166-1 alpha-2 code.
        organization_name: Legal name of the organisation.
        organization_id: PSD2 organisation identifier, e.g. "PSDGB-FCA-123456".
        common_name: Common name.

    Returns:
        DER-encoded RDNSequence.

    Raises:
        EncodingError: If a value violates its string type's constraints.
    """
    try:
        attributes = (
            (COUNTRY_NAME_OID, rfc5280.X520countryName(country_code)),
            (ORGANIZATION_NAME_OID, char.UTF8String(organization_name)),
            (ORGANIZATION_IDENTIFIER_OID, char.UTF8String(organization_id)),
            (COMMON_NAME_OID, char.UTF8String(common_name)),
        )

        rdn_sequence = rfc5280.RDNSequence()
        for oid, value in attributes:
            attribute = rfc5280.AttributeTypeAndValue()
            attribute["type"] = univ.ObjectIdentifier(oid)
            attribute["value"] = rfc5280.AttributeValue(encoder.encode(value))

            rdn = rfc5280.RelativeDistinguishedName()
            rdn.append(attribute)
            rdn_sequence.append(rdn)

        return encoder.encode(rdn_sequence)
    except asn1_error.PyAsn1Error as e:
        raise EncodingError.failed(structure="Name", reason=str(e)) from e


def parse_subject(data: bytes) -> list[tuple[str, str]]:
    """Decode a DER RDNSequence into ordered (OID, value) pairs.

    Raises:
        DecodingError: If data is not a valid RDNSequence.
    """
    try:
        rdn_sequence, rest = decoder.decode(data, asn1Spec=rfc5280.RDNSequence())
        if rest:
            raise DecodingError.failed(structure="Name", reason=f"{len(rest)} trailing bytes")

        pairs = []
        for rdn in rdn_sequence:
            for attribute in rdn:
                value, _ = decoder.decode(attribute["value"].asOctets())
                pairs.append((str(attribute["type"]), str(value)))
        return pairs
    except asn1_error.PyAsn1Error as e:
        raise DecodingError.failed(structure="Name", reason=str(e)) from e


def format_subject(pairs: list[tuple[str, str]]) -> str:
    """Format subject pairs as a DN string like "C=GB,O=Org,CN=name"."""
    return ",".join(f"{OID_SHORT_NAMES.get(oid, oid)}={value}" for oid, value in pairs)
