"""Qualified statement codec for PSD2 certificates.

Builds and extracts the qcStatements extension value described in
ETSI TS 119 495 and RFC 3739:

    QcStatements ::= SEQUENCE {
        qcType  SEQUENCE { id-etsi-qcs-QcType, SEQUENCE OF QcType }
        psd2    SEQUENCE { id-etsi-psd2-qcStatement, PSD2QcType }
    }

    PSD2QcType ::= SEQUENCE {
        rolesOfPSP  SEQUENCE OF RoleOfPSP,
        nCAName     UTF8String,
        nCAId       UTF8String
    }

    RoleOfPSP ::= SEQUENCE { roleOfPspOid OBJECT IDENTIFIER, roleOfPspName UTF8String }

Older issuers packed every (OID, name) pair of a request into a single
RoleOfPSP record. Role records are therefore read as a run of pairs, which
accepts both layouts without inspecting tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pyasn1 import error as asn1_error
from pyasn1.codec.der import decoder, encoder
from pyasn1.type import char, namedtype, univ
from pyasn1.type.base import Asn1Type

from eidas_csr.exceptions import DecodingError, EncodingError
from eidas_csr.qcstatements.flavors import QC_TYPE_OID, require_flavor
from eidas_csr.qcstatements.roles import Role, role_oid

if TYPE_CHECKING:
    from collections.abc import Iterable

    from eidas_csr.qcstatements.authorities import CompetentAuthority
    from eidas_csr.qcstatements.flavors import CertificateFlavor

# id-etsi-psd2-qcStatement
PSD2_STATEMENT_OID = "0.4.0.19495.2"

# --- ASN.1 schema ---


class QcCertificateType(univ.SequenceOf):
    """SEQUENCE OF QcType detail OIDs."""

    componentType = univ.ObjectIdentifier()


class QcTypeStatement(univ.Sequence):
    """QCStatement carrying id-etsi-qcs-QcType."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("statementId", univ.ObjectIdentifier()),
        namedtype.NamedType("statementInfo", QcCertificateType()),
    )


class RoleOfPsp(univ.Sequence):
    """One PSP role record as written by serialize()."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("roleOfPspOid", univ.ObjectIdentifier()),
        namedtype.NamedType("roleOfPspName", char.UTF8String()),
    )


class RolesOfPsp(univ.SequenceOf):
    """Role records, each kept as raw DER until read pairwise."""

    componentType = univ.Any()


class _RoleRecordElements(univ.SequenceOf):
    componentType = univ.Any()


class PsdQcType(univ.Sequence):
    """PSD2QcType: roles plus the competent authority."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("rolesOfPsp", RolesOfPsp()),
        namedtype.NamedType("nCAName", char.UTF8String()),
        namedtype.NamedType("nCAId", char.UTF8String()),
    )


class Psd2Statement(univ.Sequence):
    """QCStatement carrying id-etsi-psd2-qcStatement."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("statementId", univ.ObjectIdentifier()),
        namedtype.NamedType("statementInfo", PsdQcType()),
    )


class QcStatements(univ.Sequence):
    """The complete extension value."""

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("qcType", QcTypeStatement()),
        namedtype.NamedType("psd2", Psd2Statement()),
    )


# --- Decoded values ---


@dataclass(frozen=True)
class RoleOfPspEntry:
    """A decoded role: its embedded OID and role name."""

    oid: str
    name: str


@dataclass(frozen=True)
class QualifiedStatement:
    """Decoded content of a PSD2 qualified statement."""

    roles_of_psp: tuple[RoleOfPspEntry, ...]
    authority_name: str
    authority_id: str
    certificate_types: tuple[str, ...] = ()

    @property
    def roles(self) -> list[str]:
        """Role names in encoded order."""
        return [entry.name for entry in self.roles_of_psp]

    @property
    def role_oids(self) -> list[str]:
        """Role OIDs in encoded order."""
        return [entry.oid for entry in self.roles_of_psp]


# --- Encoding ---


def serialize(
    roles: Iterable[Role | str],
    authority: CompetentAuthority,
    flavor: CertificateFlavor,
) -> bytes:
    """Serialize roles and authority into a DER qualified statement.

    Args:
        roles: PSP roles in the order they should be encoded. Duplicates are kept.
        authority: Competent authority to name in the statement.
        flavor: QWAC or QSEAL; selects the QcType detail OID.

    Returns:
        DER-encoded QcStatements value.

    Raises:
        UnknownRoleError: If any role is outside the PSP role set.
        UnknownFlavorError: If flavor is not a CertificateFlavor.
        EncodingError: If the structure cannot be encoded.
    """
    flavor = require_flavor(flavor)
    # Resolve every role before encoding anything.
    pairs = [(role_oid(role), Role(role).value) for role in roles]

    try:
        detail = QcCertificateType()
        detail.append(univ.ObjectIdentifier(flavor.oid))

        qc_type = QcTypeStatement()
        qc_type["statementId"] = univ.ObjectIdentifier(QC_TYPE_OID)
        qc_type["statementInfo"] = detail

        roles_of_psp = RolesOfPsp()
        roles_of_psp.clear()
        for oid, name in pairs:
            record = RoleOfPsp()
            record["roleOfPspOid"] = univ.ObjectIdentifier(oid)
            record["roleOfPspName"] = char.UTF8String(name)
            roles_of_psp.append(univ.Any(encoder.encode(record)))

        info = PsdQcType()
        info["rolesOfPsp"] = roles_of_psp
        info["nCAName"] = char.UTF8String(authority.name)
        info["nCAId"] = char.UTF8String(authority.id)

        psd2 = Psd2Statement()
        psd2["statementId"] = univ.ObjectIdentifier(PSD2_STATEMENT_OID)
        psd2["statementInfo"] = info

        statements = QcStatements()
        statements["qcType"] = qc_type
        statements["psd2"] = psd2
        return encoder.encode(statements)
    except asn1_error.PyAsn1Error as e:
        raise EncodingError.failed(structure="qcStatements", reason=str(e)) from e


# --- Decoding ---


def _decode_exact(data: bytes, spec: Asn1Type, structure: str) -> Asn1Type:
    value, rest = decoder.decode(data, asn1Spec=spec)
    if rest:
        raise DecodingError.failed(structure=structure, reason=f"{len(rest)} trailing bytes")
    # The decoder tolerates BER length and string forms; DER has exactly one encoding.
    if encoder.encode(value) != data:
        raise DecodingError.failed(structure=structure, reason="not DER encoded")
    return value


def _read_role_record(raw: bytes) -> list[RoleOfPspEntry]:
    elements = _decode_exact(raw, _RoleRecordElements(), "RoleOfPSP")
    if not len(elements) or len(elements) % 2:
        raise DecodingError.failed(
            structure="RoleOfPSP",
            reason=f"expected (OID, UTF8String) pairs, found {len(elements)} elements",
        )

    entries = []
    for index in range(0, len(elements), 2):
        oid = _decode_exact(elements[index].asOctets(), univ.ObjectIdentifier(), "roleOfPspOid")
        name = _decode_exact(elements[index + 1].asOctets(), char.UTF8String(), "roleOfPspName")
        entries.append(RoleOfPspEntry(oid=str(oid), name=str(name)))
    return entries


def extract(data: bytes) -> QualifiedStatement:
    """Extract roles and authority from a DER qualified statement.

    Role names are reported as encoded; they are not checked against the
    known PSP roles, so statements issued with other roles stay readable.

    Args:
        data: DER-encoded QcStatements value.

    Returns:
        QualifiedStatement with roles in encoded order.

    Raises:
        DecodingError: If data is empty, truncated, has trailing bytes, is not
            DER, does not match the structure, or contains invalid UTF-8.
    """
    if not data:
        raise DecodingError.failed(structure="qcStatements", reason="empty input")

    try:
        statements = _decode_exact(bytes(data), QcStatements(), "qcStatements")
        info = statements["psd2"]["statementInfo"]

        roles: list[RoleOfPspEntry] = []
        for record in info["rolesOfPsp"]:
            roles.extend(_read_role_record(record.asOctets()))

        return QualifiedStatement(
            roles_of_psp=tuple(roles),
            authority_name=str(info["nCAName"]),
            authority_id=str(info["nCAId"]),
            certificate_types=tuple(str(oid) for oid in statements["qcType"]["statementInfo"]),
        )
    except asn1_error.PyAsn1Error as e:
        raise DecodingError.failed(structure="qcStatements", reason=str(e)) from e


# --- Human-readable output ---


def describe(statement: QualifiedStatement) -> str:
    """One-line summary of a decoded statement."""
    return (
        f"CA {{ Name: {statement.authority_name} ID: {statement.authority_id} }} "
        f"Roles: [{', '.join(statement.roles)}]"
    )


def dump_from_hex(value: str) -> str:
    """Decode a hex-encoded qualified statement and describe it.

    Raises:
        DecodingError: If value is not hex or not a valid statement.
    """
    try:
        data = bytes.fromhex(value.strip())
    except ValueError as e:
        raise DecodingError.failed(structure="hex", reason=str(e)) from e
    return describe(extract(data))
