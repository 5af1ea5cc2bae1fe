"""Contract tests for the qualified statement codec.

Reference vectors were produced by existing PSD2 certificate tooling.
"""

from __future__ import annotations

import pytest

from eidas_csr.exceptions import DecodingError, UnknownFlavorError, UnknownRoleError
from eidas_csr.qcstatements.authorities import CompetentAuthority, lookup, supported_country_codes
from eidas_csr.qcstatements.codec import (
    QualifiedStatement,
    RoleOfPspEntry,
    describe,
    dump_from_hex,
    extract,
    serialize,
)
from eidas_csr.qcstatements.flavors import CertificateFlavor
from eidas_csr.qcstatements.roles import Role

# Single role PSP_PI, GB-FCA, QWAC
SINGLE_ROLE_HEX = (
    "305b3013060604008e4601063009060704008e4601060330440606040081982702"
    "303a301330110607040081982701020c065053505f50490c1b46696e616e636961"
    "6c20436f6e6475637420417574686f726974790c0647422d464341"
)

# PSP_PI and PSP_AI packed into a single role record
PI_AI_HEX = (
    "306c3013060604008e4601063009060704008e4601060330550606040081982702"
    "304b302430220607040081982701020c065053505f50490607040081982701030c"
    "065053505f41490c1b46696e616e6369616c20436f6e6475637420417574686f72"
    "6974790c0647422d464341"
)

# PSP_AS and PSP_IC packed into a single role record
AS_IC_HEX = (
    "306c3013060604008e4601063009060704008e4601060330550606040081982702"
    "304b302430220607040081982701010c065053505f41530607040081982701040c"
    "065053505f49430c1b46696e616e6369616c20436f6e6475637420417574686f72"
    "6974790c0647422d464341"
)


# --- Fixtures ---


@pytest.fixture
def fca() -> CompetentAuthority:
    """UK competent authority."""
    return lookup("GB")


# --- Serialize Tests ---


class TestSerialize:
    """Tests for qualified statement encoding."""

    def test_single_role_matches_reference(self, fca: CompetentAuthority) -> None:
        """Encoding is byte-exact against the reference vector."""
        data = serialize([Role.PAYMENT_INITIATION], fca, CertificateFlavor.QWAC)

        assert data.hex() == SINGLE_ROLE_HEX

    def test_accepts_role_tokens(self, fca: CompetentAuthority) -> None:
        """Plain role tokens encode the same as Role members."""
        assert serialize(["PSP_PI"], fca, CertificateFlavor.QWAC) == bytes.fromhex(SINGLE_ROLE_HEX)

    def test_qseal_uses_eseal_type(self, fca: CompetentAuthority) -> None:
        """QSEAL statements carry qct-eseal."""
        data = serialize([Role.PAYMENT_INITIATION], fca, CertificateFlavor.QSEAL)

        assert data.hex() == SINGLE_ROLE_HEX.replace("04008e460106033044", "04008e460106023044")
        assert extract(data).certificate_types == ("0.4.0.1862.1.6.2",)

    def test_each_role_gets_own_record(self, fca: CompetentAuthority) -> None:
        """Multiple roles produce one RoleOfPSP record each."""
        data = serialize([Role.PAYMENT_INITIATION, Role.ACCOUNT_INFORMATION], fca, CertificateFlavor.QWAC)

        # Two 0x11 byte records inside a 0x26 byte SEQUENCE OF
        assert "302630110607040081982701020c065053505f5049301106070400819827010" in data.hex()

    def test_empty_roles(self, fca: CompetentAuthority) -> None:
        """No roles encode as an empty SEQUENCE OF."""
        data = serialize([], fca, CertificateFlavor.QWAC)

        assert "3000" in data.hex()
        assert extract(data).roles == []

    def test_unknown_role_raises(self, fca: CompetentAuthority) -> None:
        """Unknown roles are rejected before anything is encoded."""
        with pytest.raises(UnknownRoleError):
            serialize(["PSP_AI", "PSP_XX"], fca, CertificateFlavor.QWAC)

    def test_unknown_flavor_raises(self, fca: CompetentAuthority) -> None:
        """Flavor must be a CertificateFlavor."""
        with pytest.raises(UnknownFlavorError):
            serialize(["PSP_AI"], fca, "QESIG")  # type: ignore[arg-type]


# --- Extract Tests ---


class TestExtract:
    """Tests for qualified statement decoding."""

    def test_single_role_vector(self) -> None:
        """Reference vector decodes to its role and authority."""
        statement = extract(bytes.fromhex(SINGLE_ROLE_HEX))

        assert statement == QualifiedStatement(
            roles_of_psp=(RoleOfPspEntry("0.4.0.19495.1.2", "PSP_PI"),),
            authority_name="Financial Conduct Authority",
            authority_id="GB-FCA",
            certificate_types=("0.4.0.1862.1.6.3",),
        )

    def test_packed_pi_ai_vector(self) -> None:
        """Roles packed in one record are returned in order."""
        statement = extract(bytes.fromhex(PI_AI_HEX))

        assert statement.roles == ["PSP_PI", "PSP_AI"]
        assert statement.role_oids == ["0.4.0.19495.1.2", "0.4.0.19495.1.3"]
        assert statement.authority_name == "Financial Conduct Authority"
        assert statement.authority_id == "GB-FCA"

    def test_packed_as_ic_vector(self) -> None:
        """Second packed reference vector."""
        statement = extract(bytes.fromhex(AS_IC_HEX))

        assert statement.roles == ["PSP_AS", "PSP_IC"]
        assert statement.authority_id == "GB-FCA"

    def test_unknown_role_name_is_reported(self) -> None:
        """Role names are not checked against the known roles."""
        data = bytes.fromhex(SINGLE_ROLE_HEX.replace("5053505f5049", "5053505f5858"))

        assert extract(data).roles == ["PSP_XX"]

    def test_empty_input_raises(self) -> None:
        """Empty input is rejected."""
        with pytest.raises(DecodingError):
            extract(b"")

    def test_truncated_input_raises(self) -> None:
        """Truncated input is rejected."""
        with pytest.raises(DecodingError):
            extract(bytes.fromhex(PI_AI_HEX)[:-1])

    def test_trailing_bytes_raise(self) -> None:
        """Bytes after the statement are rejected."""
        with pytest.raises(DecodingError):
            extract(bytes.fromhex(PI_AI_HEX) + b"\x00")

    def test_long_form_length_raises(self) -> None:
        """A non-minimal outer length is BER, not DER."""
        data = bytes.fromhex("30815b" + SINGLE_ROLE_HEX[4:])

        with pytest.raises(DecodingError) as exc_info:
            extract(data)

        assert exc_info.value.details["structure"] == "qcStatements"

    def test_long_form_length_in_role_record_raises(self) -> None:
        """Role records are held to DER as well."""
        data = bytes.fromhex(
            "305c"
            "3013060604008e4601063009060704008e46010603"
            "30450606040081982702"
            "303b3014308111"
            "0607040081982701020c065053505f5049"
            "0c1b46696e616e6369616c20436f6e6475637420417574686f72697479"
            "0c0647422d464341"
        )

        with pytest.raises(DecodingError):
            extract(data)

    def test_invalid_utf8_raises(self) -> None:
        """Authority strings must be valid UTF-8."""
        data = bytes.fromhex(SINGLE_ROLE_HEX[:-2] + "ff")

        with pytest.raises(DecodingError):
            extract(data)

    def test_wrong_structure_raises(self) -> None:
        """A DER value of another shape is rejected."""
        with pytest.raises(DecodingError):
            extract(bytes.fromhex("300506032a0304"))

    def test_odd_role_record_raises(self) -> None:
        """A role record must hold (OID, name) pairs."""
        # Record with only the OID
        data = bytes.fromhex(
            "3053"
            "3013060604008e4601063009060704008e46010603"
            "303c0606040081982702"
            "3032300b30090607040081982701"
            "02"
            "0c1b46696e616e6369616c20436f6e6475637420417574686f72697479"
            "0c0647422d464341"
        )

        with pytest.raises(DecodingError):
            extract(data)


# --- Round Trip Tests ---


class TestRoundTrip:
    """extract inverts serialize."""

    @pytest.mark.parametrize("flavor", list(CertificateFlavor))
    @pytest.mark.parametrize(
        "roles",
        [
            [Role.ACCOUNT_SERVICING],
            [Role.PAYMENT_INSTRUMENTS, Role.ACCOUNT_SERVICING],
            [Role.ACCOUNT_INFORMATION, Role.ACCOUNT_INFORMATION],
            list(Role),
        ],
    )
    def test_roles_and_flavor(self, fca: CompetentAuthority, roles: list[Role], flavor: CertificateFlavor) -> None:
        """Roles keep order and duplicates; flavor survives."""
        statement = extract(serialize(roles, fca, flavor))

        assert statement.roles == [role.value for role in roles]
        assert statement.certificate_types == (flavor.oid,)

    def test_every_authority(self) -> None:
        """Every registered authority round-trips."""
        for code in supported_country_codes():
            authority = lookup(code)
            statement = extract(serialize([Role.PAYMENT_INITIATION], authority, CertificateFlavor.QWAC))

            assert statement.authority_name == authority.name
            assert statement.authority_id == authority.id


# --- Rendering Tests ---


class TestDescribe:
    """Tests for human-readable output."""

    def test_describe(self) -> None:
        """Statement renders on one line."""
        statement = extract(bytes.fromhex(PI_AI_HEX))

        assert describe(statement) == "CA { Name: Financial Conduct Authority ID: GB-FCA } Roles: [PSP_PI, PSP_AI]"

    def test_dump_from_hex(self) -> None:
        """Hex input is decoded and described."""
        assert dump_from_hex(AS_IC_HEX) == (
            "CA { Name: Financial Conduct Authority ID: GB-FCA } Roles: [PSP_AS, PSP_IC]"
        )

    def test_dump_invalid_hex_raises(self) -> None:
        """Non-hex input is a decoding error."""
        with pytest.raises(DecodingError):
            dump_from_hex("not hex")
