"""National competent authorities under PSD2.

Maps ISO 3166-1 alpha-2 codes to the NCA name and identifier carried in
the qualified statement. See ETSI TS 119 495 V1.2.1 (2018-11) Annex D.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from eidas_csr.exceptions import UnknownCountryCodeError


@dataclass(frozen=True)
class CompetentAuthority:
    """Competent authority under PSD2.

    Attributes:
        name: Name of the authority, e.g. "Financial Conduct Authority".
        id: NCA identifier of the authority, e.g. "GB-FCA".
    """

    name: str
    id: str


_AUTHORITIES = MappingProxyType({
    "AT": CompetentAuthority("Austria Financial Market Authority", "AT-FMA"),
    "BE": CompetentAuthority("National Bank of Belgium", "BE-NBB"),
    "BG": CompetentAuthority("Bulgarian National Bank", "BG-BNB"),
    "HR": CompetentAuthority("Croatian National Bank", "HR-CNB"),
    "CY": CompetentAuthority("Central Bank of Cyprus", "CY-CBC"),
    "CZ": CompetentAuthority("Czech National Bank", "CZ-CNB"),
    "DK": CompetentAuthority("Danish Financial Supervisory Authority", "DK-DFSA"),
    "EE": CompetentAuthority("Estonia Financial Supervisory Authority", "EE-FI"),
    "FI": CompetentAuthority("Finnish Financial Supervisory Authority", "FI-FINFSA"),
    "FR": CompetentAuthority("Prudential Supervisory and Resolution Authority", "FR-ACPR"),
    "DE": CompetentAuthority("Federal Financial Supervisory Authority", "DE-BAFIN"),
    "GR": CompetentAuthority("Bank of Greece", "GR-BOG"),
    "HU": CompetentAuthority("Central Bank of Hungary", "HU-CBH"),
    "IS": CompetentAuthority("Financial Supervisory Authority", "IS-FME"),
    "IE": CompetentAuthority("Central Bank of Ireland", "IE-CBI"),
    "IT": CompetentAuthority("Bank of Italy", "IT-BI"),
    "LI": CompetentAuthority("Financial Market Authority Liechtenstein", "LI-FMA"),
    "LV": CompetentAuthority("Financial and Capital Markets Commission", "LV-FCMC"),
    "LT": CompetentAuthority("Bank of Lithuania", "LT-BL"),
    "LU": CompetentAuthority("Commission for the Supervision of Financial Sector", "LU-CSSF"),
    "NO": CompetentAuthority("The Financial Supervisory Authority of Norway", "NO-FSA"),
    "MT": CompetentAuthority("Malta Financial Services Authority", "MT-MFSA"),
    "NL": CompetentAuthority("The Netherlands Bank", "NL-DNB"),
    "PL": CompetentAuthority("Polish Financial Supervision Authority", "PL-PFSA"),
    "PT": CompetentAuthority("Bank of Portugal", "PT-BP"),
    "RO": CompetentAuthority("National bank of Romania", "RO-NBR"),
    "SK": CompetentAuthority("National Bank of Slovakia", "SK-NBS"),
    "SI": CompetentAuthority("Bank of Slovenia", "SI-BS"),
    "ES": CompetentAuthority("Bank of Spain", "ES-BE"),
    "SE": CompetentAuthority("Swedish Financial Supervision Authority", "SE-FINA"),
    "GB": CompetentAuthority("Financial Conduct Authority", "GB-FCA"),
})


def lookup(country_code: str) -> CompetentAuthority:
    """Return the competent authority for an ISO 3166-1 alpha-2 code.

    Args:
        country_code: Uppercase two-letter country code, e.g. "GB".

    Returns:
        The registered CompetentAuthority.

    Raises:
        UnknownCountryCodeError: If no authority is registered for the code.
    """
    try:
        return _AUTHORITIES[country_code]
    except KeyError:
        raise UnknownCountryCodeError.for_code(country_code) from None


def supported_country_codes() -> tuple[str, ...]:
    """Country codes with a registered competent authority, sorted."""
    return tuple(sorted(_AUTHORITIES))


def all_authorities() -> MappingProxyType[str, CompetentAuthority]:
    """Read-only view of the full authority table."""
    return _AUTHORITIES
