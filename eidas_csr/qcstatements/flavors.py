"""Qualified certificate types (ETSI EN 319 412-5 QcType)."""

from __future__ import annotations

from enum import Enum

from eidas_csr.exceptions import UnknownFlavorError

# id-etsi-qcs-QcType
QC_TYPE_OID = "0.4.0.1862.1.6"


class CertificateFlavor(str, Enum):
    """Certificate purpose a request is made for."""

    QWAC = "QWAC"
    QSEAL = "QSEAL"

    @property
    def oid(self) -> str:
        """QcType detail OID, qct-web (3) or qct-eseal (2)."""
        suffix = 3 if self is CertificateFlavor.QWAC else 2
        return f"{QC_TYPE_OID}.{suffix}"

    @classmethod
    def from_name(cls, name: str) -> CertificateFlavor:
        """Resolve a flavor from its name ("QWAC" or "QSEAL").

        Raises:
            UnknownFlavorError: If the name is neither.
        """
        try:
            return cls(name)
        except ValueError:
            raise UnknownFlavorError.for_flavor(name) from None


def require_flavor(flavor: object) -> CertificateFlavor:
    """Return flavor unchanged if it is a CertificateFlavor, else raise UnknownFlavorError."""
    if not isinstance(flavor, CertificateFlavor):
        raise UnknownFlavorError.for_flavor(flavor)
    return flavor
