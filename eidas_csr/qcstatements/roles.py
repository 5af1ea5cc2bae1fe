"""PSP roles and their object identifiers (ETSI TS 119 495 clause 5.1)."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from eidas_csr.exceptions import UnknownRoleError

# id-psd2-role ::= { itu-t(0) identified-organization(4) etsi(0) psd2(19495) id-role(1) }
ROLE_OID_PREFIX = "0.4.0.19495.1"


class Role(str, Enum):
    """Role of the Payment Service Provider."""

    ACCOUNT_SERVICING = "PSP_AS"
    PAYMENT_INITIATION = "PSP_PI"
    ACCOUNT_INFORMATION = "PSP_AI"
    PAYMENT_INSTRUMENTS = "PSP_IC"


_ROLE_CODES = MappingProxyType({
    Role.ACCOUNT_SERVICING: 1,
    Role.PAYMENT_INITIATION: 2,
    Role.ACCOUNT_INFORMATION: 3,
    Role.PAYMENT_INSTRUMENTS: 4,
})


def code_for(role: Role | str) -> int:
    """Return the final OID arc for a role token.

    Args:
        role: A Role member or its token, e.g. "PSP_AI".

    Returns:
        Integer code in 1..4.

    Raises:
        UnknownRoleError: If the token is not one of the four PSP roles.
    """
    try:
        return _ROLE_CODES[Role(role)]
    except ValueError:
        raise UnknownRoleError.for_role(str(role)) from None


def role_oid(role: Role | str) -> str:
    """Dotted object identifier for a role, e.g. "0.4.0.19495.1.3"."""
    return f"{ROLE_OID_PREFIX}.{code_for(role)}"


def parse_roles(value: str) -> list[Role]:
    """Parse a comma-separated role list such as "PSP_AS, PSP_PI".

    Raises:
        UnknownRoleError: If any token is outside the role set.
    """
    roles = []
    for raw in value.split(","):
        token = raw.strip()
        if not token:
            continue
        code_for(token)
        roles.append(Role(token))
    return roles
