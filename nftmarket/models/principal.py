"""Caller identity and address normalisation.

The core never authenticates anyone.  A ``Principal`` is built by the
surrounding auth layer and passed explicitly into every state-changing
operation; the ledger trusts it as-is.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")

ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(value: str) -> str:
    """Lowercase and validate a ``0x``-prefixed 20-byte hex address.

    Raises ``ValueError`` for anything that is not a well-formed address.
    """
    if not isinstance(value, str):
        raise ValueError(f"Address must be a string, got {type(value).__name__}")
    normalized = value.strip().lower()
    if not _ADDRESS_RE.match(normalized):
        raise ValueError(f"Invalid address: {value!r}")
    return normalized


class Principal(BaseModel):
    """An authenticated caller.

    Examples
    --------
    >>> Principal(address="0x" + "AB" * 20).address == "0x" + "ab" * 20
    True
    """

    model_config = ConfigDict(frozen=True)

    address: str

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        normalized = normalize_address(value)
        if normalized == ZERO_ADDRESS:
            raise ValueError("The zero address cannot act as a caller")
        return normalized

    def __str__(self) -> str:
        return self.address
