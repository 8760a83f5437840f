# app/services/addresses/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class AddressIn:
    """
    Address write request.

    :param type: ``billing`` or ``shipping``.
    :type type: str
    :param fields: Address fields (already validated at the boundary).
    :type fields: dict
    :param is_default: Default flag; ``None`` keeps the stored value.
    :type is_default: bool | None
    """

    type: str
    fields: dict[str, Any] = field(default_factory=dict)
    is_default: bool | None = None


@dataclass(frozen=True, slots=True)
class AddressBookOut:
    billing: dict[str, str] | None = None
    shipping: dict[str, str] | None = None
    default_billing: bool = False
    default_shipping: bool = False
