"""Shared helpers: identifiers, response envelopes, key prefixes and partial updates."""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable
from typing import Any

CODE_SUCCESS = 200
CODE_FAILED = 500
CODE_NOT_FOUND = 400

KEY_PREFIX_SCENARIO = "scenario:"
KEY_PREFIX_TOPOLOGY = "topology:"
KEY_PREFIX_NETWORK = "network:"
KEY_PREFIX_COMPUTE = "compute:"
KEY_PREFIX_SERVICE = "service:"
KEY_PREFIX_TEST = "test:"

MERAK_TOPOLOGY = "TOPOLOGY"
MERAK_NETWORK = "NETWORK"
MERAK_COMPUTE = "COMPUTE"
MERAK_AGENT = "AGENT"


def gen_uuid() -> str:
    """Return a random UUID as 32 hex digits without hyphens."""
    return uuid.uuid4().hex


def response_message(status: str, message: str, data: Any) -> dict[str, Any]:
    """Build the JSON envelope every endpoint answers with."""
    return {"status": status, "message": message, "data": data}


def update_checker(src: Any, upt: Any) -> Any:
    """Pick the updated value unless it is the empty value of its kind.

    Strings (including string enums) count as empty when ``""``, integers
    when ``0`` and lists when they have no items. Values of any other kind
    are never replaced.
    """
    if upt is None or isinstance(src, bool):
        return src
    if isinstance(src, str):
        return upt if upt != "" else src
    if isinstance(src, int):
        return upt if upt != 0 else src
    if isinstance(src, (list, tuple)):
        return upt if len(upt) > 0 else src
    return src


def entity_update_check(
    check: Callable[[Any, Any], Any], origin: Any, update: Any
) -> None:
    """Merge ``update`` into ``origin`` field by field, in place, using ``check``."""
    if not dataclasses.is_dataclass(origin) or isinstance(origin, type):
        raise TypeError("origin must be a dataclass instance")
    if not isinstance(update, type(origin)):
        raise TypeError("update must be of the same type as origin")
    for field in dataclasses.fields(origin):
        merged = check(getattr(origin, field.name), getattr(update, field.name))
        setattr(origin, field.name, merged)