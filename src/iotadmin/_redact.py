"""Masking of object-store documents before they reach DEBUG logs.

Secrets live in known places: ``native.secret`` of ``system.config``,
``common.password`` of ``system.user.*`` and the ``native`` block of
adapter instances.  Instances also declare their sensitive native keys in
``common.encryptedNative`` and ``common.protectedNative``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from iotadmin._constants import ADAPTER_INSTANCE_RE, SYSTEM_CONFIG_ID, USER_ID_PREFIX

MASK = "<redacted>"

# Substrings of native keys that are masked on every adapter instance.
_SENSITIVE_FRAGMENTS: tuple[str, ...] = ("pass", "secret", "token", "cert", "key")


def redact_document(object_id: str, document: Any, *, max_string: int = 512) -> Any:
    """Return a copy of the store *document* of *object_id* safe for debug logs.

    Values at sensitive key paths are replaced by :data:`MASK`; long strings
    are truncated everywhere else.
    """
    clipped = _clip(document, max_string)
    if not isinstance(clipped, dict):
        return clipped

    common = clipped.get("common")
    native = clipped.get("native")

    if object_id == SYSTEM_CONFIG_ID:
        _mask_keys(native, {"secret"})
    elif object_id.startswith(USER_ID_PREFIX):
        _mask_keys(common, {"password"})
    elif ADAPTER_INSTANCE_RE.match(object_id) and isinstance(native, dict):
        declared: set[str] = set()
        if isinstance(common, dict):
            for list_key in ("encryptedNative", "protectedNative"):
                names = common.get(list_key)
                if isinstance(names, list):
                    declared.update(str(name) for name in names)
        _mask_keys(native, declared | {key for key in native if _is_sensitive(key)})
    return clipped


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def _mask_keys(block: Any, keys: set[str]) -> None:
    if not isinstance(block, dict):
        return
    for key in keys:
        if key in block:
            block[key] = MASK


def _clip(value: Any, max_string: int, _depth: int = 0) -> Any:
    if _depth > 20:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value
    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {str(k): _clip(v, max_string, _depth + 1) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [_clip(v, max_string, _depth + 1) for v in value]
    return repr(value)
