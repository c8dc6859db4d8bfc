"""
Message template rendering.

Templates use named holes: ``"User {UserId} logged in from {@Client}"``.

- ``{Name}`` renders the property through the format provider; string values
  are quoted, matching how structured log viewers show them
- ``{Name:spec}`` passes ``spec`` to the format provider (no quoting)
- ``{@Name}`` renders the value as JSON
- ``{$Name}`` forces the stringified (quoted) form
- ``{{`` and ``}}`` are literal braces
- holes without a matching property are left as written
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Mapping, Protocol, runtime_checkable

import orjson

_HOLE = re.compile(r"\{\{|\}\}|\{([@$]?)([A-Za-z0-9_][A-Za-z0-9_.]*)(?::([^{}]*))?\}")


@runtime_checkable
class FormatProvider(Protocol):
    """Culture/format hook used when rendering values into records."""

    def format(self, value: Any, spec: str | None) -> str:  # pragma: no cover
        ...


class InvariantFormatProvider:
    """Locale-independent formatting.

    Datetimes render as ISO 8601, ``None`` as ``null`` and any explicit
    ``spec`` goes through the built-in ``format()``.
    """

    def format(self, value: Any, spec: str | None) -> str:
        if spec:
            try:
                return format(value, spec)
            except (TypeError, ValueError):
                pass
        if value is None:
            return "null"
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return str(value)


DEFAULT_FORMAT_PROVIDER = InvariantFormatProvider()


def to_json(value: Any, format_provider: FormatProvider | None = None) -> str:
    """Render ``value`` as JSON; unknown types fall back to the format provider.

    Values orjson rejects outright (integers wider than 64 bits, mappings
    with non-string keys) are normalized and rendered again; the result is
    always a JSON document.
    """
    provider = format_provider or DEFAULT_FORMAT_PROVIDER

    def _default(obj: Any) -> Any:
        if hasattr(obj, "model_dump"):
            return obj.model_dump(exclude_none=True)
        return provider.format(obj, None)

    try:
        return orjson.dumps(value, default=_default).decode("utf-8")
    except TypeError:
        # orjson.JSONEncodeError is a TypeError subclass
        pass
    try:
        normalized = _normalize(value, provider)
        return orjson.dumps(normalized, default=_default).decode("utf-8")
    except TypeError:
        return orjson.dumps(provider.format(value, None)).decode("utf-8")


def _normalize(value: Any, provider: FormatProvider, depth: int = 0) -> Any:
    if depth > 64:
        return provider.format(value, None)
    if isinstance(value, bool) or value is None or isinstance(value, (str, float)):
        return value
    if isinstance(value, int):
        if -(2**63) <= value < 2**64:
            return value
        return provider.format(value, None)
    if isinstance(value, Mapping):
        return {
            k if isinstance(k, str) else provider.format(k, None): _normalize(
                v, provider, depth + 1
            )
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize(v, provider, depth + 1) for v in value]
    return value


def render_value(
    value: Any,
    *,
    spec: str | None = None,
    hint: str = "",
    format_provider: FormatProvider | None = None,
) -> str:
    provider = format_provider or DEFAULT_FORMAT_PROVIDER
    if hint == "@":
        return to_json(value, provider)
    if spec:
        return provider.format(value, spec)
    if isinstance(value, str) or hint == "$":
        return '"' + provider.format(value, None) + '"'
    return provider.format(value, None)


def render_template(
    template: str,
    properties: Mapping[str, Any],
    format_provider: FormatProvider | None = None,
) -> str:
    def _replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        hint, name, spec = match.group(1), match.group(2), match.group(3)
        if name not in properties:
            return token
        return render_value(
            properties[name],
            spec=spec,
            hint=hint,
            format_provider=format_provider,
        )

    return _HOLE.sub(_replace, template)


__all__ = [
    "DEFAULT_FORMAT_PROVIDER",
    "FormatProvider",
    "InvariantFormatProvider",
    "render_template",
    "render_value",
    "to_json",
]
