from __future__ import annotations

from uuid import UUID

from edgedeploy.errors import InvalidIdentifierError


def parse_uuid(value: object, *, kind: str) -> str:
    raw = str(value or "").strip()
    try:
        return str(UUID(raw))
    except ValueError as exc:
        raise InvalidIdentifierError(kind=kind, value=value, reason=str(exc) or "invalid UUID") from exc
