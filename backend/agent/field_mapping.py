from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from agent.errors import MissingRequiredParameters


logger = logging.getLogger("lazya-backend.field_mapping")


def remap_fields(params: Mapping[str, Any], synonyms: Mapping[str, str]) -> dict[str, Any]:
    """Move alias keys onto canonical names.

    An alias is only moved when the canonical key is absent, so an explicit
    canonical value always wins and the alias is left in place.
    """
    mapped = dict(params or {})
    for alias, canonical in (synonyms or {}).items():
        if alias == canonical:
            continue
        if alias in mapped and canonical not in mapped:
            logger.debug("field_remap alias=%s canonical=%s", alias, canonical)
            mapped[canonical] = mapped.pop(alias)
    return mapped


def is_missing_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    return False


def find_missing_required(params: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    return [name for name in required if is_missing_value((params or {}).get(name))]


def ensure_required(params: Mapping[str, Any], required: Iterable[str]) -> None:
    missing = find_missing_required(params, required)
    if missing:
        raise MissingRequiredParameters(missing)
