# app/utils/experience_helpers.py
"""
Utilities for turning raw DB records (or dicts) into the Pydantic response
models declared in `app/schemas/suggestion.py` and `app/schemas/journey.py`.
"""
import json
from typing import Any, List, Mapping, MutableMapping, Optional, Union

import asyncpg

from app.schemas import journey as journey_schemas
from app.schemas import suggestion as suggestion_schemas
from app.schemas.collaboration import Role


def _ensure_mutable(record: Union[Mapping[str, Any], asyncpg.Record]) -> MutableMapping[str, Any]:
    """
    asyncpg.Record behaves like a Mapping but is immutable.
    Convert to dict so we can add / tweak keys.
    """
    return dict(record) if isinstance(record, (asyncpg.Record, Mapping)) else {}


def _decode_tags(raw: Any) -> List[str]:
    """jsonb comes back from asyncpg as text unless a codec is registered."""
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = json.loads(raw) if raw else []
    return [str(tag) for tag in raw]


def _build_location(data: Mapping[str, Any]) -> Optional[dict]:
    lat, lng = data.get("latitude"), data.get("longitude")
    if lat is None or lng is None:
        return None
    return {
        "lat": float(lat),
        "lng": float(lng),
        "address": data.get("address"),
        "place_id": data.get("place_id"),
    }


def build_suggestion(record: Union[Mapping[str, Any], asyncpg.Record]) -> suggestion_schemas.SuggestionOut:
    """
    Convert a `journey_experiences` row into `SuggestionOut`: flat
    latitude/longitude/address/place_id columns become a nested `location`,
    tags are decoded from JSON.
    """
    data = _ensure_mutable(record)
    data["location"] = _build_location(data)
    data["tags"] = _decode_tags(data.get("tags"))
    return suggestion_schemas.SuggestionOut.model_validate(data)


def build_suggestions(records) -> List[suggestion_schemas.SuggestionOut]:
    return [build_suggestion(r) for r in records]


def build_journey(
    record: Union[Mapping[str, Any], asyncpg.Record],
    *,
    requester_id: int,
) -> journey_schemas.JourneyOut:
    """
    Convert a journey row into `JourneyOut`, guaranteeing `role` is present.

    Rows from the journey listing already carry the collaborator role; a bare
    journey row (e.g. right after creation) falls back to comparing owner_id.
    """
    data = _ensure_mutable(record)
    if not data.get("role"):
        data["role"] = Role.OWNER if data.get("owner_id") == requester_id else Role.CONTRIBUTOR
    return journey_schemas.JourneyOut.model_validate(data)
