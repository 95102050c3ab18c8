"""JSON payload helpers shared by the API clients."""

import json
from typing import Any, Dict, Optional


def extract_json_value(payload: Any, key: str) -> Optional[str]:
    """Returns ``payload[key]`` as text, or ``None`` when absent, empty or null."""
    if not isinstance(payload, dict):
        return None

    value = payload.get(key)
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "null":
        return None
    return text


def response_json(response) -> Optional[Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def loads_object(raw: str) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return None
    return payload if isinstance(payload, dict) else None
