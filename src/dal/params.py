"""Normalization shared by the per-provider parameter translators."""

import json
from typing import Any, Dict, Mapping, Optional

PARAM_SIGILS = (":", "$", "@")


def normalize_param_key(key: Any) -> str:
    """Return the bare parameter name (``":id"`` / ``"$id"`` / ``"@id"`` -> ``"id"``)."""
    text = str(key)
    if text[:1] in PARAM_SIGILS:
        return text[1:]
    return text


def coerce_param_value(value: Any) -> Any:
    """Bind containers as their JSON text; scalars pass through."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return value


def normalize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return a new dict keyed by bare names with driver-bindable values."""
    if not params:
        return {}
    return {normalize_param_key(key): coerce_param_value(value) for key, value in params.items()}
