"""Turn an HTTP request into the parameter mapping of a named query."""

import json
import logging
import re
from typing import Any, Dict

from fastapi import Request

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")

BODY_METHODS = {"POST", "PUT"}


class InvalidRequestBody(ValueError):
    """The request body could not be decoded."""


def coerce_query_value(value: str) -> Any:
    """Convert numeric-looking query string values to int/float.

    Example:
        >>> coerce_query_value("10"), coerce_query_value("2.5"), coerce_query_value("ab")
        (10, 2.5, 'ab')
    """
    text = value.strip()
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return value


async def extract_params(request: Request) -> Dict[str, Any]:
    """Collect query string parameters, then merge a JSON or form body for POST/PUT.

    Body keys override query string keys. Repeated query keys keep the last value.

    Raises:
        InvalidRequestBody: The JSON body is malformed or not an object.
    """
    params: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        params[key] = coerce_query_value(value)

    if request.method not in BODY_METHODS:
        return params

    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        raw = await request.body()
        if raw.strip():
            try:
                body = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise InvalidRequestBody(f"Invalid JSON body: {exc.msg}") from exc
            if not isinstance(body, dict):
                raise InvalidRequestBody("JSON body must be an object")
            params.update(body)
    elif "application/x-www-form-urlencoded" in content_type or (
        "multipart/form-data" in content_type
    ):
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, str):
                params[key] = value
            else:
                logger.debug("Ignoring uploaded file field %s", key)
    return params
