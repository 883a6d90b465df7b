# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""JSON request encoding and response decoding."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from ..errors import ApiError, DecodingError, EncodingError

T = TypeVar("T")


def encode_json(value: Any) -> bytes:
    """Encode a request body as UTF-8 JSON."""
    try:
        return json.dumps(value, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"failed to encode request body: {exc}") from exc


def parse_error_response(status_code: int, body: bytes) -> ApiError:
    """
    Build an ApiError from an error body.

    Recognized shapes are {"message": str}, {"errorMessages": [str]} and
    {"errors": {field: str}}; anything else uses the raw body as the message.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        payload = json.loads(text) if text.strip() else None
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        return ApiError(status_code, message=text)

    message = payload.get("message")
    error_messages = payload.get("errorMessages")
    errors = payload.get("errors")

    message = message if isinstance(message, str) else ""
    error_messages = [str(item) for item in error_messages] if isinstance(error_messages, list) else []
    errors = {str(key): str(value) for key, value in errors.items()} if isinstance(errors, dict) else {}

    if not (message or error_messages or errors):
        return ApiError(status_code, message=text)
    return ApiError(status_code, message=message, error_messages=error_messages, errors=errors)


def decode_json_response(response: httpx.Response, target: Callable[[Any], T] | None = None) -> T | Any:
    """
    Read, close and decode a response body.

    Status >= 400 raises ApiError. Otherwise the JSON payload is returned, passed
    through `target` first when one is given (a dataclass `from_dict`, a model
    class, ...). An empty body decodes to None.
    """
    try:
        body = response.read()
    except httpx.HTTPError as exc:
        raise DecodingError(f"failed to read response body: {exc}") from exc
    finally:
        response.close()

    if response.status_code >= 400:
        raise parse_error_response(response.status_code, body)

    if not body.strip():
        return None

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise DecodingError(f"failed to decode response: {exc}") from exc

    if target is None:
        return payload
    return target(payload)


__all__ = ["decode_json_response", "encode_json", "parse_error_response"]
