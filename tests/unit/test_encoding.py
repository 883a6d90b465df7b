# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
from dataclasses import dataclass

import httpx
import pytest

from restcore.errors import ApiError, DecodingError, EncodingError
from restcore.http.encoding import decode_json_response, encode_json, parse_error_response


@dataclass
class Issue:
    key: str
    summary: str

    @classmethod
    def from_dict(cls, payload):  # noqa: ANN001
        return cls(key=payload["key"], summary=payload["fields"]["summary"])


def test_encode_json_is_utf8():
    body = encode_json({"summary": "Café ✓", "labels": ["a"]})
    assert json.loads(body.decode("utf-8")) == {"summary": "Café ✓", "labels": ["a"]}
    assert "Café".encode() in body


@pytest.mark.parametrize(
    "value",
    [
        {"a": [1, 2.5, None, True], "b": {"c": "é"}},
        {"fields": {"summary": "Ünïcødé ✓ 日本語", "labels": ["x", "y"], "estimate": 0.125}},
        [{"id": 1, "done": False}, {"id": 2, "done": True, "parent": None}],
        {"nested": {"deeper": {"deepest": [[], {}, [1, [2, [3]]]]}}},
        {"negative": -17, "large": 12345678901234, "exp": 1.5e-7},
        "plain string",
        3.75,
        False,
    ],
)
def test_encoded_body_decodes_back_to_the_same_value(value):
    response = httpx.Response(200, content=encode_json(value))
    assert decode_json_response(response) == value


def test_encode_json_rejects_unserializable():
    with pytest.raises(EncodingError):
        encode_json({"when": object()})


def test_decode_returns_payload_and_closes_response():
    response = httpx.Response(200, stream=httpx.ByteStream(b'{"key": "KEY-1", "fields": {"summary": "Broken"}}'))
    assert not response.is_closed
    assert decode_json_response(response) == {"key": "KEY-1", "fields": {"summary": "Broken"}}
    assert response.is_closed


def test_decode_into_target():
    response = httpx.Response(200, json={"key": "KEY-1", "fields": {"summary": "Broken"}})
    assert decode_json_response(response, Issue.from_dict) == Issue("KEY-1", "Broken")


def test_decode_empty_body_is_none():
    assert decode_json_response(httpx.Response(204)) is None


def test_decode_invalid_json_raises_decoding_error():
    with pytest.raises(DecodingError):
        decode_json_response(httpx.Response(200, content=b"<html>"))


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"message": "Issue does not exist"}, "Issue does not exist"),
        ({"errorMessages": ["You do not have permission"], "errors": {}}, "You do not have permission"),
        ({"errorMessages": [], "errors": {"summary": "Field is required"}}, "summary: Field is required"),
    ],
)
def test_error_shapes(body, expected):
    response = httpx.Response(400, json=body)
    with pytest.raises(ApiError) as excinfo:
        decode_json_response(response)
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == f"API error (HTTP 400): {expected}"
    assert response.is_closed


def test_error_fields_are_kept():
    err = parse_error_response(400, json.dumps({"errorMessages": ["a", "b"], "errors": {"f": "bad"}}).encode())
    assert err.error_messages == ["a", "b"]
    assert err.errors == {"f": "bad"}


@pytest.mark.parametrize("body", [b"Service Unavailable", b"[1, 2]", b'{"unexpected": true}'])
def test_unrecognized_error_body_uses_raw_text(body):
    err = parse_error_response(503, body)
    assert err.status_code == 503
    assert err.message == body.decode()
    assert err.is_server_error


def test_not_found_predicate_from_response():
    with pytest.raises(ApiError) as excinfo:
        decode_json_response(httpx.Response(404, json={"errorMessages": ["Issue does not exist"]}))
    assert excinfo.value.is_not_found
