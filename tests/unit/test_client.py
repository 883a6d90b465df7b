# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
import logging
from dataclasses import dataclass

import httpx
import pytest

from restcore import Client, ClientSettings, StdlibLogger
from restcore.auth import OAuth2Authenticator, OAuth2Config, OAuth2Token
from restcore.errors import ApiError, ConfigurationError
from restcore.pagination import CursorKind, PageOptions

BASE_URL = "https://example.atlassian.net"


@dataclass
class Project:
    key: str
    name: str


def _project(raw):  # noqa: ANN001
    return Project(key=raw["key"], name=raw["name"])


def test_client_requires_authenticator():
    with pytest.raises(ConfigurationError, match="authentication method is required"):
        Client(BASE_URL)


def test_constructors_validate_credentials():
    with pytest.raises(ConfigurationError):
        Client.with_api_token(BASE_URL, "", "token")
    with pytest.raises(ConfigurationError):
        Client.with_pat(BASE_URL, "")
    with pytest.raises(ConfigurationError):
        Client.with_basic_auth(BASE_URL, "user", "")
    with pytest.raises(ConfigurationError):
        Client.with_oauth2(BASE_URL, None)


def test_client_validates_settings():
    with pytest.raises(ConfigurationError, match="http or https"):
        Client.with_pat("ftp://example.com", "pat")
    with pytest.raises(ConfigurationError, match="timeout"):
        Client.with_pat(BASE_URL, "pat", settings=ClientSettings(timeout=0))


def test_with_oauth2_uses_bearer_token(make_server):
    server = make_server([httpx.Response(200, json={"accountId": "abc"})])
    oauth = OAuth2Authenticator(OAuth2Config(client_id="id", client_secret="s"), token=OAuth2Token("access-1"))

    with Client.with_oauth2(BASE_URL, oauth, http_client=server.client()) as client:
        assert client.request_json("GET", "rest/api/3/myself") == {"accountId": "abc"}

    assert server.requests[0].headers["Authorization"] == "Bearer access-1"


def test_request_json_sends_body_params_and_decodes(make_server):
    server = make_server([httpx.Response(201, json={"key": "PRJ", "name": "Project"})])
    client = Client.with_api_token(BASE_URL, "me@example.com", "token", http_client=server.client())

    project = client.request_json(
        "POST",
        "rest/api/3/project",
        body={"key": "PRJ"},
        params={"expand": "lead"},
        target=_project,
    )

    assert project == Project("PRJ", "Project")
    sent = server.requests[0]
    assert sent.method == "POST"
    assert sent.url.path == "/rest/api/3/project"
    assert sent.url.params["expand"] == "lead"
    assert json.loads(sent.content) == {"key": "PRJ"}
    assert sent.headers["Content-Type"] == "application/json"


def test_request_json_raises_api_error(make_server):
    server = make_server([httpx.Response(404, json={"errorMessages": ["Project does not exist"]})])
    client = Client.with_pat(BASE_URL, "pat", http_client=server.client())

    with pytest.raises(ApiError) as excinfo:
        client.request_json("GET", "rest/api/3/project/NOPE")

    assert excinfo.value.is_not_found
    assert str(excinfo.value) == "API error (HTTP 404): Project does not exist"


def test_paginate_offset_pages(make_server):
    projects = [{"key": f"P{i}", "name": f"Project {i}"} for i in range(5)]

    def handler(request):  # noqa: ANN001
        start = int(request.url.params["startAt"])
        size = int(request.url.params["maxResults"])
        page = projects[start : start + size]
        return httpx.Response(
            200,
            json={"startAt": start, "maxResults": size, "total": len(projects), "values": page},
        )

    server = make_server([handler])
    client = Client.with_pat(BASE_URL, "pat", http_client=server.client())

    keys = [p.key for p in client.paginate("rest/api/3/project/search", options=PageOptions(max_results=2), item=_project)]

    assert keys == ["P0", "P1", "P2", "P3", "P4"]
    assert [r.url.params["startAt"] for r in server.requests] == ["0", "2", "4"]


def test_paginate_token_pages(make_server):
    pages = {
        None: {"issues": [{"key": "A-1"}], "nextPageToken": "t1"},
        "t1": {"issues": [{"key": "A-2"}], "isLast": True},
    }

    def handler(request):  # noqa: ANN001
        return httpx.Response(200, json=pages[request.url.params.get("nextPageToken")])

    server = make_server([handler])
    client = Client.with_pat(BASE_URL, "pat", http_client=server.client())

    iterator = client.paginate(
        "rest/api/3/search/jql", items_key="issues", kind=CursorKind.TOKEN, params={"jql": "project = A"}
    )
    assert [issue["key"] for issue in iterator] == ["A-1", "A-2"]
    assert all(r.url.params["jql"] == "project = A" for r in server.requests)
    assert "nextPageToken" not in server.requests[0].url.params


def test_paginate_surfaces_api_error(make_server):
    server = make_server([httpx.Response(403, json={"message": "Forbidden"})])
    client = Client.with_pat(BASE_URL, "pat", http_client=server.client())

    iterator = client.paginate("rest/api/3/project/search")
    assert iterator.advance() is False
    assert isinstance(iterator.error, ApiError)
    assert iterator.error.is_forbidden


def test_paginate_rejects_bad_options():
    client = Client.with_pat(BASE_URL, "pat")
    with pytest.raises(ConfigurationError):
        client.paginate("rest/api/3/project/search", options=PageOptions(max_results=500))


def test_stdlib_logger_records_calls(make_server, caplog):
    server = make_server([httpx.Response(200, json={})])
    client = Client.with_pat(
        BASE_URL, "pat", http_client=server.client(), logger=StdlibLogger("restcore.test").with_fields(client="unit")
    )

    with caplog.at_level(logging.INFO, logger="restcore.test"):
        client.request_json("GET", "rest/api/3/myself")

    records = [r for r in caplog.records if r.name == "restcore.test"]
    assert len(records) == 1
    assert records[0].getMessage().startswith("request_completed ")
    assert records[0].fields["client"] == "unit"
    assert records[0].fields["status"] == 200
