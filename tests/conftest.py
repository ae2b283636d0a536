"""Shared fixtures for the HaloPSA client tests."""

import json
from typing import Any, Optional
from unittest.mock import Mock

import pytest
import requests

from halopsa_api_client.auth import TokenManager
from halopsa_api_client.client import HaloPSAClient
from halopsa_api_client.config import HaloPSASettings

BASE_URL = "https://example.halopsa.com"


def make_response(
    status: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    content_type: Optional[str] = None,
) -> requests.Response:
    """Build a real ``requests.Response`` carrying the given body."""
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = content_type or "application/json; charset=utf-8"
    else:
        response._content = (text or "").encode("utf-8")
        response.headers["Content-Type"] = content_type or "text/plain"
    return response


def token_response(access_token: str = "tok-1", expires_in: int = 3600) -> requests.Response:
    return make_response(json_body={"access_token": access_token, "expires_in": expires_in})


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def sample_document():
    return {
        "info": {"title": "HaloPSA API", "version": "v1"},
        "servers": [{"url": "https://example.halopsa.com"}],
        "paths": {
            "/api/Tickets": {
                "get": {
                    "summary": "List of Tickets",
                    "description": "Returns tickets",
                    "operationId": "Tickets_Get",
                    "tags": ["Tickets"],
                    "parameters": [{"name": "open_only", "in": "query"}],
                    "responses": {"200": {"description": "Success"}},
                },
                "post": {
                    "summary": "Add or update Tickets",
                    "operationId": "Tickets_Post",
                    "tags": ["Tickets"],
                    "requestBody": {"content": {}},
                    "examples": {"minimal": [{"summary": "Printer on fire"}]},
                },
            },
            "/api/Actions": {
                "get": {"summary": "List of Actions", "tags": ["Actions"]},
            },
            "/api/Agent": {
                "get": {"description": "Agents without a summary", "tags": ["Agent"]},
                "post": {"summary": "Add or update Agents", "tags": ["Agent"]},
            },
            "/api/Client": {
                "get": {"summary": "List of Clients", "tags": ["Client"]},
            },
            "/api/Asset": {
                "get": {"summary": "List of Assets", "tags": ["Asset"]},
            },
            "/api/Distribution": {
                "get": {"summary": "Mailing lists", "tags": ["Distribution"]},
            },
        },
        "components": {
            "schemas": {
                "Faults": {"type": "object"},
                "Actions": {"type": "object"},
                "Area": {"type": "object"},
            }
        },
    }


@pytest.fixture
def swagger_file(tmp_path, sample_document):
    path = tmp_path / "swagger.json"
    path.write_text(json.dumps(sample_document), encoding="utf-8")
    return path


@pytest.fixture
def settings(swagger_file):
    return HaloPSASettings(
        url=BASE_URL + "/",
        client_id="client-id",
        client_secret="client-secret",
        tenant="example",
        swagger_path=swagger_file,
        timeout=5,
    )


@pytest.fixture
def client(settings, session, clock):
    tokens = TokenManager(
        settings.url,
        settings.client_id,
        settings.client_secret,
        session=session,
        timeout=settings.timeout,
        clock=clock,
    )
    return HaloPSAClient(settings, session=session, token_manager=tokens)
