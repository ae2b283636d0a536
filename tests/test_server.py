"""Tests for the MCP tool functions."""

import json
import logging

import pytest
from pydantic import ValidationError

from conftest import make_response, token_response
from halopsa_api_client import server
from halopsa_api_client.exceptions import ApiCallError, QueryError


@pytest.fixture(autouse=True)
def tool_client(client, monkeypatch):
    monkeypatch.setattr(server, "_client", client)
    return client


class TestApiTools:
    def test_query_returns_json(self, session):
        session.post.side_effect = [token_response(), make_response(json_body=[{"test": 1}])]

        result = server.halopsa_query(server.QueryInput(sql="SELECT 1 as test"))

        assert json.loads(result) == [{"test": 1}]

    def test_query_error_is_formatted(self, session):
        session.post.side_effect = [token_response(), make_response(400, text="Invalid column")]

        result = server.halopsa_query(server.QueryInput(sql="SELECT nope"))

        assert result.startswith("Error: Query execution failed: 400")

    def test_auth_error_is_formatted(self, session):
        session.post.return_value = make_response(401, text="invalid_client")

        result = server.halopsa_query(server.QueryInput(sql="SELECT 1"))

        assert result.startswith("Error: Authentication failed.")
        assert "invalid_client" in result

    def test_api_call_returns_text_unchanged(self, session):
        session.post.return_value = token_response()
        session.request.return_value = make_response(text="pong")

        result = server.halopsa_api_call(server.ApiCallInput(path="/api/Ping"))

        assert result == "pong"

    def test_api_call_forwards_arguments(self, session):
        session.post.return_value = token_response()
        session.request.return_value = make_response(json_body=[{"id": 5}])

        result = server.halopsa_api_call(
            server.ApiCallInput(
                path="/api/Tickets", method="POST", body=[{"summary": "x"}], query_params={"a": 1}
            )
        )

        assert json.loads(result) == [{"id": 5}]
        assert session.request.call_args.args[0] == "POST"

    def test_api_call_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            server.ApiCallInput(path="/api/Tickets", method="TRACE")

    def test_connection_tool(self, session):
        session.post.side_effect = [token_response(), make_response(json_body=[{"test": 1}])]

        assert server.halopsa_test_connection() == "Connection to HaloPSA succeeded."

    def test_connection_tool_failure(self, session):
        session.post.return_value = make_response(500, text="down")

        assert server.halopsa_test_connection().startswith("Error:")


class TestDescriptionTools:
    def test_overview(self):
        data = json.loads(server.halopsa_get_api_schema_overview())

        assert data["totalPaths"] == 6
        assert "Tickets" in data["pathGroups"]

    def test_endpoint_details(self):
        data = json.loads(
            server.halopsa_get_api_endpoint_details(
                server.EndpointDetailsInput(path_pattern="tickets", summary_only=True)
            )
        )

        assert data["matchingPaths"]["/api/Tickets"] == {
            "methods": ["GET", "POST"],
            "summary": "List of Tickets",
        }
        assert data["matchCount"] == 1

    def test_list_endpoints(self):
        data = json.loads(
            server.halopsa_list_api_endpoints(server.ListEndpointsInput(limit=2, skip=1))
        )

        assert data["returnedCount"] == 2
        assert data["skipped"] == 1
        assert data["hasMore"] is True

    def test_search_endpoints(self):
        data = json.loads(
            server.halopsa_search_api_endpoints(server.SearchEndpointsInput(query="agents"))
        )

        assert data["totalResults"] == 2

    def test_schemas(self):
        data = json.loads(
            server.halopsa_get_api_schemas(server.SchemasInput(schema_pattern="a", limit=1))
        )

        assert data["matchingCount"] == 3
        assert data["returnedCount"] == 1
        assert data["schemaNames"] == ["Actions", "Area", "Faults"]

    def test_missing_document_is_formatted(self, tool_client, tmp_path):
        tool_client.api_docs.source = tmp_path / "missing.json"

        result = server.halopsa_get_api_schema_overview()

        assert result.startswith("Error: Failed to load API description")


class TestErrorFormatting:
    def test_not_found(self):
        message = server._handle_error(ApiCallError("API call failed: 404 - x", status_code=404))

        assert message.startswith("Error: Resource not found.")

    def test_plain_error(self):
        assert server._handle_error(QueryError("boom")) == "Error: boom"

    def test_unexpected_error(self):
        assert server._handle_error(KeyError("k")) == "Error: KeyError: 'k'"


def test_configure_logging_sets_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

    server.configure_logging("debug")

    assert calls["level"] == logging.DEBUG


class TestToolInputBounds:
    @pytest.fixture
    def ten_ticket_paths(self, tool_client, tmp_path):
        paths = {f"/api/Tickets/sub{i:02d}": {"get": {"summary": f"Operation {i}"}} for i in range(10)}
        document = tmp_path / "ten.json"
        document.write_text(json.dumps({"paths": paths}), encoding="utf-8")
        tool_client.api_docs.source = document

    def test_large_max_endpoints_is_capped_by_the_browser(self, ten_ticket_paths):
        params = server.EndpointDetailsInput(path_pattern="tickets", max_endpoints=1000)

        data = json.loads(server.halopsa_get_api_endpoint_details(params))

        assert data["matchCount"] == 10
        assert data["limited"] is False

    def test_zero_limit_is_accepted(self):
        data = json.loads(server.halopsa_list_api_endpoints(server.ListEndpointsInput(limit=0)))

        assert data["returnedCount"] == 0
        assert data["hasMore"] is True

    def test_large_limits_are_accepted(self):
        search = server.SearchEndpointsInput(query="api", limit=5000)
        schemas = server.SchemasInput(limit=5000)

        assert json.loads(server.halopsa_search_api_endpoints(search))["hasMore"] is False
        assert json.loads(server.halopsa_get_api_schemas(schemas))["returnedCount"] == 3

    def test_negative_skip_is_rejected(self):
        with pytest.raises(ValidationError):
            server.ListEndpointsInput(skip=-1)
