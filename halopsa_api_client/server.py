"""
HaloPSA MCP Server
Exposes the HaloPSA client as Model Context Protocol tools over stdio.

Setup:
  1. pip install halopsa-api-client
  2. Create an API application in HaloPSA (client credentials, scope "all")
  3. Set HALOPSA_URL, HALOPSA_CLIENT_ID, HALOPSA_CLIENT_SECRET and HALOPSA_TENANT
  4. Run `halopsa-mcp` from your MCP host configuration
"""

import json
import logging
import sys
from typing import Any, Dict, Literal, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .client import HaloPSAClient
from .config import get_settings
from .exceptions import HaloPSAError
from .models import ApiResult

logger = logging.getLogger(__name__)

mcp = FastMCP("halopsa_mcp")

_client: Optional[HaloPSAClient] = None

READ_ONLY = {
    "readOnlyHint": True,
    "destructiveHint": False,
    "idempotentHint": True,
    "openWorldHint": False,
}


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def get_client() -> HaloPSAClient:
    """Return the shared client, creating it from the environment on first use."""
    global _client
    if _client is None:
        _client = HaloPSAClient(get_settings())
    return _client


def _to_json(result: Any) -> str:
    if isinstance(result, ApiResult):
        result = result.to_dict()
    return json.dumps(result, indent=2, default=str)


def _handle_error(e: Exception) -> str:
    """Consistent error formatting."""
    if isinstance(e, HaloPSAError):
        if e.status_code == 401:
            return f"Error: Authentication failed. Check the HaloPSA client credentials. {e}"
        if e.status_code == 403:
            return f"Error: Permission denied. Check the API application's permissions. {e}"
        if e.status_code == 404:
            return f"Error: Resource not found. {e}"
        return f"Error: {e}"
    if isinstance(e, ValidationError):
        return f"Error: Invalid input: {e}"
    return f"Error: {type(e).__name__}: {e}"


# ─── Input Models ────────────────────────────────────────────────────────────


class QueryInput(BaseModel):
    """Input for running a report query."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    sql: str = Field(
        ...,
        description="SQL to run against the HaloPSA reporting database (e.g. 'SELECT TOP 10 faultid, symptom FROM faults')",
        min_length=1,
    )


class ApiCallInput(BaseModel):
    """Input for a generic authenticated API call."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    path: str = Field(..., description="API path, e.g. '/api/Tickets'", min_length=1)
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = Field(
        default="GET", description="HTTP method"
    )
    body: Optional[Any] = Field(default=None, description="Request body for POST, PUT and PATCH")
    query_params: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional query parameters"
    )


class EndpointDetailsInput(BaseModel):
    """Input for retrieving endpoint documentation."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    path_pattern: str = Field(
        ..., description="Case-insensitive substring of the path, e.g. 'tickets'", min_length=1
    )
    summary_only: bool = Field(default=False, description="Only return methods and summaries")
    include_schemas: bool = Field(
        default=True, description="Include parameters, request bodies and responses"
    )
    max_endpoints: int = Field(default=10, description="Maximum paths to return (at most 50 are returned)")
    include_examples: bool = Field(default=False, description="Include request/response examples")


class ListEndpointsInput(BaseModel):
    """Input for listing endpoints."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    category: Optional[str] = Field(
        default=None, description="Only list endpoints in this category, e.g. 'Tickets'"
    )
    limit: int = Field(default=100, description="Maximum endpoints to return", ge=0)
    skip: int = Field(default=0, description="Number of endpoints to skip", ge=0)


class SearchEndpointsInput(BaseModel):
    """Input for searching endpoints."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    query: str = Field(
        ..., description="Text to find in paths, summaries, descriptions and tags", min_length=1
    )
    limit: int = Field(default=50, description="Maximum results to return", ge=0)
    skip: int = Field(default=0, description="Number of results to skip", ge=0)


class SchemasInput(BaseModel):
    """Input for looking up component schemas."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    schema_pattern: Optional[str] = Field(
        default=None, description="Case-insensitive substring of the schema name"
    )
    limit: int = Field(default=50, description="Maximum schemas to return", ge=0)
    skip: int = Field(default=0, description="Number of matching schemas to skip", ge=0)
    list_names: bool = Field(default=False, description="Always list all matching schema names")


# ─── Tools: API calls ────────────────────────────────────────────────────────


@mcp.tool(
    name="halopsa_query",
    annotations={
        "title": "Run HaloPSA Report Query",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
def halopsa_query(params: QueryInput) -> str:
    """Run a SQL query against the HaloPSA reporting database.

    Args:
        params: The SQL statement.

    Returns:
        str: The report response as JSON.
    """
    try:
        return _to_json(get_client().execute_query(params.sql))
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_api_call",
    annotations={
        "title": "Call HaloPSA API",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
def halopsa_api_call(params: ApiCallInput) -> str:
    """Make an authenticated request to any HaloPSA API endpoint.

    Use the halopsa_*_api_* tools first to find the right path and body.

    Args:
        params: Path, method, optional body and query parameters.

    Returns:
        str: The response as JSON, or the raw response text.
    """
    try:
        result = get_client().call_api(
            params.path, params.method, params.body, params.query_params
        )
        return result if isinstance(result, str) else _to_json(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_test_connection",
    annotations={"title": "Test HaloPSA Connection", **READ_ONLY, "openWorldHint": True},
)
def halopsa_test_connection() -> str:
    """Check that the configured credentials can authenticate and query HaloPSA."""
    if get_client().test_connection():
        return "Connection to HaloPSA succeeded."
    return "Error: Connection to HaloPSA failed. Check the server log for details."


# ─── Tools: API description ──────────────────────────────────────────────────


@mcp.tool(
    name="halopsa_get_api_schema_overview",
    annotations={"title": "HaloPSA API Overview", **READ_ONLY},
)
def halopsa_get_api_schema_overview() -> str:
    """Get an overview of the HaloPSA API: endpoint categories and the first 100 paths."""
    try:
        return _to_json(get_client().get_api_schema_overview())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_get_api_endpoint_details",
    annotations={"title": "HaloPSA API Endpoint Details", **READ_ONLY},
)
def halopsa_get_api_endpoint_details(params: EndpointDetailsInput) -> str:
    """Get documentation for the API paths matching a pattern.

    Args:
        params: Path pattern and detail options.

    Returns:
        str: Matching paths with their operations as JSON.
    """
    try:
        result = get_client().get_api_endpoint_details(
            params.path_pattern,
            summary_only=params.summary_only,
            include_schemas=params.include_schemas,
            max_endpoints=params.max_endpoints,
            include_examples=params.include_examples,
        )
        return _to_json(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_list_api_endpoints",
    annotations={"title": "List HaloPSA API Endpoints", **READ_ONLY},
)
def halopsa_list_api_endpoints(params: ListEndpointsInput) -> str:
    """List API endpoints sorted by path, optionally within a category."""
    try:
        result = get_client().list_api_endpoints(
            params.category, limit=params.limit, skip=params.skip
        )
        return _to_json(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_search_api_endpoints",
    annotations={"title": "Search HaloPSA API Endpoints", **READ_ONLY},
)
def halopsa_search_api_endpoints(params: SearchEndpointsInput) -> str:
    """Search API operations by path, summary, description or tag."""
    try:
        result = get_client().search_api_endpoints(
            params.query, limit=params.limit, skip=params.skip
        )
        return _to_json(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="halopsa_get_api_schemas",
    annotations={"title": "HaloPSA API Schemas", **READ_ONLY},
)
def halopsa_get_api_schemas(params: SchemasInput) -> str:
    """Look up request/response schema definitions by name."""
    try:
        result = get_client().get_api_schemas(
            params.schema_pattern,
            limit=params.limit,
            skip=params.skip,
            list_names=params.list_names,
        )
        return _to_json(result)
    except Exception as e:
        return _handle_error(e)


# ─── Entry Point ─────────────────────────────────────────────────────────────


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting HaloPSA MCP server for %s (tenant %s)", settings.url, settings.tenant)
    mcp.run()


if __name__ == "__main__":
    main()
