"""
Client implementation for the HaloPSA REST API.

This module defines the :class:`HaloPSAClient` class which
authenticates against the HaloPSA authorization server using the
OAuth2 client credentials grant, performs HTTP requests against
HaloPSA API endpoints and runs SQL report queries.  It also exposes
the navigation operations of :class:`~.api_docs.ApiDescriptionBrowser`
so that a caller can discover which endpoints exist before calling
them.

Usage
-----

.. code-block:: python

    from halopsa_api_client import HaloPSAClient, HaloPSASettings

    settings = HaloPSASettings(
        url="https://example.halopsa.com",
        client_id="abc123",
        client_secret="shhsecret",
        tenant="example",
    )
    client = HaloPSAClient(settings)

    # List open tickets
    tickets = client.get("/api/Tickets", params={"open_only": True})

    # Run a report query
    rows = client.execute_query("SELECT faultid, symptom FROM faults")

Every request carries the ``tenant`` query parameter required by
HaloPSA.  The access token is fetched on first use and reused until
shortly before it expires.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .api_docs import ApiDescriptionBrowser
from .auth import TokenManager
from .config import HaloPSASettings
from .exceptions import ApiCallError, QueryError
from .models import (
    ApiSchemaOverview,
    EndpointDetails,
    EndpointList,
    EndpointSearch,
    SchemaListing,
)

logger = logging.getLogger(__name__)

_BODY_METHODS = {"POST", "PUT", "PATCH"}


def _format_param(value: Any) -> str:
    """Render a query value the way HaloPSA expects: lowercase booleans, comma-joined lists."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        return ",".join(_format_param(item) for item in value)
    return str(value)


class HaloPSAClient:
    """A client for the HaloPSA REST API.

    Parameters
    ----------
    settings : HaloPSASettings
        Instance URL, client credentials, tenant, request timeout and
        location of the API description document.
    session : requests.Session, optional
        Transport shared by the token exchange and all API requests.
        A new session is created when omitted.
    token_manager : TokenManager, optional
        Override the token manager, e.g. to control its clock.

    Notes
    -----
    The client caches the access token and its expiry time.  The
    cached token is reused until 60 seconds before the lifetime
    reported by the server runs out.  The token is shared by all
    calls on the same instance without locking; concurrent callers
    may occasionally authenticate twice.
    """

    def __init__(
        self,
        settings: HaloPSASettings,
        *,
        session: Optional[requests.Session] = None,
        token_manager: Optional[TokenManager] = None,
    ) -> None:
        self.settings = settings
        self.base_url = settings.url
        self.tenant = settings.tenant
        self.timeout = settings.timeout
        self._session = session or requests.Session()
        self.tokens = token_manager or TokenManager(
            settings.url,
            settings.client_id,
            settings.client_secret,
            session=self._session,
            timeout=settings.timeout,
        )
        self.api_docs = ApiDescriptionBrowser(settings.description_path)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def authenticate(self) -> None:
        """Make sure a valid access token is cached.

        Raises
        ------
        AuthenticationError
            If a new token is needed and the exchange fails.
        """
        self.tokens.ensure_valid()

    def _auth_headers(self) -> Dict[str, str]:
        token = self.tokens.ensure_valid()
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # HTTP request helpers
    # ------------------------------------------------------------------
    def _query_params(self, query_params: Optional[Dict[str, Any]]) -> List[Tuple[str, str]]:
        """Build the query string: ``tenant`` first, then non-null caller values."""
        params = [("tenant", self.tenant)]
        for key, value in (query_params or {}).items():
            if value is None:
                continue
            params.append((key, _format_param(value)))
        return params

    def call_api(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform an authenticated request against the HaloPSA API.

        Parameters
        ----------
        path : str
            Endpoint path appended to the instance URL, e.g.
            ``"/api/Tickets"``.  It may carry its own query string.
        method : str, optional
            The HTTP verb.  Defaults to ``"GET"``.
        body : object, optional
            Request body for POST, PUT and PATCH.  Strings are sent
            unchanged; anything else is serialised as JSON.  Ignored
            for other methods.
        query_params : dict, optional
            Extra query parameters.  Entries whose value is ``None``
            are dropped.

        Returns
        -------
        Any
            The parsed JSON document when the response is JSON,
            otherwise the response text.

        Raises
        ------
        ApiCallError
            If the request cannot be sent, the server answers with an
            error status, or a JSON response cannot be decoded.
        AuthenticationError
            If a token refresh fails.
        """
        method = method.upper()
        url = f"{self.base_url}{path}"
        headers = self._auth_headers()
        data = None
        if body is not None and method in _BODY_METHODS:
            data = body if isinstance(body, str) else json.dumps(body)

        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                params=self._query_params(query_params),
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiCallError(f"Failed to make API call: {exc}") from exc

        if not response.ok:
            raise ApiCallError(
                f"API call failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        content_type = response.headers.get("Content-Type", "").lower()
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                raise ApiCallError(
                    f"Failed to decode JSON response from {url}: {exc}",
                    status_code=response.status_code,
                    body=response.text,
                ) from exc
        if "charset" not in content_type:
            response.encoding = "utf-8"
        return response.text

    # ------------------------------------------------------------------
    # Public convenience methods
    # ------------------------------------------------------------------
    def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a GET request.

        See :meth:`call_api` for full parameter documentation.
        """
        return self.call_api(path, "GET", query_params=params)

    def post(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform a POST request.

        HaloPSA creates and updates records by POSTing a list of
        objects, e.g. ``client.post("/api/Tickets", json=[{...}])``.
        """
        return self.call_api(path, "POST", body=json, query_params=params)

    def put(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform a PUT request."""
        return self.call_api(path, "PUT", body=json, query_params=params)

    def patch(
        self,
        path: str,
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform a PATCH request."""
        return self.call_api(path, "PATCH", body=json, query_params=params)

    def delete(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """Perform a DELETE request."""
        return self.call_api(path, "DELETE", query_params=params)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------
    def execute_query(self, sql: str) -> Any:
        """Run a SQL query through the HaloPSA report engine.

        The query is posted to ``/api/Report`` as an unsaved report
        (``_loadreportonly``) and the parsed response is returned
        exactly as the server sent it.

        Raises
        ------
        QueryError
            If the request cannot be sent, the server answers with an
            error status, or the response is not JSON.
        AuthenticationError
            If a token refresh fails.
        """
        url = f"{self.base_url}/api/Report"
        headers = self._auth_headers()
        headers["Accept"] = "*/*"
        payload = [{"_loadreportonly": True, "sql": sql}]

        logger.debug("Executing report query: %s", sql)
        try:
            response = self._session.post(
                url,
                params={"tenant": self.tenant},
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise QueryError(f"Failed to execute query: {exc}") from exc

        if not response.ok:
            raise QueryError(
                f"Query execution failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise QueryError(
                f"Query response was not valid JSON: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

    def test_connection(self) -> bool:
        """Return ``True`` if the client can authenticate and run a query.

        Failures are logged and reported as ``False``; nothing is raised.
        """
        try:
            self.authenticate()
            self.execute_query("SELECT 1 as test")
        except Exception as exc:
            logger.error("Connection test failed: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # API description navigation
    # ------------------------------------------------------------------
    def get_api_schema_overview(self) -> ApiSchemaOverview:
        """See :meth:`ApiDescriptionBrowser.get_api_schema_overview`."""
        return self.api_docs.get_api_schema_overview()

    def get_api_endpoint_details(
        self,
        path_pattern: str,
        summary_only: bool = False,
        include_schemas: bool = True,
        max_endpoints: int = 10,
        include_examples: bool = False,
    ) -> EndpointDetails:
        """See :meth:`ApiDescriptionBrowser.get_api_endpoint_details`."""
        return self.api_docs.get_api_endpoint_details(
            path_pattern,
            summary_only=summary_only,
            include_schemas=include_schemas,
            max_endpoints=max_endpoints,
            include_examples=include_examples,
        )

    def list_api_endpoints(
        self, category: Optional[str] = None, limit: int = 100, skip: int = 0
    ) -> EndpointList:
        """See :meth:`ApiDescriptionBrowser.list_api_endpoints`."""
        return self.api_docs.list_api_endpoints(category, limit=limit, skip=skip)

    def search_api_endpoints(self, query: str, limit: int = 50, skip: int = 0) -> EndpointSearch:
        """See :meth:`ApiDescriptionBrowser.search_api_endpoints`."""
        return self.api_docs.search_api_endpoints(query, limit=limit, skip=skip)

    def get_api_schemas(
        self,
        schema_pattern: Optional[str] = None,
        limit: int = 50,
        skip: int = 0,
        list_names: bool = False,
    ) -> SchemaListing:
        """See :meth:`ApiDescriptionBrowser.get_api_schemas`."""
        return self.api_docs.get_api_schemas(
            schema_pattern, limit=limit, skip=skip, list_names=list_names
        )
