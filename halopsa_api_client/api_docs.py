"""
Read-only navigation of the HaloPSA API description document.

The HaloPSA swagger document lists several thousand paths, far too
many to hand to a caller at once.  :class:`ApiDescriptionBrowser`
answers narrower questions about it: an overview grouped by
category, the full documentation of paths matching a pattern, a
paginated endpoint listing, a free-text search over operations, and
a paginated lookup of component schemas.

The document is read from disk on every call and never modified.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from .exceptions import SchemaFetchError
from .models import (
    ApiSchemaOverview,
    EndpointDetails,
    EndpointList,
    EndpointSearch,
    EndpointSummary,
    MethodDetail,
    PathSummary,
    SchemaListing,
    SearchHit,
)

logger = logging.getLogger(__name__)

# Matched in order; the first substring found in the lowercased path wins.
CATEGORY_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("/actions",), "Actions"),
    (("/ticket",), "Tickets"),
    (("/agent",), "Agents"),
    (("/client",), "Clients"),
    (("/site",), "Sites"),
    (("/user",), "Users"),
    (("/asset",), "Assets"),
    (("/invoice",), "Invoicing"),
    (("/report",), "Reports"),
    (("/address",), "Addresses"),
    (("/appointment",), "Appointments"),
    (("/project",), "Projects"),
    (("/contract",), "Contracts"),
    (("/supplier",), "Suppliers"),
    (("/product",), "Products"),
    (("/kb", "/knowledge"), "Knowledge Base"),
    (("/integration",), "Integrations"),
    (("/webhook",), "Webhooks"),
    (("/api",), "API Management"),
)
DEFAULT_CATEGORY = "Other"

OVERVIEW_PATH_LIMIT = 100
MAX_DETAIL_ENDPOINTS = 50
DETAIL_SCHEMA_LIMIT = 20
SCHEMA_NAME_LIST_LIMIT = 20


def categorize_api_path(path: str) -> str:
    """Return the category label of an API path.

    >>> categorize_api_path("/api/Tickets/{id}/Asset")
    'Tickets'
    """
    lower_path = path.lower()
    for needles, label in CATEGORY_RULES:
        if any(needle in lower_path for needle in needles):
            return label
    return DEFAULT_CATEGORY


def load_api_description(source: Union[str, Path]) -> Dict[str, Any]:
    """Read and parse the description document at ``source``.

    Raises
    ------
    SchemaFetchError
        If the file cannot be read, is not valid JSON, or does not
        hold a JSON object.
    """
    try:
        with open(source, encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, ValueError) as exc:
        raise SchemaFetchError(
            f"Failed to load API description from {source}: {exc}"
        ) from exc
    if not isinstance(document, dict):
        raise SchemaFetchError(
            f"API description at {source} is not a JSON object"
        )
    return document


def _operations(path_obj: Any) -> Iterator[Tuple[str, Mapping[str, Any]]]:
    """Yield ``(method, operation)`` pairs of a path item in document order."""
    if not isinstance(path_obj, Mapping):
        return
    for method, operation in path_obj.items():
        yield method, operation if isinstance(operation, Mapping) else {}


def _methods_and_summary(path_obj: Any) -> Tuple[List[str], str]:
    methods: List[str] = []
    summary = ""
    for method, operation in _operations(path_obj):
        methods.append(method.upper())
        if not summary and operation.get("summary"):
            summary = operation["summary"]
    return methods, summary


def _summarize(path: str, path_obj: Any) -> EndpointSummary:
    methods, summary = _methods_and_summary(path_obj)
    return EndpointSummary(
        path=path,
        methods=methods,
        summary=summary,
        category=categorize_api_path(path),
    )


def _paths(document: Mapping[str, Any]) -> Mapping[str, Any]:
    return document.get("paths") or {}


def _component_schemas(document: Mapping[str, Any]) -> Mapping[str, Any]:
    components = document.get("components") or {}
    return components.get("schemas") or {}


class ApiDescriptionBrowser:
    """Query a HaloPSA API description document.

    Parameters
    ----------
    source : str or Path
        Location of the swagger/OpenAPI JSON document.
    """

    def __init__(self, source: Union[str, Path]) -> None:
        self.source = source

    def load(self) -> Dict[str, Any]:
        return load_api_description(self.source)

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------
    def get_api_schema_overview(self) -> ApiSchemaOverview:
        """Summarize the whole document.

        Groups every path by category and returns the first 100 path
        summaries in document order together with the document's
        ``info`` and ``servers`` entries.
        """
        document = self.load()
        path_groups: Dict[str, List[str]] = {}
        all_paths: List[EndpointSummary] = []
        for path, path_obj in _paths(document).items():
            endpoint = _summarize(path, path_obj)
            all_paths.append(endpoint)
            path_groups.setdefault(endpoint.category, []).append(path)

        return ApiSchemaOverview(
            info=document.get("info"),
            servers=document.get("servers"),
            total_paths=len(all_paths),
            path_groups=path_groups,
            all_paths=all_paths[:OVERVIEW_PATH_LIMIT],
            message=(
                "Use halopsa_get_api_endpoint_details with a specific path "
                "pattern to get full endpoint information"
            ),
        )

    # ------------------------------------------------------------------
    # Endpoint details
    # ------------------------------------------------------------------
    def get_api_endpoint_details(
        self,
        path_pattern: str,
        summary_only: bool = False,
        include_schemas: bool = True,
        max_endpoints: int = 10,
        include_examples: bool = False,
    ) -> EndpointDetails:
        """Return documentation for paths containing ``path_pattern``.

        At most ``min(max_endpoints, 50)`` paths are returned, taken in
        document order.  ``total_matches`` counts every matching path
        regardless of that cap and ``limited`` reports whether the cap
        was reached.

        Parameters
        ----------
        path_pattern : str
            Case-insensitive substring a path must contain.
        summary_only : bool, optional
            Return only the methods and first summary of each path.
        include_schemas : bool, optional
            Include parameters, request bodies and responses of each
            operation, and the first 20 component schemas.
        max_endpoints : int, optional
            Requested number of paths; capped at 50.
        include_examples : bool, optional
            Include the ``examples`` of operations that define them.
        """
        document = self.load()
        paths = _paths(document)
        pattern = path_pattern.lower()
        cap = min(max_endpoints, MAX_DETAIL_ENDPOINTS)

        matching_paths: Dict[str, Union[PathSummary, Dict[str, MethodDetail]]] = {}
        for path, path_obj in paths.items():
            if len(matching_paths) >= cap:
                break
            if pattern not in path.lower():
                continue
            if summary_only:
                methods, summary = _methods_and_summary(path_obj)
                matching_paths[path] = PathSummary(methods=methods, summary=summary)
            else:
                matching_paths[path] = {
                    method: self._method_detail(operation, include_schemas, include_examples)
                    for method, operation in _operations(path_obj)
                }

        match_count = len(matching_paths)
        result = EndpointDetails(
            path_pattern=path_pattern,
            matching_paths=matching_paths,
            match_count=match_count,
            total_matches=sum(1 for path in paths if pattern in path.lower()),
            limited=match_count >= cap,
        )
        if include_schemas and not summary_only and match_count > 0:
            schemas = _component_schemas(document)
            first = dict(list(schemas.items())[:DETAIL_SCHEMA_LIMIT])
            result.components = {"schemas": first} if first else {}
        return result

    @staticmethod
    def _method_detail(
        operation: Mapping[str, Any], include_schemas: bool, include_examples: bool
    ) -> MethodDetail:
        detail = MethodDetail(
            summary=operation.get("summary"),
            description=operation.get("description"),
            operation_id=operation.get("operationId"),
            tags=operation.get("tags"),
        )
        if include_schemas:
            detail.parameters = operation.get("parameters")
            detail.request_body = operation.get("requestBody")
            detail.responses = operation.get("responses")
        if include_examples and operation.get("examples"):
            detail.examples = operation["examples"]
        return detail

    # ------------------------------------------------------------------
    # Listing and search
    # ------------------------------------------------------------------
    def list_api_endpoints(
        self,
        category: Optional[str] = None,
        limit: int = 100,
        skip: int = 0,
    ) -> EndpointList:
        """List endpoints sorted by path, optionally within one category.

        ``categories`` always lists every category present in the
        document, so a caller can discover valid filter values.
        """
        document = self.load()
        limit, skip = max(limit, 0), max(skip, 0)

        endpoints = [
            _summarize(path, path_obj)
            for path, path_obj in _paths(document).items()
            if isinstance(path_obj, Mapping)
        ]
        categories = sorted({endpoint.category for endpoint in endpoints})
        if category:
            wanted = category.lower()
            endpoints = [e for e in endpoints if e.category.lower() == wanted]
        endpoints.sort(key=lambda e: e.path)

        page = endpoints[skip:skip + limit]
        total = len(endpoints)
        if category:
            message = f'Showing {len(page)} of {total} endpoints in category "{category}"'
        else:
            message = (
                f"Showing {len(page)} endpoints starting from position {skip}. "
                f"Total: {total}."
            )
        return EndpointList(
            total_endpoints=total,
            endpoints=page,
            returned_count=len(page),
            skipped=skip,
            limited=len(page) >= limit,
            has_more=skip + len(page) < total,
            categories=categories,
            message=message,
        )

    def search_api_endpoints(
        self,
        query: str,
        limit: int = 50,
        skip: int = 0,
    ) -> EndpointSearch:
        """Find operations whose path, summary, description or tags contain ``query``.

        Each matching method of a path is a separate hit.
        """
        document = self.load()
        limit, skip = max(limit, 0), max(skip, 0)
        needle = query.lower()

        hits: List[SearchHit] = []
        for path, path_obj in _paths(document).items():
            for method, operation in _operations(path_obj):
                tags = operation.get("tags") or []
                haystack = " ".join(
                    [
                        path,
                        operation.get("summary") or "",
                        operation.get("description") or "",
                        *[str(tag) for tag in tags],
                    ]
                ).lower()
                if needle in haystack:
                    hits.append(
                        SearchHit(
                            path=path,
                            method=method.upper(),
                            summary=operation.get("summary"),
                            description=operation.get("description"),
                            tags=operation.get("tags"),
                        )
                    )

        page = hits[skip:skip + limit]
        return EndpointSearch(
            query=query,
            results=page,
            returned_count=len(page),
            total_results=len(hits),
            skipped=skip,
            has_more=skip + len(page) < len(hits),
            message=(
                f'Found {len(hits)} endpoints matching "{query}". '
                f"Showing {len(page)} starting from position {skip}."
            ),
        )

    # ------------------------------------------------------------------
    # Component schemas
    # ------------------------------------------------------------------
    def get_api_schemas(
        self,
        schema_pattern: Optional[str] = None,
        limit: int = 50,
        skip: int = 0,
        list_names: bool = False,
    ) -> SchemaListing:
        """Return a window of component schemas, optionally filtered by name.

        The first ``skip`` matching schemas are passed over and the
        next ``limit`` are returned with their full definitions.  The
        sorted names of all matches are included when ``list_names``
        is set or there are at most 20 of them; otherwise ``hint``
        tells the caller how to ask for them.
        """
        document = self.load()
        limit, skip = max(limit, 0), max(skip, 0)
        all_schemas = _component_schemas(document)
        pattern = schema_pattern.lower() if schema_pattern else None

        schemas: Dict[str, Any] = {}
        matching_names: List[str] = []
        for name, schema_obj in all_schemas.items():
            if pattern is not None and pattern not in name.lower():
                continue
            matching_names.append(name)
            if len(matching_names) <= skip or len(schemas) >= limit:
                continue
            schemas[name] = schema_obj

        returned = len(schemas)
        if schema_pattern:
            message = (
                f"Showing {returned} of {len(matching_names)} schemas matching "
                f'"{schema_pattern}" (skipped {skip})'
            )
        else:
            message = (
                f"Showing {returned} schemas starting from position {skip}. "
                f"Total: {len(all_schemas)}."
            )
        result = SchemaListing(
            schemas=schemas,
            returned_count=returned,
            matching_count=len(matching_names),
            total_schemas_in_api=len(all_schemas),
            skipped=skip,
            limited=returned >= limit,
            has_more=skip + returned < len(matching_names),
            message=message,
        )
        if list_names or len(matching_names) <= SCHEMA_NAME_LIST_LIMIT:
            result.schema_names = sorted(matching_names)
        else:
            result.hint = (
                f"{len(matching_names)} schemas match. "
                "Set listNames=true to see all names."
            )
        logger.debug(
            "Schema lookup %r matched %d of %d", schema_pattern, len(matching_names), len(all_schemas)
        )
        return result
