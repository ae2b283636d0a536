"""
Result records returned by the API description browser.

Every record serializes with camelCase keys.  Fields typed
``Optional`` are only populated for some argument combinations and
are left out of :meth:`ApiResult.to_dict` output when unset.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-ready form, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class EndpointSummary(ApiResult):
    """One path of the document with its methods and first summary."""

    path: str
    methods: List[str]
    summary: str = ""
    category: str


class ApiSchemaOverview(ApiResult):
    info: Optional[Any] = None
    servers: Optional[Any] = None
    total_paths: int
    path_groups: Dict[str, List[str]]
    all_paths: List[EndpointSummary]
    message: str


class PathSummary(ApiResult):
    """Compact form of a matched path, used when ``summary_only`` is set."""

    methods: List[str]
    summary: str = ""


class MethodDetail(ApiResult):
    """Documentation of one operation of a matched path.

    ``parameters``, ``request_body`` and ``responses`` are filled only
    when schemas were requested; ``examples`` only when examples were
    requested and the operation has any.
    """

    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = None
    tags: Optional[Any] = None
    parameters: Optional[Any] = None
    request_body: Optional[Any] = None
    responses: Optional[Any] = None
    examples: Optional[Any] = None


class EndpointDetails(ApiResult):
    path_pattern: str
    matching_paths: Dict[str, Union[PathSummary, Dict[str, MethodDetail]]]
    match_count: int
    total_matches: int
    limited: bool
    components: Optional[Dict[str, Any]] = None


class EndpointList(ApiResult):
    total_endpoints: int
    endpoints: List[EndpointSummary]
    returned_count: int
    skipped: int
    limited: bool
    has_more: bool
    categories: List[str]
    message: str


class SearchHit(ApiResult):
    """A single (path, method) pair matching a search query."""

    path: str
    method: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[Any] = None


class EndpointSearch(ApiResult):
    query: str
    results: List[SearchHit]
    returned_count: int
    total_results: int
    skipped: int
    has_more: bool
    message: str


class SchemaListing(ApiResult):
    """A window of component schemas.

    Exactly one of ``schema_names`` and ``hint`` is set.
    """

    schemas: Dict[str, Any]
    returned_count: int
    matching_count: int
    total_schemas_in_api: int = Field(alias="totalSchemasInAPI")
    skipped: int
    limited: bool
    has_more: bool
    message: str
    schema_names: Optional[List[str]] = None
    hint: Optional[str] = None
