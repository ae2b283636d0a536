"""
Python client for interacting with the HaloPSA REST API.

This package provides a `HaloPSAClient` class that handles OAuth2
client‑credentials authentication against a HaloPSA instance, makes
authenticated requests to API endpoints and runs SQL report queries.
It can also browse the bundled HaloPSA API description to find out
which endpoints and schemas exist.

The client caches access tokens and automatically requests a new
token shortly before the current one expires.

Examples
--------

```python
from halopsa_api_client import HaloPSAClient, HaloPSASettings

# Credentials of an API application created under
# Configuration > Integrations > HaloPSA API
settings = HaloPSASettings(
    url="https://example.halopsa.com",
    client_id="YOUR_CLIENT_ID",
    client_secret="YOUR_CLIENT_SECRET",
    tenant="example",
)
client = HaloPSAClient(settings)

# Perform a GET request
agents = client.get("/api/Agent", params={"includeenabled": True})

# Find the endpoints dealing with tickets
found = client.search_api_endpoints("ticket", limit=10)
for hit in found.results:
    print(hit.method, hit.path)
```

Settings can also be read from ``HALOPSA_URL``, ``HALOPSA_CLIENT_ID``,
``HALOPSA_CLIENT_SECRET`` and ``HALOPSA_TENANT`` with
:func:`get_settings`.

The ``halopsa-mcp`` console script exposes the same operations as
Model Context Protocol tools over stdio.
"""

from .api_docs import ApiDescriptionBrowser, categorize_api_path
from .auth import Token, TokenManager
from .client import HaloPSAClient
from .config import HaloPSASettings, get_settings
from .exceptions import (
    ApiCallError,
    AuthenticationError,
    HaloPSAError,
    QueryError,
    SchemaFetchError,
)

__all__ = [
    "HaloPSAClient",
    "HaloPSASettings",
    "get_settings",
    "TokenManager",
    "Token",
    "ApiDescriptionBrowser",
    "categorize_api_path",
    "HaloPSAError",
    "AuthenticationError",
    "ApiCallError",
    "QueryError",
    "SchemaFetchError",
]
