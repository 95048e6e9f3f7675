"""HTTP content repository client.

Talks to a Sanity-style content lake over its HTTP API:
queries go to ``/data/query/<dataset>`` and writes are sent as
mutations to ``/data/mutate/<dataset>``.
"""

import logging
from typing import Any, Optional

import httpx

from src.services.content_repository import (
    ContentRepository,
    ContentRepositoryError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-01-01"
DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpContentRepository(ContentRepository):
    """Content repository client over the HTTP query and mutation API.

    Example:
        repo = HttpContentRepository(
            project_id="abc123",
            dataset="production",
            token="sk...",
        )
        pages = await repo.fetch('*[_type == "page"]{_id, title}')
    """

    def __init__(
        self,
        project_id: str,
        dataset: str,
        token: str = "",
        api_version: str = DEFAULT_API_VERSION,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the client.

        Args:
            project_id: Repository project ID.
            dataset: Dataset name.
            token: API token with read (and write, for mutations) access.
            api_version: Dated API version.
            base_url: Override for the API host, mainly for testing.
            timeout: Request timeout in seconds.
        """
        self._project_id = project_id
        self._dataset = dataset
        self._token = token
        self._api_version = api_version.lstrip("v")
        self._base_url = base_url or f"https://{project_id}.api.sanity.io"
        self._timeout = timeout

    def _get_url(self, endpoint: str) -> str:
        """Build the full URL for a data endpoint."""
        return f"{self._base_url}/v{self._api_version}/data/{endpoint}/{self._dataset}"

    def _get_headers(self) -> dict[str, str]:
        """Get request headers including auth when a token is configured."""
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _post(
        self,
        endpoint: str,
        body: dict[str, Any],
        query_params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """POST a JSON body to a data endpoint.

        Raises:
            ContentRepositoryError: On transport failure or non-2xx response.
        """
        url = self._get_url(endpoint)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    url,
                    json=body,
                    params=query_params,
                    headers=self._get_headers(),
                )
        except httpx.RequestError as e:
            logger.warning("Repository request to %s failed: %s", endpoint, e)
            raise ContentRepositoryError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise ContentRepositoryError(
                _extract_error_message(response),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            logger.warning("Repository returned invalid JSON from %s: %s", endpoint, e)
            raise ContentRepositoryError(f"Invalid JSON in response: {e}") from e
        if not isinstance(data, dict):
            raise ContentRepositoryError(
                f"Unexpected response body: expected an object, got {type(data).__name__}"
            )
        return data

    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Run a read query and return its ``result`` member."""
        body: dict[str, Any] = {"query": query}
        if params:
            body["params"] = params
        data = await self._post("query", body)
        return data.get("result")

    async def _mutate(self, mutation: dict[str, Any]) -> dict[str, Any]:
        """Apply one mutation and return the affected document."""
        data = await self._post(
            "mutate",
            {"mutations": [mutation]},
            query_params={"returnDocuments": "true"},
        )
        results = data.get("results") or []
        if results:
            first = results[0]
            return first.get("document") or {"_id": first.get("id")}
        return {}

    async def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Create a document via a ``create`` mutation."""
        return await self._mutate({"create": document})

    async def create_or_replace(self, document: dict[str, Any]) -> dict[str, Any]:
        """Write a document via a ``createOrReplace`` mutation."""
        return await self._mutate({"createOrReplace": document})

    async def patch(
        self,
        document_id: str,
        fields: dict[str, Any],
        unset: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """Patch a document via a ``patch`` mutation."""
        patch: dict[str, Any] = {"id": document_id}
        if fields:
            patch["set"] = fields
        if unset:
            patch["unset"] = list(unset)
        return await self._mutate({"patch": patch})

    async def delete(self, document_id: str) -> dict[str, Any]:
        """Delete a document via a ``delete`` mutation."""
        document = await self._mutate({"delete": {"id": document_id}})
        return document or {"_id": document_id}


def _extract_error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return error.get("description") or error.get("message") or str(error)
    if isinstance(error, str):
        return payload.get("message") or error
    return f"HTTP {response.status_code}"
