"""Elasticsearch adapter for the search engine contract, over its REST API."""

import json
import logging
from typing import Any

import httpx

from pxnote.engine.base import EngineError
from pxnote.records import IndexInfo, Record, SearchHit

logger = logging.getLogger(__name__)

# Default timeout for calls that do not pass their own
REQUEST_TIMEOUT = 30.0

# Number of failed bulk items echoed into the error message
MAX_REPORTED_FAILURES = 3


class ElasticsearchEngine:
    """Search engine backed by an Elasticsearch cluster.

    The sealed flag of a generation is stored in its mapping metadata
    (``_meta.sealed``) so that listing indices also tells which generations
    completed their population.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.Client | None = None,
    ):
        """Initialize the adapter.

        Args:
            base_url: Cluster URL, e.g. http://localhost:9200
            api_key: Optional API key sent as "Authorization: ApiKey <key>"
            timeout: Default timeout in seconds for every request
            client: Preconfigured client (mainly for tests)
        """
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"ApiKey {api_key}"
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    def _request(
        self,
        method: str,
        url: str,
        action: str,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise EngineError(f"{action} timed out") from e
        except httpx.RequestError as e:
            raise EngineError(f"{action} failed: {e}") from e

        if not response.is_success:
            raise EngineError(f"{action} returned HTTP {response.status_code}: {response.text[:200]}")
        return response

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise EngineError(f"{action} returned invalid JSON: {e}") from e

    # Index namespace operations

    def list_indices(self, prefix: str, timeout: float | None = None) -> list[IndexInfo]:
        response = self._request(
            "GET",
            f"/{prefix}_*/_mapping",
            f"Listing indices for {prefix!r}",
            timeout=timeout,
            params={"allow_no_indices": "true", "expand_wildcards": "open"},
        )
        indices = []
        for name, body in sorted(self._json(response, f"Listing indices for {prefix!r}").items()):
            meta = body.get("mappings", {}).get("_meta", {})
            indices.append(IndexInfo(name=name, sealed=bool(meta.get("sealed", False))))
        return indices

    def create_index(
        self,
        name: str,
        mapping: dict[str, Any],
        settings: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> None:
        body: dict[str, Any] = {"mappings": {**mapping, "_meta": {"sealed": False}}}
        if settings:
            body["settings"] = settings
        self._request("PUT", f"/{name}", f"Creating index {name}", timeout=timeout, json=body)

    def bulk_index(self, name: str, records: list[Record], timeout: float | None = None) -> None:
        if not records:
            return
        lines = []
        for record in records:
            lines.append(json.dumps({"index": {"_index": name, "_id": record.block_id}}))
            lines.append(json.dumps(record.to_document()))
        payload = "\n".join(lines) + "\n"

        response = self._request(
            "POST",
            "/_bulk",
            f"Bulk write into {name}",
            timeout=timeout,
            content=payload.encode("utf-8"),
            headers={"Content-Type": "application/x-ndjson"},
        )
        result = self._json(response, f"Bulk write into {name}")
        if not result.get("errors"):
            return

        failures = [
            item.get("index", {})
            for item in result.get("items", [])
            if item.get("index", {}).get("error")
        ]
        reasons = "; ".join(
            f"{f.get('_id')}: {f['error'].get('reason', f['error'].get('type'))}"
            for f in failures[:MAX_REPORTED_FAILURES]
        )
        raise EngineError(
            f"Bulk write into {name} rejected {len(failures)} of {len(records)} documents: {reasons}"
        )

    def seal_index(self, name: str, timeout: float | None = None) -> None:
        # Make every accepted document visible before declaring the index complete
        self._request("POST", f"/{name}/_refresh", f"Refreshing index {name}", timeout=timeout)
        self._request(
            "PUT",
            f"/{name}/_mapping",
            f"Sealing index {name}",
            timeout=timeout,
            json={"_meta": {"sealed": True}},
        )

    def delete_index(self, name: str, timeout: float | None = None) -> None:
        self._request("DELETE", f"/{name}", f"Deleting index {name}", timeout=timeout)

    # Reader operations

    def count(self, name: str) -> int:
        response = self._request("GET", f"/{name}/_count", f"Counting {name}")
        return int(self._json(response, f"Counting {name}")["count"])

    def search(
        self,
        name: str,
        query: str,
        limit: int = 20,
        source_type: str | None = None,
    ) -> list[SearchHit]:
        bool_query: dict[str, Any] = {
            "must": {"multi_match": {"query": query, "fields": ["title^2", "content"]}},
        }
        if source_type:
            bool_query["filter"] = [{"term": {"source_type": source_type}}]
        body = {
            "query": {"bool": bool_query},
            "size": limit,
            "highlight": {
                "pre_tags": [">>>"],
                "post_tags": ["<<<"],
                "fields": {"content": {}},
            },
        }
        response = self._request("POST", f"/{name}/_search", f"Searching {name}", json=body)

        hits = []
        for hit in self._json(response, f"Searching {name}").get("hits", {}).get("hits", []):
            source = hit.get("_source", {})
            highlights = hit.get("highlight", {}).get("content", [])
            hits.append(
                SearchHit(
                    block_id=source.get("block_id", hit.get("_id", "")),
                    page_id=source.get("page_id", ""),
                    title=source.get("title", ""),
                    content=source.get("content", ""),
                    snippet="...".join(highlights) if highlights else source.get("content", "")[:200],
                    source_type=source.get("source_type", ""),
                    block_kind=source.get("block_kind", ""),
                    position=source.get("position", 0),
                    score=hit.get("_score") or 0.0,
                )
            )
        return hits
