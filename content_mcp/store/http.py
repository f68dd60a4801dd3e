"""Remote content store client over the HTTP data API.

Endpoints used (relative to ``https://<project>.<host>/v<version>``):

- ``GET  /data/doc/<dataset>/<id>``: fetch one document
- ``POST /data/query/<dataset>``: run a query with parameters
- ``POST /data/mutate/<dataset>``: commit a transaction

``requests`` is blocking, so calls run in a worker thread to keep the event
loop free.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import requests

from ..exceptions import ConcurrencyConflict
from ..exceptions import StoreError
from .base import CommitResult
from .base import StoreClient

logger = logging.getLogger(__name__)

_QUOTED_RE = re.compile(r'"([^"]+)"')


class HttpStoreClient(StoreClient):
    """Client for a hosted dataset."""

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        token: str | None = None,
        api_host: str = "api.sanity.io",
        api_version: str = "2025-02-19",
        use_cdn: bool = False,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        if not project_id:
            raise StoreError("configure", "A project id is required for the HTTP store")
        self._project_id = project_id
        self._dataset = dataset
        self.timeout = timeout
        host = "apicdn.sanity.io" if use_cdn and api_host == "api.sanity.io" else api_host
        self.base_url = f"https://{project_id}.{host}/v{api_version.lstrip('v')}"
        # Mutations always go to the live API, never the CDN
        self.mutate_url = f"https://{project_id}.{api_host}/v{api_version.lstrip('v')}/data/mutate/{dataset}"
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings) -> HttpStoreClient:
        return cls(
            project_id=settings.store_project_id,
            dataset=settings.store_dataset,
            token=settings.store_api_token,
            api_host=settings.store_api_host,
            api_version=settings.store_api_version,
            use_cdn=settings.store_use_cdn,
            timeout=settings.store_timeout,
        )

    @property
    def store_type(self) -> str:
        return "http"

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def dataset(self) -> str:
        return self._dataset

    # --- Transport ---

    def _request(self, operation: str, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise StoreError(operation, f"{type(e).__name__}: {e}") from e

    @staticmethod
    def _error_description(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or f"HTTP {response.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("description") or error.get("type") or str(error)
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return str(error or body)

    def _raise_for_status(self, operation: str, response: requests.Response, details: dict[str, Any] | None = None):
        if response.ok:
            return
        raise StoreError(
            operation,
            self._error_description(response),
            status_code=response.status_code,
            details=details,
        )

    # --- StoreClient ---

    async def fetch_document(self, document_id: str) -> dict[str, Any] | None:
        url = f"{self.base_url}/data/doc/{self._dataset}/{document_id}"
        response = await asyncio.to_thread(self._request, "fetch_document", "GET", url)
        if response.status_code == 404:
            return None
        self._raise_for_status("fetch_document", response, {"document_id": document_id})
        documents = response.json().get("documents") or []
        return documents[0] if documents else None

    async def run_query(self, query: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/data/query/{self._dataset}"
        payload: dict[str, Any] = {"query": query}
        if params:
            payload["params"] = params
        response = await asyncio.to_thread(self._request, "run_query", "POST", url, json=payload)
        self._raise_for_status("run_query", response, {"query": query})
        return response.json().get("result")

    async def commit_transaction(self, mutations, options) -> CommitResult:
        response = await asyncio.to_thread(
            self._request,
            "commit_transaction",
            "POST",
            self.mutate_url,
            params=options.to_query_params(),
            json={"mutations": mutations},
        )
        if response.status_code == 409:
            description = self._error_description(response)
            if "revision" in description.lower():
                raise self._conflict(description, mutations)
        self._raise_for_status("commit_transaction", response, {"mutation_count": len(mutations)})

        body = response.json()
        results = body.get("results") or []
        logger.debug("Committed transaction %s with %d results", body.get("transactionId"), len(results))
        return CommitResult(
            transaction_id=body.get("transactionId", ""),
            results=results,
            document_ids=body.get("documentIds") or [result.get("id") for result in results if result.get("id")],
        )

    @staticmethod
    def _conflict(description: str, mutations: list[dict[str, Any]]) -> ConcurrencyConflict:
        guarded = [
            mutation["patch"]
            for mutation in mutations
            if "patch" in mutation and mutation["patch"].get("ifRevisionID")
        ]
        quoted = _QUOTED_RE.findall(description)
        target = next((patch for patch in guarded if patch["id"] in quoted), guarded[0] if guarded else None)
        document_id = target["id"] if target else (quoted[0] if quoted else "unknown")
        return ConcurrencyConflict(
            document_id,
            expected_revision=target.get("ifRevisionID") if target else None,
            details={"store_message": description},
        )

    async def close(self) -> None:
        self.session.close()
