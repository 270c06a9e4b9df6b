"""Document store adapters: named collections of JSON documents keyed by id.

Two implementations share one coroutine interface:
  - HttpDocumentStore: REST document service reached with httpx
      POST   /{collection}          -> {"id": <new id>}
      GET    /{collection}          -> [ {id, ...}, ... ]
      GET    /{collection}/{key}    -> {id, ...} | 404
      PATCH  /{collection}/{key}    -> merge the named fields (creates the document if absent)
      PUT    /{collection}/{key}    -> replace the document
      DELETE /{collection}/{key}    -> 204 | 404
  - JsonFileDocumentStore: the same contract kept in a single JSON file, used when no
    remote is configured and by the tests.

Every failure to reach or write the store is raised as TransportFailure.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from fitplan.utilities.errors import TransportFailure

logger = logging.getLogger(__name__)


class DocumentStore:
    """Interface of the remote document store collaborator."""

    async def create(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def read_all(self, collection: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def update(self, collection: str, key: str, fields: Dict[str, Any], merge: bool = True) -> None:
        raise NotImplementedError

    async def delete(self, collection: str, key: str) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


def _new_id() -> str:
    return uuid4().hex[:20]


class JsonFileDocumentStore(DocumentStore):
    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
        except json.JSONDecodeError as e:
            raise TransportFailure(f"Document file {self.path} is not valid JSON: {e}") from e
        except OSError as e:
            raise TransportFailure(f"Cannot read document file {self.path}: {e}") from e

    def _atomic_write(self, store: Dict[str, Any]) -> None:
        try:
            os.makedirs(self.path.parent, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".documents_", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    json.dump(store, tmp, indent=2, ensure_ascii=False)
                shutil.move(tmp_path, self.path)
            finally:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
        except OSError as e:
            raise TransportFailure(f"Cannot write document file {self.path}: {e}") from e

    async def create(self, collection, data):
        store = self._load()
        key = _new_id()
        doc = {k: v for k, v in data.items() if k != "id"}
        store.setdefault(collection, {})[key] = doc
        self._atomic_write(store)
        return key

    async def read_all(self, collection):
        docs = self._load().get(collection, {})
        return [{**doc, "id": key} for key, doc in docs.items()]

    async def get(self, collection, key):
        doc = self._load().get(collection, {}).get(key)
        return None if doc is None else {**doc, "id": key}

    async def update(self, collection, key, fields, merge=True):
        store = self._load()
        docs = store.setdefault(collection, {})
        clean = {k: v for k, v in fields.items() if k != "id"}
        if merge:
            docs.setdefault(key, {}).update(clean)
        else:
            docs[key] = clean
        self._atomic_write(store)

    async def delete(self, collection, key):
        store = self._load()
        if store.get(collection, {}).pop(key, None) is not None:
            self._atomic_write(store)


class HttpDocumentStore(DocumentStore):
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers,
                                         timeout=timeout, transport=transport)

    async def _request(self, method: str, url: str, allow_404: bool = False, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            if allow_404 and response.status_code == 404:
                return response
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.error("Document store %s %s failed: %s", method, url, e.response.status_code)
            raise TransportFailure(f"Document store returned {e.response.status_code} for {method} {url}") from e
        except httpx.HTTPError as e:
            logger.error("Document store %s %s unreachable: %s", method, url, e)
            raise TransportFailure(f"Document store unreachable: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportFailure(f"Document store sent a non-JSON body: {e}") from e

    async def create(self, collection, data):
        response = await self._request("POST", f"/{collection}", json=data)
        body = self._json(response)
        key = body.get("id") if isinstance(body, dict) else None
        if not key:
            raise TransportFailure(f"Document store did not return an id for new {collection} document")
        return str(key)

    async def read_all(self, collection):
        response = await self._request("GET", f"/{collection}")
        body = self._json(response)
        if isinstance(body, dict):
            body = body.get("documents", [])
        return [doc for doc in body if isinstance(doc, dict)]

    async def get(self, collection, key):
        response = await self._request("GET", f"/{collection}/{key}", allow_404=True)
        if response.status_code == 404:
            return None
        return self._json(response)

    async def update(self, collection, key, fields, merge=True):
        await self._request("PATCH" if merge else "PUT", f"/{collection}/{key}", json=fields)

    async def delete(self, collection, key):
        await self._request("DELETE", f"/{collection}/{key}", allow_404=True)

    async def aclose(self):
        await self._client.aclose()
