from __future__ import annotations

"""
Upstream HTTP provider: mirrors another metadata server.

The upstream must expose the same surface as this service:
    GET {base_url}/{token_id}  -> TokenMetadata JSON, 404 when unknown
    GET {base_url}/            -> CollectionMetadata JSON, 404 when absent

Responses are memoized exactly like LocalJson, so each document is fetched
once per process.

Usage:
    gen = RemoteJson("https://meta.example.org/collection")
    serve_generator(gen, host="0.0.0.0", port=8080)
"""

import asyncio
from typing import Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from common.errors import MalformedDocument, ResolutionError, StorageFailure
from common.logging_setup import get_logger
from common.types import CollectionMetadata, TokenMetadata
from metadata_server.cache import MetadataCache


log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class RemoteJson:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        """
        Params:
            base_url: upstream root, with or without trailing slash
            session: optional requests.Session for connection reuse
            timeout: per-request timeout in seconds
        """
        if not base_url:
            raise ValueError("RemoteJson requires a base_url")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = float(timeout)
        self._cache = MetadataCache()

    # -------- MetadataGenerator --------

    async def metadata_for(self, token_id: int) -> Optional[TokenMetadata]:
        url = f"{self.base_url}/{int(token_id)}"
        return await self._cache.resolve_token(token_id, lambda: self._fetch(url, TokenMetadata))

    async def collection_metadata(self) -> Optional[CollectionMetadata]:
        return await self._cache.resolve_collection(self._fetch_collection)

    def stats(self) -> Dict[str, int]:
        return self._cache.stats()

    # -------- internals --------

    async def _fetch_collection(self) -> Optional[CollectionMetadata]:
        try:
            return await self._fetch(f"{self.base_url}/", CollectionMetadata)
        except ResolutionError as e:
            log.warning("upstream collection metadata unavailable: %s", e)
            return None

    async def _fetch(self, url: str, model: Type[M]) -> Optional[M]:
        try:
            r = await asyncio.to_thread(self.session.get, url, timeout=self.timeout)
        except requests.RequestException as e:
            raise StorageFailure(url, f"{type(e).__name__}: {e}") from e
        if r.status_code == 404:
            return None
        if r.status_code != 200:
            raise StorageFailure(url, f"upstream returned HTTP {r.status_code}")
        try:
            return model.model_validate_json(r.content)
        except ValidationError as e:
            raise MalformedDocument(url, str(e)) from e
