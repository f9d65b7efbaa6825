from __future__ import annotations

import asyncio
import threading
from functools import partial
from typing import Awaitable, Callable, Dict, Optional

from common.logging_setup import get_logger
from common.types import CollectionMetadata, TokenMetadata


log = get_logger(__name__)

TokenLoader = Callable[[], Awaitable[Optional[TokenMetadata]]]
CollectionLoader = Callable[[], Awaitable[Optional[CollectionMetadata]]]


class MetadataCache:
    """
    Process-lifetime memo of token documents plus one collection slot.

    - Entries are only ever inserted, never evicted; restart to pick up edits.
    - Only complete documents are stored. None (absent) and exceptions
      (broken) are not cached, so a later call retries the backing store.
    - Reads are plain dict lookups. Writes take `_lock`, which is never held
      across I/O.
    - Concurrent misses for the same token on one event loop share a single
      load; every waiter gets the same document or the same exception.
    """

    def __init__(self) -> None:
        self._tokens: Dict[int, TokenMetadata] = {}
        self._collection: Optional[CollectionMetadata] = None
        self._pending: Dict[int, "asyncio.Task[Optional[TokenMetadata]]"] = {}
        self._lock = threading.Lock()

    # -------- public API --------

    def get_token(self, token_id: int) -> Optional[TokenMetadata]:
        return self._tokens.get(token_id)

    @property
    def collection(self) -> Optional[CollectionMetadata]:
        return self._collection

    async def resolve_token(self, token_id: int, loader: TokenLoader) -> Optional[TokenMetadata]:
        """Cache hit, or run `loader` once (shared by concurrent callers) and memoize a found document."""
        cached = self._tokens.get(token_id)
        if cached is not None:
            return cached

        loop = asyncio.get_running_loop()
        with self._lock:
            cached = self._tokens.get(token_id)
            if cached is not None:
                return cached
            task = self._pending.get(token_id)
            if task is None or task.get_loop() is not loop:
                task = loop.create_task(self._fill_token(token_id, loader))
                self._pending[token_id] = task
                task.add_done_callback(partial(self._settle, token_id))
        # shield: an abandoned request must not cancel a load other callers wait on
        return await asyncio.shield(task)

    async def resolve_collection(self, loader: CollectionLoader) -> Optional[CollectionMetadata]:
        if self._collection is not None:
            return self._collection
        metadata = await loader()
        if metadata is not None:
            with self._lock:
                self._collection = metadata
            log.debug("cached collection metadata")
        return metadata

    def stats(self) -> Dict[str, int]:
        return {
            "tokens": len(self._tokens),
            "collection": int(self._collection is not None),
            "loading": len(self._pending),
        }

    # -------- internals --------

    async def _fill_token(self, token_id: int, loader: TokenLoader) -> Optional[TokenMetadata]:
        metadata = await loader()
        if metadata is not None:
            with self._lock:
                self._tokens[token_id] = metadata
            log.debug("cached token %s", token_id)
        return metadata

    def _settle(self, token_id: int, task: "asyncio.Task[Optional[TokenMetadata]]") -> None:
        with self._lock:
            if self._pending.get(token_id) is task:
                del self._pending[token_id]
        if not task.cancelled():
            # mark the exception retrieved even if every waiter went away
            task.exception()
