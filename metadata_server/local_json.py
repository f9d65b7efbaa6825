from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from common.errors import ConstructionFailure, MalformedDocument, ResolutionError, StorageFailure
from common.logging_setup import get_logger
from common.types import CollectionMetadata, TokenMetadata
from common.utils import CONTRACT_FILE_NAME, token_file_name
from metadata_server.cache import MetadataCache


log = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class LocalJson:
    """
    MetadataGenerator backed by JSON files in a local directory.

        root/
          ├─ contract.json   (collection metadata)
          ├─ 0.json          (token 0)
          └─ 384510.json     (token 384510)

    Token file names are the decimal token id. Each file is read at most
    once per process on the success path; edits made after a document was
    served are only seen after a restart.
    """

    def __init__(self, root: Union[str, Path] = "data/metadata"):
        self.root = Path(root)
        if self.root.exists() and not self.root.is_dir():
            raise ConstructionFailure(f"{self.root} exists and is not a directory")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConstructionFailure(f"cannot create {self.root}: {e}") from e
        self._cache = MetadataCache()

    # -------- MetadataGenerator --------

    async def metadata_for(self, token_id: int) -> Optional[TokenMetadata]:
        return await self._cache.resolve_token(
            token_id, lambda: self._load(token_file_name(token_id), TokenMetadata)
        )

    async def collection_metadata(self) -> Optional[CollectionMetadata]:
        return await self._cache.resolve_collection(self._load_collection)

    # -------- public helpers --------

    def stats(self) -> Dict[str, int]:
        return self._cache.stats()

    # -------- internals --------

    async def _load_collection(self) -> Optional[CollectionMetadata]:
        try:
            return await self._load(CONTRACT_FILE_NAME, CollectionMetadata)
        except ResolutionError as e:
            log.warning("ignoring unusable %s: %s", CONTRACT_FILE_NAME, e)
            return None

    async def _load(self, file_name: str, model: Type[M]) -> Optional[M]:
        path = self.root / file_name
        try:
            raw = await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise StorageFailure(str(path), f"{type(e).__name__}: {e}") from e
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedDocument(str(path), str(e)) from e

    @staticmethod
    def _read(path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
