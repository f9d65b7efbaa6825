from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from common.types import CollectionMetadata, TokenMetadata


@runtime_checkable
class MetadataGenerator(Protocol):
    """
    Asynchronously produces token and collection metadata.

    Tokens are referenced by the uint256 tokenId used in the ERC-721
    contract. A generator may read the local filesystem, query an outside
    API, a DB, or anything else; the HTTP layer only ever sees this
    interface.

    metadata_for:
        returns the document, or None if the token has no metadata.
        Raises common.errors.ResolutionError when the lookup itself failed,
        so callers can tell "absent" (404) from "broken" (500).

    collection_metadata:
        returns the contract-level document, or None. Best effort: an
        implementation may fold load failures into None.
    """

    async def metadata_for(self, token_id: int) -> Optional[TokenMetadata]:
        ...

    async def collection_metadata(self) -> Optional[CollectionMetadata]:
        ...
