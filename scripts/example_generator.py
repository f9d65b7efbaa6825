#!/usr/bin/env python3
"""
Minimal custom generator: token 0 and a collection, served from memory.

Shows that any object with `metadata_for` / `collection_metadata` coroutines
can be served; no subclassing needed.

  python scripts/example_generator.py
  curl localhost:8080/0
"""
from __future__ import annotations

import os
import sys
from typing import Optional

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.types import CollectionMetadata, TokenMetadata, image_from_str
from metadata_server.server import serve_generator

IMAGE = "https://peach.blender.org/wp-content/uploads/bbb-splash.thumbnail.png"


class StaticGenerator:
    async def metadata_for(self, token_id: int) -> Optional[TokenMetadata]:
        if token_id != 0:
            return None
        return TokenMetadata(
            name="no",
            description="hello",
            external_url="http://example.com/",
            image=image_from_str(IMAGE),
        )

    async def collection_metadata(self) -> Optional[CollectionMetadata]:
        return CollectionMetadata(
            name="Toast",
            description="Toast",
            image=IMAGE,
            external_link="http://example.com/",
            seller_fee_basis_points=300,
            fee_recipient="0x" + "00" * 20,
        )


if __name__ == "__main__":
    serve_generator(StaticGenerator(), host="0.0.0.0", port=8080)
