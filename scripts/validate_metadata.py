#!/usr/bin/env python3
"""
Check a metadata directory before publishing it.

Validates contract.json (collection metadata) and every {token_id}.json
against the schema the server uses. Files that are neither are skipped.
Exit status is 1 if any document fails to decode.

Examples:
  python scripts/validate_metadata.py data/metadata
  python scripts/validate_metadata.py data/metadata --quiet
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Tuple

from pydantic import ValidationError

# Add project root to path when run as a plain script
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.errors import InvalidTokenId
from common.types import CollectionMetadata, TokenMetadata
from common.utils import CONTRACT_FILE_NAME, parse_token_id


def classify(path: Path) -> str:
    """'contract', 'token' or 'skip'."""
    if path.name == CONTRACT_FILE_NAME:
        return "contract"
    if path.suffix != ".json":
        return "skip"
    try:
        parse_token_id(path.stem)
    except InvalidTokenId:
        return "skip"
    return "token"


def validate_file(path: Path) -> Tuple[str, str]:
    """Return (status, message) where status is ok/err/skip."""
    kind = classify(path)
    if kind == "skip":
        return "skip", "not a metadata file"
    model = CollectionMetadata if kind == "contract" else TokenMetadata
    try:
        raw = path.read_bytes()
    except OSError as e:
        return "err", f"unreadable: {e}"
    try:
        doc = model.model_validate_json(raw)
    except ValidationError as e:
        return "err", f"{e.error_count()} error(s): {e.errors()[0]['msg']}"
    return "ok", doc.name


def validate_dir(root: Path) -> List[Tuple[Path, str, str]]:
    results = []
    for path in sorted(p for p in root.iterdir() if p.is_file()):
        status, msg = validate_file(path)
        results.append((path, status, msg))
    return results


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("root", help="Metadata directory (contract.json + {token_id}.json)")
    ap.add_argument("--quiet", action="store_true", help="Only print failures")
    args = ap.parse_args()

    root = Path(args.root)
    if not root.is_dir():
        print(f"[err] {root} is not a directory")
        sys.exit(2)

    results = validate_dir(root)
    failed = 0
    for path, status, msg in results:
        if status == "err":
            failed += 1
        if status == "err" or not args.quiet:
            print(f"[{status}] {path.name}: {msg}")

    tokens = sum(1 for p, s, _ in results if s == "ok" and p.name != CONTRACT_FILE_NAME)
    print(f"{tokens} token document(s) valid, {failed} failure(s)")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
