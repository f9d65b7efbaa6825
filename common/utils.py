from __future__ import annotations

import re

from common.errors import InvalidTokenId

U256_MAX = 2**256 - 1
U256_MAX_DIGITS = len(str(U256_MAX))

CONTRACT_FILE_NAME = "contract.json"

_DECIMAL = re.compile(r"[0-9]+")


def parse_token_id(raw: str) -> int:
    """
    Parse a decimal uint256 token id as it appears in a URL path.

    Only ASCII digits are accepted (no sign, no whitespace, no 0x prefix).
    Leading zeros are allowed, so "007" and "7" name the same token.
    """
    if not _DECIMAL.fullmatch(raw):
        raise InvalidTokenId(raw[:100], "not a decimal integer")
    digits = raw.lstrip("0") or "0"
    # checked before int() so huge inputs never reach int's digit limit
    if len(digits) > U256_MAX_DIGITS:
        raise InvalidTokenId(raw[:100], "exceeds uint256")
    value = int(digits)
    if value > U256_MAX:
        raise InvalidTokenId(raw[:100], "exceeds uint256")
    return value


def token_file_name(token_id: int) -> str:
    """`0.json`, `384510.json`, ..."""
    return f"{int(token_id)}.json"
