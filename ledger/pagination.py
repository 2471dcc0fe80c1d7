"""
Opaque page tokens for list endpoints.

A token is the base64 of the next row offset in decimal.  It carries no
filter context: callers re-send the same filters with every page.

Every list endpoint runs the same three steps:
  1. decode_page_token(pageToken) -> offset
  2. LIMIT/OFFSET page query + COUNT(*) under the same predicate
  3. has_more = offset + limit < total; encode_page_token(...) -> next token
"""
import base64
import binascii
from typing import Optional


def decode_page_token(token: Optional[str]) -> int:
    """Return the offset encoded in *token*; 0 for a missing or invalid token."""
    if not token:
        return 0
    try:
        raw = base64.b64decode(token.encode("ascii"), validate=True).decode("ascii")
        offset = int(raw.strip())
    except (binascii.Error, UnicodeError, ValueError):
        return 0
    return offset if offset >= 0 else 0


def encode_page_token(offset: int, limit: int, has_more: bool) -> Optional[str]:
    """Token for the page after (offset, limit), or None at end of sequence."""
    if not has_more:
        return None
    return base64.b64encode(str(offset + limit).encode("ascii")).decode("ascii")


def clamp_limit(raw, default: int, minimum: int = 1, maximum: int = 500) -> int:
    """Parse a client-supplied limit and clamp it to [minimum, maximum]."""
    try:
        value = int(raw) if raw not in (None, "") else default
    except (TypeError, ValueError):
        value = default
    return max(minimum, min(maximum, value))
