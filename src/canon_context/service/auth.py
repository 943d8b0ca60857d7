from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from ..settings import settings


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    """Reject requests lacking the configured X-API-Key; open when no key is set."""
    expected = settings.api_key
    if not expected:
        return
    if not hmac.compare_digest((x_api_key or "").encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid API key")
