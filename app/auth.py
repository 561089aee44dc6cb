"""API key verification for analytics endpoints."""

import secrets

from fastapi import HTTPException, Header

from app.config import settings


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return None


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept X-API-Key or Authorization: Bearer.

    With ANALYTICS_API_KEY unset every request passes; otherwise a
    mismatching or missing key is rejected with 401.
    """
    expected = settings.analytics_api_key
    if expected is None:
        return ""

    key = x_api_key if x_api_key is not None else _bearer_token(authorization)
    if key is None or not secrets.compare_digest(key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return key
