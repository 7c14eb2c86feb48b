"""Caller identity for gateway requests."""

from typing import Optional

from fastapi import Depends, Header, Request

from gateway.service_locator import GatewayServices, get_services


async def get_current_user(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    services: GatewayServices = Depends(get_services),
) -> str:
    """
    FastAPI dependency that resolves the calling user's id.

    The identity layer in front of the gateway supplies ``X-User-Id``; when it
    is absent the configured default user is used.

    Returns:
        user_id of the caller
    """
    user_id = (x_user_id or "").strip() or services.settings.default_user_id
    request.state.user_id = user_id
    return user_id
