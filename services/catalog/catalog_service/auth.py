"""
Catalog Service — caller identity

Tokens are verified by the auth gateway in front of this service, which
forwards the caller as `X-User-Id` / `X-User-Email` / `X-User-Role`.
Authorization is a plain predicate checked by the route before the
orchestrator runs.
"""

from fastapi import Header, HTTPException

from .schemas import Requester


async def get_requester(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Requester:
    if not x_user_id or not x_user_email:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Requester(id=x_user_id, email=x_user_email, role=x_user_role or "customer")


def can_purchase(requester: Requester, allowed_roles: frozenset[str]) -> bool:
    return requester.role in allowed_roles
