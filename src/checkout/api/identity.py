"""Caller identity as supplied by the upstream identity provider.

The gateway in front of this service verifies the user's token and forwards
the user id in ``X-User-Id``. Missing identity is a 401.
"""

from fastapi import Header

from checkout.errors import Unauthenticated
from checkout.utils.logging import add_context


async def current_user_id(x_user_id: str = Header(default="")) -> str:
    user_id = x_user_id.strip()
    if not user_id:
        raise Unauthenticated()
    add_context(user_id=user_id)
    return user_id
