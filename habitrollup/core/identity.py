"""
Request identity.

Authentication lives in front of this service; the gateway forwards the
authenticated user id in the `X-User-Id` header. A missing or blank
header is a validation error and no handler body runs.
"""
from typing import Annotated

from fastapi import Header

from habitrollup.core.errors import InvalidRequestError


def current_user_id(
    x_user_id: Annotated[
        str,
        Header(
            min_length=1,
            max_length=64,
            description="Authenticated user id forwarded by the gateway.",
        ),
    ],
) -> str:
    user_id = x_user_id.strip()
    if not user_id:
        raise InvalidRequestError("X-User-Id header must not be blank.", field="X-User-Id")
    return user_id
