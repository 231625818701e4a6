"""Request-scoped dependencies for the Marketplace API."""

from fastapi import Header

from marketplace.queries.access import Caller, caller_from


def current_caller(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Caller:
    """The authenticated caller, as resolved by the upstream gateway."""
    return caller_from(x_user_id, x_user_role)
