# Overview: Explicit per-request caller context passed from routes into services.

from __future__ import annotations

from dataclasses import dataclass

from .models import User


@dataclass(frozen=True)
class RequestContext:
    """
    Who is calling.

    Built once per request by require_auth from the X-User-Id header; routes
    hand the relevant fields to services explicitly.
    """
    user: User
    user_id: int
    is_admin: bool

    @classmethod
    def for_user(cls, user: User) -> "RequestContext":
        return cls(user=user, user_id=user.id, is_admin=user.is_admin)
