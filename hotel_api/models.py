"""Domain models shared across the hotel reservation API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Principal:
    """Identity resolved from a valid bearer token."""

    id: str
    email: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_user_payload(cls, payload: Dict[str, Any]) -> "Principal":
        user_id = payload.get("id")
        if not user_id:
            raise ValueError("Auth service returned a user without an id")
        email = payload.get("email")
        return cls(id=str(user_id), email=str(email) if email else None, raw=dict(payload))


__all__ = ["Principal"]
