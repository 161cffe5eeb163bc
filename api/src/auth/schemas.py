"""Authenticated user model."""

from typing import Any

from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """Identity taken from a verified Firebase ID token."""

    uid: str
    email: str | None = None
    name: str | None = None
    is_mentor: bool = Field(default=False, description="Set by the 'mentor' custom claim")

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "AuthenticatedUser":
        return cls(
            uid=claims["uid"],
            email=claims.get("email"),
            name=claims.get("name"),
            is_mentor=bool(claims.get("mentor", False)),
        )
