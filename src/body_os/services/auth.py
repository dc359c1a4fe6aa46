"""Authentication providers."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID


class AuthProvider(Protocol):
    """Supplies the id of the signed-in user."""

    def current_user_id(self) -> str | None:
        """Return the current user id, or None without a session."""


@dataclass
class StaticAuthProvider(AuthProvider):
    """Session holder for a single signed-in user."""

    user_id: str | None = None

    def current_user_id(self) -> str | None:
        return self.user_id

    def sign_in(self, user_id: str) -> None:
        """Start a session for a user."""
        self.user_id = user_id

    def sign_out(self) -> None:
        """Drop the current session."""
        self.user_id = None


@dataclass
class TokenRegistry:
    """Resolves API bearer tokens to user ids."""

    tokens: dict[str, UUID] = field(default_factory=dict)

    def resolve(self, token: str | None) -> UUID | None:
        """Return the user id for a token, if known."""
        if not token:
            return None
        return self.tokens.get(token)
