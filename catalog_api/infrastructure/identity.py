"""Editor identity.

Authentication itself lives outside the catalog; this module only
answers "which editor, if any, is making this request".
"""

from abc import ABC, abstractmethod

from fastapi import Request

from catalog_api.domain.value_objects import Editor
from catalog_api.infrastructure.config import settings


class IdentityProvider(ABC):
    """Resolves the editor behind a request."""

    @abstractmethod
    def current_editor(self, request: Request) -> Editor | None:
        """Get the editor making the request.

        Args:
            request: Incoming request.

        Returns:
            Editor, or None for anonymous callers.
        """


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


class ApiKeyIdentityProvider(IdentityProvider):
    """Maps bearer tokens to editor names.

    Tokens are read from ``settings.editor_tokens`` on every call unless
    an explicit mapping is given.
    """

    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        """Initialize provider.

        Args:
            tokens: Token to editor name mapping (defaults to settings).
        """
        self._tokens = tokens

    @property
    def tokens(self) -> dict[str, str]:
        """Configured token mapping."""
        return self._tokens if self._tokens is not None else settings.editor_tokens

    def current_editor(self, request: Request) -> Editor | None:
        """Get the editor for the request's bearer token."""
        token = bearer_token(request)
        if token is None:
            return None
        name = self.tokens.get(token)
        return Editor(name=name) if name else None
