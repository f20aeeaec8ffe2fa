"""Credential verification for tunesearch operations."""

import json
from collections.abc import Mapping
from typing import Any, Protocol

import aiofiles
from pydantic import ValidationError

from .errors import UnauthenticatedError
from .logging_config import get_logger
from .models import Principal

logger = get_logger(__name__)


class IdentityBackend(Protocol):
    async def verify_token(self, token: str) -> Mapping[str, Any]:
        """Decode ``token`` or raise if the backend rejects it."""


class TokenRejectedError(Exception):
    """Raised by identity backends for unknown or revoked tokens."""

    def __init__(self, message: str, code: str = "auth/invalid-id-token"):
        super().__init__(message)
        self.code = code


class StaticIdentityBackend:
    """Identity backend with a fixed token table, for local runs and tests."""

    def __init__(self, tokens: Mapping[str, Mapping[str, Any]] | None = None):
        self._tokens = dict(tokens or {})

    def register(self, token: str, uid: str, email: str | None = None) -> None:
        self._tokens[token] = {"uid": uid, "email": email}

    async def load_json(self, path: str) -> int:
        """Load a ``{token: {"uid": ..., "email": ...}}`` table from ``path``."""
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()

        table = json.loads(content)
        if not isinstance(table, dict):
            raise ValueError(f"Token file {path} must hold a JSON object")
        self._tokens.update(table)
        logger.info("Loaded %d identity tokens from %s", len(table), path)
        return len(table)

    async def verify_token(self, token: str) -> Mapping[str, Any]:
        identity = self._tokens.get(token)
        if identity is None:
            raise TokenRejectedError("Token is not recognized")
        return identity


class AuthVerifier:
    """Validates inbound credentials and extracts the caller's principal."""

    def __init__(self, backend: IdentityBackend):
        self.backend = backend

    async def verify(self, token: Any) -> Principal:
        """Return the verified principal for ``token``.

        Raises:
            UnauthenticatedError: token is absent, malformed, rejected by the
                identity backend, or decodes to an identity without a uid.
        """
        if token is None:
            raise UnauthenticatedError("User must be authenticated to use this service")
        if not isinstance(token, str) or not token.strip():
            raise UnauthenticatedError("Authentication token is malformed")

        try:
            decoded = await self.backend.verify_token(token)
            return Principal(uid=decoded.get("uid"), email=decoded.get("email"))
        except (ValidationError, AttributeError) as e:
            logger.warning("Identity backend returned no usable uid: %s", type(e).__name__)
            raise UnauthenticatedError("Failed to verify authentication token") from e
        except Exception as e:
            logger.warning(
                "Auth verification error: code=%s message=%s",
                getattr(e, "code", None),
                e,
            )
            raise UnauthenticatedError("Failed to verify authentication token") from e
