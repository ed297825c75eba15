"""JWT handling for orchestrator API tokens."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt


class JWTHandler:
    """Read the claims of orchestrator-issued API tokens.

    API tokens are JWTs signed by the orchestrator. The client cannot verify
    the signature; it only reads the claims to learn when a token expires.
    """

    @staticmethod
    def read_claims(token: str) -> Optional[Dict[str, Any]]:
        """Return the unverified claims of ``token``, or None if it is not a JWT."""
        try:
            claims = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.InvalidTokenError:
            return None
        return claims if isinstance(claims, dict) else None

    @staticmethod
    def expiry(token: str) -> Optional[datetime]:
        """Return the ``exp`` claim of ``token`` as an aware UTC datetime."""
        claims = JWTHandler.read_claims(token)
        if not claims or claims.get("exp") is None:
            return None
        try:
            return datetime.fromtimestamp(float(claims["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None

    @staticmethod
    def subject(token: str) -> Optional[str]:
        """Return the ``sub`` claim (the token owner), if present."""
        claims = JWTHandler.read_claims(token)
        if not claims:
            return None
        subject = claims.get("sub") or claims.get("username")
        return str(subject) if subject is not None else None
