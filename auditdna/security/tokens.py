"""Signed bearer tokens carrying a tenantId claim (PyJWT, HS256 by default)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from auditdna.security.exceptions import InvalidTokenError

TENANT_CLAIM = "tenantId"
DEFAULT_TTL = timedelta(hours=24)


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def issue(
        self,
        subject: str,
        tenant_id: Optional[str] = None,
        ttl: timedelta = DEFAULT_TTL,
        **claims: Any,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {"sub": subject, "iat": now, "exp": now + ttl, **claims}
        if tenant_id:
            payload[TENANT_CLAIM] = tenant_id
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify signature and expiry. Raises InvalidTokenError."""
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

    def tenant_claim(self, token: str) -> Optional[str]:
        """tenantId of a valid token, or None when the token carries none."""
        value = self.decode(token).get(TENANT_CLAIM)
        return str(value) if value else None
