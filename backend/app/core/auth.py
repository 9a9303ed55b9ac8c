"""
Authentication utilities for Clerk-backed JWT authentication.

Provides:
- ClerkJWTVerifier: verifies and decodes Clerk-issued JWTs using JWKS.
- get_current_user_id: FastAPI dependency that returns the caller's Clerk user id.
- get_current_profile: FastAPI dependency that returns the caller's Profile row.

Supports two modes controlled by ClerkAuthConfig.verify_signature:
- Strict mode (True): full signature / issuer / audience verification.
- Relaxed mode (False): parse token without signature verification (dev only).
"""
from dataclasses import dataclass
from functools import lru_cache
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthError, ProfileNotFound, VyralizeError
from app.db.base import get_db
from app.models import Profile

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ClerkAuthConfig:
    issuer: str = ""
    audience: Optional[str] = None
    verify_signature: bool = True
    jwks_timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls) -> "ClerkAuthConfig":
        return cls(
            issuer=settings.clerk_issuer,
            audience=settings.clerk_audience,
            # Relaxed verification is never honoured outside development.
            verify_signature=settings.clerk_jwt_verification or not settings.is_development,
        )


class JWKSUnavailable(VyralizeError):
    status_code = 503
    message = "Unable to fetch Clerk JWKS"


class ClerkJWTVerifier:
    """Verify Clerk-issued JWTs using JWKS."""

    def __init__(self, config: Optional[ClerkAuthConfig] = None) -> None:
        self.config = config or ClerkAuthConfig.from_settings()

    @staticmethod
    @lru_cache(maxsize=4)
    def _get_jwks(issuer: str, timeout: float = 5.0) -> Dict[str, Any]:
        """
        Fetch JWKS for the given issuer and cache the result.

        Args:
            issuer: Issuer URL from the JWT claims.
            timeout: HTTP timeout in seconds.

        Returns:
            JWKS payload as a dict.
        """
        if not issuer:
            raise AuthError("Invalid token: missing issuer")

        jwks_url = issuer.rstrip("/") + "/.well-known/jwks.json"

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.get(jwks_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"JWKS fetch failed for {jwks_url}: {exc}")
            raise JWKSUnavailable() from exc

        data = response.json()
        if "keys" not in data:
            raise JWKSUnavailable("Invalid JWKS payload from Clerk")
        return data

    @staticmethod
    def _get_signing_key(jwks: Dict[str, Any], kid: str) -> Dict[str, Any]:
        """
        Find signing key in JWKS for the given key ID.
        """
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key

        raise AuthError("Signing key not found for token")

    def verify_and_decode(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a Clerk JWT.

        In strict mode this validates:
        - Signature using Clerk JWKS (RS256).
        - Issuer (iss): compared to the configured issuer if set, otherwise
          uses the issuer from the token.
        - Audience (aud): if an audience is configured.

        In relaxed mode, it parses claims without verifying the signature.

        Returns:
            Decoded claims as a dictionary.
        """
        try:
            unverified_header = jwt.get_unverified_header(token)
            unverified_claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise AuthError("Invalid authorization token") from exc

        if not self.config.verify_signature:
            return unverified_claims

        issuer = unverified_claims.get("iss")
        expected_issuer = self.config.issuer or issuer
        if not issuer or not expected_issuer:
            raise AuthError("Invalid token: missing issuer")

        jwks = self._get_jwks(expected_issuer, self.config.jwks_timeout_seconds)
        kid = unverified_header.get("kid")
        if not kid:
            raise AuthError("Invalid token: missing key id")
        signing_key = self._get_signing_key(jwks, kid)

        verify_aud = self.config.audience is not None
        decode_kwargs: Dict[str, Any] = {
            "algorithms": ["RS256"],
            "issuer": expected_issuer,
            "options": {"verify_aud": verify_aud},
        }
        if verify_aud:
            decode_kwargs["audience"] = self.config.audience

        try:
            claims = jwt.decode(token, signing_key, **decode_kwargs)
        except JWTError as exc:
            raise AuthError("Invalid or expired authorization token") from exc

        return claims


clerk_verifier = ClerkJWTVerifier()


def extract_subject(claims: Dict[str, Any]) -> str:
    """
    Return the Clerk user id from token claims.

    Session tokens issued through the Supabase JWT template carry the user id
    in a custom ``subject`` claim; plain Clerk tokens use ``sub``.
    """
    subject = claims.get("subject") or claims.get("sub")
    if not subject or not isinstance(subject, str):
        raise AuthError("Invalid token: missing subject")
    return subject


def get_verifier() -> ClerkJWTVerifier:
    return clerk_verifier


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: ClerkJWTVerifier = Depends(get_verifier),
) -> str:
    """
    Resolve the caller's Clerk user id from the Authorization header.

    - Expects Authorization: Bearer <jwt> header.
    - Verifies and decodes the token via ClerkJWTVerifier.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Missing authorization header")

    if credentials.scheme.lower() != "bearer":
        raise AuthError("Invalid authentication scheme")

    claims = verifier.verify_and_decode(credentials.credentials)
    return extract_subject(claims)


def get_current_profile(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Profile:
    """
    Load the Profile row for the authenticated caller.

    Profiles are only created by the Clerk ``user.created`` webhook, so a
    verified token without a row means the webhook has not landed yet.
    """
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise ProfileNotFound()
    return profile
