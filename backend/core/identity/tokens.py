"""ID token verification against the identity provider's published keys.

Security:
- RS256 signature verification via JWKS (key selected by ``kid``)
- Issuer, audience, expiration and issued-at validation
- Key set cached per verifier; an unknown ``kid`` triggers a refetch at most once per interval
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field

import requests
from authlib.jose import JsonWebKey, JsonWebToken
from authlib.jose.errors import JoseError

from .client import REQUEST_TIMEOUT
from .exceptions import IdentityResolutionError, IdentityTransportError

DEFAULT_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
ISSUER_PREFIX = "https://securetoken.google.com/"
CLOCK_SKEW_SECONDS = 5
# Minimum age of the cached key set before an unknown kid may trigger a refetch
JWKS_REFETCH_INTERVAL = 300

# Only RS256; "none" and HMAC algorithms are refused at decode time
_jwt = JsonWebToken(["RS256"])

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedToken:
    """Claims of an ID token that passed verification."""

    uid: str
    auth_time: int
    claims: dict = field(default_factory=dict)


class TokenVerifier:
    """Verify ID tokens issued for one project."""

    def __init__(
        self,
        project_id: str,
        jwks_url: str = DEFAULT_JWKS_URL,
        refetch_interval: float = JWKS_REFETCH_INTERVAL,
    ):
        self.project_id = project_id
        self.jwks_url = jwks_url
        self.refetch_interval = refetch_interval
        self.issuer = f"{ISSUER_PREFIX}{project_id}"
        self._key_set = None
        self._keys_loaded_at = 0.0

    def _load_key_set(self, force: bool = False):
        if self._key_set is None or force:
            try:
                resp = requests.get(self.jwks_url, timeout=REQUEST_TIMEOUT)
                resp.raise_for_status()
            except requests.RequestException as exc:
                raise IdentityTransportError(f"Unable to fetch signing keys: {exc}", cause=exc) from exc
            self._key_set = JsonWebKey.import_key_set(resp.json())
            self._keys_loaded_at = time.monotonic()
            logger.debug("Loaded ID token signing keys from %s", self.jwks_url)
        return self._key_set

    def _may_refetch(self) -> bool:
        return time.monotonic() - self._keys_loaded_at >= self.refetch_interval

    def _decode(self, id_token: str, key_set):
        claims = _jwt.decode(
            id_token,
            key=key_set,
            claims_options={
                "iss": {"essential": True, "values": [self.issuer]},
                "aud": {"essential": True, "values": [self.project_id]},
                "sub": {"essential": True},
                "exp": {"essential": True},
                "iat": {"essential": True},
            },
        )
        claims.validate(leeway=CLOCK_SKEW_SECONDS)
        return claims

    def verify(self, id_token: str) -> VerifiedToken:
        """Validate an ID token and return its subject.

        Raises:
            IdentityResolutionError: If the token is missing, malformed, expired,
                signed by an unknown key or issued for another project
            IdentityTransportError: If the signing keys cannot be fetched
        """
        if not id_token or not isinstance(id_token, str):
            raise IdentityResolutionError("ID token is missing")

        try:
            try:
                claims = self._decode(id_token, self._load_key_set())
            except ValueError:
                # Unknown kid: signing keys may have rotated, refetch at most once per interval
                if not self._may_refetch():
                    raise
                claims = self._decode(id_token, self._load_key_set(force=True))
        except JoseError as exc:
            raise IdentityResolutionError(f"ID token rejected: {exc}", cause=exc) from exc
        except ValueError as exc:
            raise IdentityResolutionError(f"ID token signed by an unknown key: {exc}", cause=exc) from exc

        uid = claims.get("sub") or ""
        if not uid or len(uid) > 128:
            raise IdentityResolutionError("ID token has an invalid subject")

        auth_time = int(claims.get("auth_time") or claims.get("iat") or 0)
        return VerifiedToken(uid=uid, auth_time=auth_time, claims=dict(claims))
