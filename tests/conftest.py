"""Pytest shared fixtures: environment, network guard rails, RSA keys and a fake identity provider."""
import json
import os
import pathlib
import sys
import time
from typing import Optional
from urllib.parse import urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("PROJECT_ID", "demo-project")
os.environ.setdefault("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")

import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.backends import default_backend
from authlib.jose import JsonWebKey, jwt as authlib_jwt

from backend.core import audit
from backend.core.identity import (
    DEFAULT_JWKS_URL,
    IdentityClient,
    ServiceAccountCredentials,
    SessionService,
    TokenVerifier,
    UserService,
)
from backend.core.auth_facade import AuthFacade

PROJECT_ID = "demo-project"
API_KEY = "test-api-key"
ADMIN_TOKEN = "admin-access-token"
TOKEN_URI = "https://oauth2.googleapis.com/token"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting live endpoints.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    def _stub_get(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)
    monkeypatch.setattr(requests, "get", _stub_get)


@pytest.fixture(autouse=True)
def _isolated_audit_log(monkeypatch, tmp_path):
    """Keep audit events out of the working tree."""
    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "identity-events.jsonl")
    return audit_dir


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pairs for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
def _generate_key_pair() -> dict:
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )

    public_key = private_key.public_key()
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )

    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_key": public_key,
        "public_pem": public_pem,
    }


@pytest.fixture(scope="session")
def rsa_key_pair():
    """RSA key pair standing in for the provider's ID token signing key."""
    return _generate_key_pair()


@pytest.fixture(scope="session")
def service_account_key_pair():
    """RSA key pair for the service account."""
    return _generate_key_pair()


@pytest.fixture()
def service_account_info(service_account_key_pair):
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "private_key_id": "sa-key-1",
        "private_key": service_account_key_pair["private_pem"].decode("utf-8"),
        "client_email": f"admin@{PROJECT_ID}.iam.gserviceaccount.com",
        "token_uri": TOKEN_URI,
    }


@pytest.fixture()
def service_account_credentials(service_account_info):
    return ServiceAccountCredentials.from_info(service_account_info)


def public_jwk(key_pair: dict, kid: str = "default-key-id") -> dict:
    jwk = JsonWebKey.import_key(key_pair["public_pem"], {"kty": "RSA"})
    jwk_dict = jwk.as_dict()
    jwk_dict["kid"] = kid
    jwk_dict["use"] = "sig"
    jwk_dict["alg"] = "RS256"
    return jwk_dict


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_id_token(
    key_pair: dict,
    uid: str = "uid-1",
    project_id: str = PROJECT_ID,
    issuer: Optional[str] = None,
    exp_offset: int = 3600,
    auth_time: Optional[int] = None,
    kid: str = "default-key-id",
    email: str = "alice@example.com",
) -> str:
    """Create an RS256-signed ID token shaped like the provider's."""
    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    payload = {
        "iss": issuer or f"https://securetoken.google.com/{project_id}",
        "aud": project_id,
        "sub": uid,
        "user_id": uid,
        "email": email,
        "iat": now,
        "exp": now + exp_offset,
        "auth_time": now if auth_time is None else auth_time,
    }
    token = authlib_jwt.encode(header, payload, key_pair["private_key"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


# ─────────────────────────────────────────────────────────────────────────────
# Fake Identity Provider
# ─────────────────────────────────────────────────────────────────────────────
class FakeResponse:
    def __init__(self, payload: dict, status_code: int = 200, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.url = url
        self.text = json.dumps(payload)

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class FakeIdentityProvider:
    """In-memory identity provider speaking the Identity Toolkit / Secure Token wire format."""

    def __init__(self, key_pair: dict, project_id: str = PROJECT_ID):
        self.key_pair = key_pair
        self.project_id = project_id
        self.users: dict[str, dict] = {}
        self.refresh_tokens: dict[str, dict] = {}
        self.reset_emails: list[str] = []
        self.calls: list[str] = []
        self._counter = 0

    # Helpers ──────────────────────────────────────────────────────────────
    @staticmethod
    def _error(message: str, status_code: int = 400) -> FakeResponse:
        return FakeResponse({"error": {"code": status_code, "message": message}}, status_code)

    def _next(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def _by_email(self, email: str) -> Optional[dict]:
        return next((u for u in self.users.values() if u["email"] == email), None)

    def _issue(self, uid: str) -> tuple[str, str]:
        refresh_token = self._next("refresh")
        self.refresh_tokens[refresh_token] = {"uid": uid, "revoked": False}
        id_token = create_id_token(self.key_pair, uid=uid, project_id=self.project_id,
                                   email=self.users[uid]["email"])
        return id_token, refresh_token

    # Transport ────────────────────────────────────────────────────────────
    def get(self, url, *args, **kwargs):
        if url == DEFAULT_JWKS_URL:
            return FakeResponse({"keys": [public_jwk(self.key_pair)]}, url=url)
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    def post(self, url, *args, data=None, json=None, params=None, headers=None, **kwargs):
        path = urlparse(url).path
        self.calls.append(path)

        if url == TOKEN_URI:
            if not data or not data.get("assertion"):
                return self._error("invalid_grant")
            return FakeResponse({"access_token": ADMIN_TOKEN, "expires_in": 3600}, url=url)

        admin_prefix = f"/v1/projects/{self.project_id}/"
        if path.startswith(admin_prefix):
            if (headers or {}).get("Authorization") != f"Bearer {ADMIN_TOKEN}":
                return self._error("UNAUTHENTICATED", 401)
            return self._admin(path[len(admin_prefix):], json or {})

        if (params or {}).get("key") != API_KEY:
            return self._error("API key not valid. Please pass a valid API key.")
        if path == "/v1/accounts:signInWithPassword":
            return self._sign_in(json or {})
        if path == "/v1/accounts:sendOobCode":
            return self._send_oob(json or {})
        if path == "/v1/token":
            return self._refresh(data or {})
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    # Admin API ────────────────────────────────────────────────────────────
    def _admin(self, action: str, body: dict) -> FakeResponse:
        if action == "accounts":
            if self._by_email(body.get("email", "")):
                return self._error("EMAIL_EXISTS")
            if len(body.get("password", "")) < 6:
                return self._error("WEAK_PASSWORD : Password should be at least 6 characters")
            uid = self._next("uid")
            self.users[uid] = {
                "localId": uid,
                "email": body["email"],
                "password": body["password"],
                "displayName": body.get("displayName", ""),
                "validSince": "0",
            }
            return FakeResponse({"localId": uid, "kind": "identitytoolkit#SignupNewUserResponse"})

        if action == "accounts:lookup":
            matches = []
            for uid in body.get("localId", []):
                if uid in self.users:
                    matches.append(self.users[uid])
            for email in body.get("email", []):
                user = self._by_email(email)
                if user:
                    matches.append(user)
            payload = {"kind": "identitytoolkit#GetAccountInfoResponse"}
            if matches:
                payload["users"] = [{k: v for k, v in u.items() if k != "password"} for u in matches]
            return FakeResponse(payload)

        if action == "accounts:update":
            user = self.users.get(body.get("localId"))
            if user is None:
                return self._error("USER_NOT_FOUND")
            if "email" in body:
                other = self._by_email(body["email"])
                if other and other is not user:
                    return self._error("EMAIL_EXISTS")
                user["email"] = body["email"]
            if "password" in body:
                user["password"] = body["password"]
            if "displayName" in body:
                user["displayName"] = body["displayName"]
            if "validSince" in body:
                user["validSince"] = body["validSince"]
                for record in self.refresh_tokens.values():
                    if record["uid"] == user["localId"]:
                        record["revoked"] = True
            return FakeResponse({"localId": user["localId"]})

        if action == "accounts:delete":
            if self.users.pop(body.get("localId"), None) is None:
                return self._error("USER_NOT_FOUND")
            return FakeResponse({"kind": "identitytoolkit#DeleteAccountResponse"})

        raise RuntimeError(f"Unexpected admin action in unit test: {action}")

    # Client API ───────────────────────────────────────────────────────────
    def _sign_in(self, body: dict) -> FakeResponse:
        user = self._by_email(body.get("email", ""))
        if user is None:
            return self._error("EMAIL_NOT_FOUND")
        if user["password"] != body.get("password"):
            return self._error("INVALID_PASSWORD")
        id_token, refresh_token = self._issue(user["localId"])
        return FakeResponse({
            "localId": user["localId"],
            "email": user["email"],
            "idToken": id_token,
            "refreshToken": refresh_token,
            "expiresIn": "3600",
            "registered": True,
        })

    def _send_oob(self, body: dict) -> FakeResponse:
        if body.get("requestType") != "PASSWORD_RESET":
            return self._error("INVALID_REQ_TYPE")
        if self._by_email(body.get("email", "")) is None:
            return self._error("EMAIL_NOT_FOUND")
        self.reset_emails.append(body["email"])
        return FakeResponse({"email": body["email"]})

    def _refresh(self, data: dict) -> FakeResponse:
        record = self.refresh_tokens.get(data.get("refresh_token", ""))
        if record is None:
            return self._error("INVALID_REFRESH_TOKEN")
        if record["uid"] not in self.users:
            return self._error("USER_NOT_FOUND")
        if record["revoked"]:
            return self._error("TOKEN_EXPIRED")
        id_token = create_id_token(self.key_pair, uid=record["uid"], project_id=self.project_id)
        return FakeResponse({
            "id_token": id_token,
            "refresh_token": data["refresh_token"],
            "user_id": record["uid"],
            "expires_in": "3600",
            "token_type": "Bearer",
        })


@pytest.fixture()
def fake_idp(monkeypatch, rsa_key_pair):
    """Route requests.get/post to an in-memory identity provider."""
    idp = FakeIdentityProvider(rsa_key_pair)
    monkeypatch.setattr(requests, "post", idp.post)
    monkeypatch.setattr(requests, "get", idp.get)
    return idp


@pytest.fixture()
def identity_client(fake_idp, service_account_credentials):
    return IdentityClient(project_id=PROJECT_ID, api_key=API_KEY, credentials=service_account_credentials)


@pytest.fixture()
def facade(identity_client):
    """Auth facade wired to the fake identity provider."""
    return AuthFacade(
        users=UserService(identity_client),
        sessions=SessionService(identity_client),
        verifier=TokenVerifier(PROJECT_ID),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a live identity provider)"
    )
