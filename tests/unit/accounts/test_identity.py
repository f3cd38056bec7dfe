from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from modules.accounts.identity import JWTIdentityVerifier

pytestmark = pytest.mark.unit

SECRET = "unit-test-signing-secret-of-sufficient-length"


def sign(payload=None, secret=SECRET, algorithm="HS256", **overrides):
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "subject-1",
        "aud": "authenticated",
        "exp": now + timedelta(minutes=5),
        "email": "someone@example.test",
    }
    claims.update(payload or {})
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm=algorithm)


@pytest.fixture()
def verifier():
    return JWTIdentityVerifier(secret=SECRET)


class TestJWTIdentityVerifier:
    def test_valid_token(self, verifier):
        identity = verifier.verify(sign())

        assert identity.subject_id == "subject-1"
        assert identity.email == "someone@example.test"

    def test_expired(self, verifier):
        token = sign(exp=datetime.now(timezone.utc) - timedelta(seconds=30))
        assert verifier.verify(token) is None

    def test_leeway_tolerates_small_skew(self):
        token = sign(exp=datetime.now(timezone.utc) - timedelta(seconds=5))
        assert JWTIdentityVerifier(secret=SECRET, leeway=60).verify(token) is not None

    def test_wrong_secret(self, verifier):
        assert verifier.verify(sign(secret="some-other-secret-of-sufficient-length")) is None

    def test_wrong_audience(self, verifier):
        assert verifier.verify(sign(aud="anon")) is None

    def test_missing_subject(self, verifier):
        assert verifier.verify(sign(sub=None)) is None

    def test_missing_expiry(self, verifier):
        assert verifier.verify(sign(exp=None)) is None

    def test_issuer_checked_when_configured(self):
        strict = JWTIdentityVerifier(secret=SECRET, issuer="https://id.example.test")

        assert strict.verify(sign(iss="https://id.example.test")) is not None
        assert strict.verify(sign(iss="https://elsewhere.test")) is None

    def test_algorithm_pinned(self, verifier):
        assert verifier.verify(sign(algorithm="HS512")) is None

    def test_garbage(self, verifier):
        assert verifier.verify("not.a.jwt") is None
        assert verifier.verify("") is None

    def test_unconfigured_secret_rejects_everything(self):
        assert JWTIdentityVerifier(secret="").verify(sign()) is None
