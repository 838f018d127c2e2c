"""
Tests for bearer token extraction and verification
"""

import time

import jwt
import pytest

from chatgate.security.token_verifier import Identity, TokenVerifier, extract_bearer_token
from tests.helpers.mocks import TEST_SECRET, make_token


class TestExtractBearerToken:
    def test_extracts_token(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "bearer abc", "abc"])
    def test_missing_or_malformed_header(self, header):
        assert extract_bearer_token(header) is None


class TestTokenVerifier:
    def test_valid_token_yields_subject(self):
        verifier = TokenVerifier(secret=TEST_SECRET)

        identity = verifier.verify(make_token("user-42", email="a@example.com"))

        assert identity == Identity(subject="user-42")
        assert identity.claims["email"] == "a@example.com"

    def test_numeric_subject_is_stringified(self):
        identity = TokenVerifier(secret=TEST_SECRET).verify(make_token(7))

        assert identity.subject == "7"

    def test_wrong_secret_is_rejected(self):
        token = make_token(secret="another-secret-that-is-long-enough-for-hmac-0123456789abcdef01234")

        assert TokenVerifier(secret=TEST_SECRET).verify(token) is None

    def test_garbage_is_rejected(self):
        assert TokenVerifier(secret=TEST_SECRET).verify("not-a-jwt") is None

    def test_expired_token_is_rejected(self):
        token = make_token(exp=int(time.time()) - 60)

        assert TokenVerifier(secret=TEST_SECRET).verify(token) is None

    def test_token_without_user_id_is_rejected(self):
        token = jwt.encode({"sub": "user-1"}, TEST_SECRET, algorithm="HS256")

        assert TokenVerifier(secret=TEST_SECRET).verify(token) is None

    def test_other_algorithms_are_rejected(self):
        token = jwt.encode({"userId": "user-1"}, TEST_SECRET, algorithm="HS512")

        assert TokenVerifier(secret=TEST_SECRET).verify(token) is None

    def test_unconfigured_secret_rejects_everything(self):
        assert TokenVerifier(secret="").verify(make_token()) is None
