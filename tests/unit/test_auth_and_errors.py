"""
Tests for JWT verification and the error envelope.
"""

import pytest
from fastapi import HTTPException

from conftest import TEST_JWT_SECRET, generate_test_jwt


class TestVerifyJWT:

    def test_valid_token(self):
        from core.auth import extract_user, verify_jwt

        payload = verify_jwt(generate_test_jwt("user-9"), TEST_JWT_SECRET)
        user = extract_user(payload)

        assert user.id == "user-9"
        assert user.email == "user-9@test.com"
        assert user.is_anonymous is False

    def test_expired_token(self):
        from core.auth import verify_jwt

        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(generate_test_jwt(exp_hours=-1), TEST_JWT_SECRET)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_secret(self):
        from core.auth import verify_jwt

        token = generate_test_jwt(secret="another-secret-that-is-also-32-bytes!")
        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(token, TEST_JWT_SECRET)
        assert exc_info.value.status_code == 401

    def test_unconfigured_secret(self):
        from core.auth import verify_jwt

        with pytest.raises(HTTPException) as exc_info:
            verify_jwt(generate_test_jwt(), "")
        assert exc_info.value.detail == "Authentication is not configured"


class TestErrorEnvelope:

    def test_detail_only_in_debug(self):
        from core.errors import error_envelope

        assert error_envelope("Search failed", "db down") == {"success": False, "message": "Search failed"}
        assert error_envelope("Search failed", "db down", debug=True)["error"] == "db down"

    def test_extra_fields(self):
        from core.errors import error_envelope

        body = error_envelope("Search failed", products=[])
        assert body["products"] == []

    def test_status_codes(self):
        from core.errors import NotFoundError, SearchFailure, TrackingFailure, ValidationError

        assert ValidationError("x").status_code == 400
        assert NotFoundError("x").status_code == 404
        assert SearchFailure("x").status_code == 500
        assert TrackingFailure("x", detail="y").detail == "y"


class TestUtils:

    def test_split_csv(self):
        from core.utils import split_csv

        assert split_csv("red, blue,,") == ["red", "blue"]
        assert split_csv("  ") is None
        assert split_csv(None) is None

    def test_percentage(self):
        from core.utils import percentage

        assert percentage(1, 3) == 33.33
        assert percentage(5, 0) == 0.0

    def test_keyed_locks_reuse_lock_per_key(self):
        from core.utils import KeyedLocks

        locks = KeyedLocks()
        assert locks.get("a") is locks.get("a")
        assert locks.get("a") is not locks.get("b")
