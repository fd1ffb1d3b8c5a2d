from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from eventdesk.models.common import utcnow
from eventdesk.services.auth import _decode_token, _parse_claims, hash_password, issue_token, verify_password


def test_parse_claims_success() -> None:
    merchant_id, session_id = _parse_claims({"sub": "123", "sid": "abc123"})
    assert merchant_id == 123
    assert session_id == "abc123"


def test_parse_claims_requires_merchant_id() -> None:
    with pytest.raises(HTTPException) as exc:
        _parse_claims({"sid": "abc123"})
    assert exc.value.status_code == 401


def test_parse_claims_requires_session_id() -> None:
    with pytest.raises(HTTPException):
        _parse_claims({"sub": "7", "sid": "  "})


def test_issued_token_round_trips() -> None:
    token = issue_token(42, "s-1", utcnow() + timedelta(hours=1))
    assert _parse_claims(_decode_token(token)) == (42, "s-1")


def test_expired_token_is_rejected() -> None:
    token = issue_token(42, "s-1", utcnow() - timedelta(hours=1))
    with pytest.raises(HTTPException) as exc:
        _decode_token(token)
    assert exc.value.status_code == 401


def test_foreign_signature_is_rejected() -> None:
    token = jwt.encode({"sub": "42", "sid": "s-1"}, "someone-else", algorithm="HS256")
    with pytest.raises(HTTPException):
        _decode_token(token)


def test_password_hash_verifies() -> None:
    hashed = hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")
