from jose import jwt

from recruitdesk.utils.security import (
    ALGORITHM,
    check_password,
    create_access_token,
    hash_password,
    read_token_subject,
)


def test_password_hash_round_trip():
    stored = hash_password("secret123")
    assert stored != "secret123"
    assert stored.startswith("$argon2")

    valid, new_hash = check_password("secret123", stored)
    assert valid is True
    assert new_hash is None
    assert check_password("wrong", stored)[0] is False


def test_missing_or_foreign_hash_never_matches():
    assert check_password("secret123", None) == (False, None)
    assert check_password("secret123", "") == (False, None)
    assert check_password("secret123", "plain-text") == (False, None)


def test_token_carries_the_email():
    token = create_access_token("sara@recruitdesk.io")
    assert read_token_subject(token) == "sara@recruitdesk.io"


def test_expired_or_forged_tokens_have_no_subject():
    assert read_token_subject(create_access_token("sara@recruitdesk.io", expires_minutes=-1)) is None

    forged = jwt.encode({"sub": "sara@recruitdesk.io"}, "another-secret", algorithm=ALGORITHM)
    assert read_token_subject(forged) is None
    assert read_token_subject("not.a.token") is None
