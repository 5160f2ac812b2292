import re

import pytest

from app.core import security
from app.core.exceptions import HashError
from app.core.security import generate_snippet_id, get_password_hash, verify_password


def test_hash_embeds_algorithm_cost_and_salt():
    encoded = get_password_hash("pw", rounds=4)

    assert encoded.startswith("$2b$04$")
    assert verify_password("pw", encoded)


def test_hashes_of_same_password_are_salted():
    assert get_password_hash("pw", rounds=4) != get_password_hash("pw", rounds=4)


def test_verify_rejects_wrong_password():
    encoded = get_password_hash("correct horse", rounds=4)

    assert not verify_password("battery staple", encoded)
    assert not verify_password("", encoded)


@pytest.mark.parametrize("encoded", ["", "not-a-hash", "$2b$04$garbage", "plain-text-password"])
def test_verify_returns_false_for_malformed_hash(encoded):
    assert verify_password("pw", encoded) is False


def test_long_passwords_verify_consistently():
    password = "ж" * 100  # 200 байт в UTF-8
    encoded = get_password_hash(password, rounds=4)

    assert verify_password(password, encoded)


def test_hash_failure_raises_hash_error(monkeypatch):
    class BrokenContext:
        def hash(self, secret):
            raise RuntimeError("entropy exhausted")

    monkeypatch.setattr(security, "get_pwd_context", lambda rounds=12: BrokenContext())

    with pytest.raises(HashError):
        get_password_hash("pw", rounds=4)


def test_snippet_ids_are_url_safe_and_long_enough():
    snippet_id = generate_snippet_id()

    # 16 случайных байт -> 22 символа base64url
    assert len(snippet_id) >= 22
    assert re.fullmatch(r"[A-Za-z0-9_-]+", snippet_id)


def test_snippet_ids_do_not_collide():
    ids = {generate_snippet_id() for _ in range(5000)}

    assert len(ids) == 5000
