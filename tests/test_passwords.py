"""
authgate - Credential Verifier Tests
"""

import pytest

from authgate.core.constants import BCRYPT_ROUNDS
from authgate.core.passwords import burn_verification_time, hash_password, verify_password


PASSWORD = "Str0ng!Pass"


@pytest.fixture(scope="module")
def digest() -> str:
    return hash_password(PASSWORD)


def test_hash_uses_fixed_cost(digest):
    assert digest.startswith(f"$2b${BCRYPT_ROUNDS:02d}$")


def test_hash_is_salted():
    assert hash_password(PASSWORD) != hash_password(PASSWORD)


def test_verify_accepts_original(digest):
    assert verify_password(PASSWORD, digest) is True


@pytest.mark.parametrize("index", [0, 4, len(PASSWORD) - 1])
def test_verify_rejects_single_character_mutation(digest, index):
    mutated = PASSWORD[:index] + chr(ord(PASSWORD[index]) ^ 1) + PASSWORD[index + 1:]
    assert mutated != PASSWORD
    assert verify_password(mutated, digest) is False


@pytest.mark.parametrize("bad_digest", ["", "not-a-bcrypt-hash", "$2b$10$short"])
def test_verify_malformed_digest_is_false(bad_digest):
    assert verify_password(PASSWORD, bad_digest) is False


def test_verify_empty_password_is_false(digest):
    assert verify_password("", digest) is False


def test_hash_blank_password_raises():
    with pytest.raises(ValueError):
        hash_password("")


def test_burn_verification_time_returns_none():
    assert burn_verification_time("whatever") is None
    assert burn_verification_time("") is None
