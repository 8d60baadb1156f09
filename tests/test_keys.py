import pytest

from errors import InvalidInput
from keys import KeyManager


def test_generated_key_verifies_against_its_digest() -> None:
    km = KeyManager()
    key = km.generate_key()
    assert km.verify(key, km.digest(key))


def test_other_keys_do_not_verify() -> None:
    km = KeyManager()
    key = km.generate_key()
    digest = km.digest(key)
    assert not km.verify(key + "0", digest)
    assert not km.verify(km.generate_key(), digest)


def test_digest_is_unsalted_sha256_hex() -> None:
    assert KeyManager.digest("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_generated_keys_have_configured_length_and_vary() -> None:
    km = KeyManager(key_length=9)
    keys = {km.generate_key() for _ in range(50)}
    assert len(keys) == 50
    assert all(len(k) == 9 for k in keys)
    assert all(all(c in "0123456789abcdef" for c in k) for k in keys)


def test_rejects_short_key_length() -> None:
    with pytest.raises(ValueError):
        KeyManager(key_length=4)


def test_empty_key_is_invalid_input() -> None:
    km = KeyManager()
    with pytest.raises(InvalidInput):
        km.digest("")
    with pytest.raises(InvalidInput):
        km.verify("", km.digest("abc"))


def test_missing_digest_never_verifies() -> None:
    assert not KeyManager().verify("abc", "")
