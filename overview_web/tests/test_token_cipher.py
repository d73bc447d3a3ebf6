"""Tests for token encryption at rest."""
import pytest

from overview_web.token_cipher import TokenCipher, create_cipher, load_or_create_secret


def test_encrypt_decrypt():
    cipher = TokenCipher("secret")
    ciphertext = cipher.encrypt("access-token")
    assert ciphertext != "access-token"
    assert cipher.decrypt(ciphertext) == "access-token"


def test_wrong_secret_cannot_decrypt():
    ciphertext = TokenCipher("secret").encrypt("access-token")
    with pytest.raises(ValueError):
        TokenCipher("other").decrypt(ciphertext)


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        TokenCipher("")


def test_key_file_generated_once(tmp_path):
    path = tmp_path / "token.key"
    first = load_or_create_secret(str(path))
    assert path.read_text().strip() == first
    assert load_or_create_secret(str(path)) == first


def test_create_cipher_prefers_configured_secret(tmp_path):
    path = tmp_path / "token.key"
    ciphertext = create_cipher("configured", str(path)).encrypt("rt")
    assert not path.exists()
    assert TokenCipher("configured").decrypt(ciphertext) == "rt"
