"""
Encryption of stored access/refresh tokens (Fernet). Key comes from a secret or a generated key file.
"""
import base64
import hashlib
import logging
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class TokenCipher:
    """Encrypt and decrypt token strings with a Fernet key derived from a secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("token encryption secret must be provided")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("ascii"))
        except (InvalidToken, UnicodeEncodeError) as e:
            raise ValueError("stored token could not be decrypted") from e
        return plaintext.decode("utf-8")


def load_or_create_secret(path: str) -> str:
    """
    Read the token secret from path, or generate one and save it there.
    Losing the file makes existing stored tokens unreadable (users log in again).
    """
    p = Path(path)
    if p.exists():
        secret = p.read_text(encoding="utf-8").strip()
        if secret:
            return secret
        logger.warning("Token key file %s is empty; generating a new key", path)
    secret = Fernet.generate_key().decode("ascii")
    try:
        p.write_text(secret, encoding="utf-8")
        p.chmod(0o600)
        logger.info("Generated and saved token key to %s", path)
    except OSError as e:
        logger.warning("Could not save token key to %s: %s; stored tokens will not survive a restart", path, e)
    return secret


def create_cipher(secret: str | None, key_path: str) -> TokenCipher:
    return TokenCipher(secret or load_or_create_secret(key_path))
