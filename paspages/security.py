"""
Symmetric encryption for secrets kept in the settings table.

Tokens are ``base64(nonce || ciphertext)`` produced by AES-256-GCM with a key
derived from the application secret through PBKDF2-SHA256.
"""

import base64
import logging
import os
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger("paspages.security")

DEV_SECRET = "dev-unsafe-secret-key-CHANGE_ME_IN_PROD"
KDF_SALT = b"paspages-core-salt"
KDF_ITERATIONS = 100_000
NONCE_SIZE = 12


class Security:
    """Encrypts and decrypts short strings with the application secret."""

    def __init__(self, secret: Optional[str] = None, environment: str = "development"):
        if not secret and environment == "production":
            logger.error("CRITICAL: APP_SECRET is missing in production")
        self._secret = secret or DEV_SECRET
        self._key: Optional[bytes] = None

    @classmethod
    def from_config(cls, config) -> "Security":
        return cls(config.app_secret, config.environment)

    def _derive_key(self) -> bytes:
        if self._key is None:
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=KDF_SALT,
                iterations=KDF_ITERATIONS,
            )
            self._key = kdf.derive(self._secret.encode("utf-8"))
        return self._key

    def encrypt(self, text: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(self._derive_key()).encrypt(nonce, text.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> Optional[str]:
        """Plaintext for ``token``, or ``None`` when it cannot be decrypted."""
        try:
            combined = base64.b64decode(token, validate=True)
            nonce, data = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
            plaintext = AESGCM(self._derive_key()).decrypt(nonce, data, None)
            return plaintext.decode("utf-8")
        except Exception as exc:
            logger.error(f"Decryption failed: {type(exc).__name__}")
            return None
