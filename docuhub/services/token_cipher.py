"""Fernet encryption for stored source-control tokens."""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..core.config import settings
from ..exceptions import StoredCredentialError

logger = logging.getLogger(__name__)


class TokenCipher:
    """Encrypts and decrypts provider access tokens.

    Uses ``settings.encryption_key`` when set. In development an empty key
    falls back to one derived from the JWT secret, which production
    startup refuses.
    """

    def __init__(self, key: Optional[str] = None):
        key = key if key is not None else settings.encryption_key
        if not key:
            digest = hashlib.sha256(("docuhub-token-cipher:" + settings.jwt_secret_key).encode()).digest()
            key = base64.urlsafe_b64encode(digest).decode()
        self._fernet = Fernet(key.encode())

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """Raises StoredCredentialError when the token was encrypted under a different key."""
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as e:
            logger.error("Stored provider token could not be decrypted")
            raise StoredCredentialError() from e
