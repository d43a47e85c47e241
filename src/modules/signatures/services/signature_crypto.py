"""
At-rest encryption for signature images stored on workflow actions.

Only image data URIs are encrypted; actor names recorded as a textual
signature are stored as-is. Values without the prefix are returned
unchanged so rows written before encryption stay readable.
"""
import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "encrypted:"
_DEV_PASSPHRASE = b"docflow-portal-development-key"


def _fernet_for(key: Optional[str]) -> Fernet:
    if not key:
        logger.warning(
            "Signature encryption key not configured; using a development key (NOT SECURE FOR PRODUCTION)"
        )
        return Fernet(base64.urlsafe_b64encode(hashlib.sha256(_DEV_PASSPHRASE).digest()))
    try:
        return Fernet(key.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        # Passphrases are stretched into a key; Fernet keys are preferred
        logger.warning("Signature encryption key is not a Fernet key; deriving one from it")
        return Fernet(base64.urlsafe_b64encode(hashlib.sha256(key.encode("utf-8")).digest()))


def is_encrypted(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(ENCRYPTED_PREFIX)


class SignatureCipher:

    def __init__(self, key: Optional[str] = None):
        self._fernet = _fernet_for(key)

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        if not plaintext:
            return None
        if is_encrypted(plaintext) or not plaintext.startswith("data:image"):
            return plaintext
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return ENCRYPTED_PREFIX + token.decode("ascii")

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        if not ciphertext:
            return None
        if not is_encrypted(ciphertext):
            return ciphertext
        try:
            token = ciphertext[len(ENCRYPTED_PREFIX):].encode("ascii")
            return self._fernet.decrypt(token).decode("utf-8")
        except (InvalidToken, UnicodeError):
            logger.warning("Could not decrypt stored signature (corrupted data or wrong key)")
            return None
