import base64
import hashlib
import json
import logging
import os
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.types import TypeDecorator, Text

logger = logging.getLogger("telecare")


def _build_cipher() -> Fernet:
    """Derive a stable Fernet key from ENCRYPTION_SECRET (or the dev fallback)."""
    secret = os.getenv("ENCRYPTION_SECRET", "dev-secret-key-change-me").encode("utf-8")
    key = base64.urlsafe_b64encode(hashlib.sha256(secret).digest())
    return Fernet(key)


_CIPHER = _build_cipher()


def encrypt_value(value: Any) -> str:
    payload = json.dumps(value)
    return _CIPHER.encrypt(payload.encode("utf-8")).decode("utf-8")


def decrypt_value(token: str) -> Any:
    raw = _CIPHER.decrypt(token.encode("utf-8")).decode("utf-8")
    return json.loads(raw)


class EncryptedJSON(TypeDecorator):
    """Stores JSON-serializable values (clinical lists) as Fernet tokens."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        return encrypt_value(value)

    def process_result_value(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        try:
            return decrypt_value(value)
        except InvalidToken:
            # Rotated ENCRYPTION_SECRET: the row is unreadable, not corrupt
            logger.warning({"function": "EncryptedJSON", "event": "undecryptable_value"})
            return None
