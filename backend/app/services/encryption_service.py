"""Fernet wrapper for Slack access tokens and the pending-link cookie.

In production: rotate keys, store in secret manager. A single key via env for now.
"""
from __future__ import annotations
import json
import os
from typing import Any, Dict
from cryptography.fernet import Fernet, InvalidToken
from functools import lru_cache

class EncryptionService:
    ENV_KEY = "APP_ENCRYPTION_KEY"

    def __init__(self, key: bytes | str | None = None):
        key_b64 = key or os.getenv(self.ENV_KEY)
        if not key_b64:
            # Ephemeral key, NOT for production persistence
            key_b64 = Fernet.generate_key()
            os.environ[self.ENV_KEY] = key_b64.decode()
        if isinstance(key_b64, str):
            key_b64 = key_b64.encode()
        self._fernet = Fernet(key_b64)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, token: str, ttl: int | None = None) -> str:
        try:
            return self._fernet.decrypt(token.encode(), ttl=ttl).decode()
        except InvalidToken:
            raise ValueError("INVALID_ENCRYPTED_VALUE")

    def encrypt_json(self, data: Dict[str, Any]) -> str:
        return self.encrypt(json.dumps(data, separators=(",", ":")))

    def decrypt_json(self, token: str, ttl: int | None = None) -> Dict[str, Any]:
        return json.loads(self.decrypt(token, ttl=ttl))

@lru_cache(maxsize=1)
def get_encryption_service() -> EncryptionService:
    return EncryptionService()
