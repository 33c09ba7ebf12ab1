import os
import base64

from dotenv import load_dotenv
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

load_dotenv()

HEADER = b"v1"
NONCE_SIZE = 12


class TokenCipher:
    """AES-256-GCM for values written to durable token storage.

    Payload layout: ``b"v1" + nonce(12) + ciphertext``, base64 encoded.
    The AAD binds a ciphertext to the storage key it was written under.
    """

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ValueError(
                f"Encryption key must be 32 bytes for AES-256. Got {len(key)} bytes."
            )
        self._aesgcm = AESGCM(key)

    @classmethod
    def from_b64(cls, key_b64: str) -> "TokenCipher":
        return cls(base64.b64decode(key_b64))

    @classmethod
    def from_env(cls) -> "TokenCipher":
        key_b64 = os.getenv("ENCRYPTION_KEY")
        if not key_b64:
            raise RuntimeError("ENCRYPTION_KEY missing in .env")
        return cls.from_b64(key_b64)

    def encrypt_bytes(self, plaintext: bytes, aad: bytes) -> str:
        nonce = os.urandom(NONCE_SIZE)
        ct = self._aesgcm.encrypt(nonce, plaintext, aad)
        return base64.b64encode(HEADER + nonce + ct).decode("utf-8")

    def decrypt_bytes(self, payload_b64: str, aad: bytes) -> bytes:
        raw = base64.b64decode(payload_b64.encode("utf-8"))
        if raw[:2] != HEADER:
            raise ValueError("Not encrypted with expected format/version header")
        nonce = raw[2:2 + NONCE_SIZE]
        ct = raw[2 + NONCE_SIZE:]
        return self._aesgcm.decrypt(nonce, ct, aad)

    def encrypt_text(self, value: str, aad: str) -> str:
        return self.encrypt_bytes(value.encode("utf-8"), aad.encode("utf-8"))

    def decrypt_text(self, payload_b64: str, aad: str) -> str:
        return self.decrypt_bytes(payload_b64, aad.encode("utf-8")).decode("utf-8")
