"""
Authenticated encryption for identity documents.

Each document gets its own random secret and salt. The AES-256-GCM key is
derived from the secret with PBKDF2-HMAC-SHA512, and the stored blob is laid
out as ``salt || iv || tag || ciphertext``.
"""

import base64
import logging
import os
from dataclasses import dataclass
from typing import Protocol

from botocore.exceptions import BotoCoreError, ClientError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from common.models.documents import KeyWrapping
from common.utils.aws_errors import error_code, raise_store_error
from common.utils.custom_exceptions import IntegrityError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
SALT_LENGTH = 64
IV_LENGTH = 16
TAG_LENGTH = 16
SECRET_LENGTH = 32
PBKDF2_ITERATIONS = 100_000

HEADER_LENGTH = SALT_LENGTH + IV_LENGTH + TAG_LENGTH


@dataclass(frozen=True)
class EncryptedPayload:
    data: bytes
    secret: str


class EncryptionService:
    @staticmethod
    def _derive_key(secret: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(secret.encode("utf-8"))

    @classmethod
    def encrypt(cls, data: bytes) -> EncryptedPayload:
        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        secret = os.urandom(SECRET_LENGTH).hex()
        key = cls._derive_key(secret, salt)

        # AESGCM appends the tag to the ciphertext
        sealed = AESGCM(key).encrypt(iv, data, None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]

        return EncryptedPayload(data=salt + iv + tag + ciphertext, secret=secret)

    @classmethod
    def decrypt(cls, payload: bytes, secret: str) -> bytes:
        if len(payload) < HEADER_LENGTH:
            raise IntegrityError("encrypted payload is truncated")

        salt = payload[:SALT_LENGTH]
        iv = payload[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
        tag = payload[SALT_LENGTH + IV_LENGTH:HEADER_LENGTH]
        ciphertext = payload[HEADER_LENGTH:]

        key = cls._derive_key(secret, salt)
        try:
            return AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag as err:
            raise IntegrityError("document failed authentication") from err


class KeyWrapper(Protocol):
    wrapping: KeyWrapping

    def wrap(self, secret: str) -> str: ...

    def unwrap(self, wrapped: str) -> str: ...


class PlaintextKeyWrapper:
    """Stores the per-document secret as is."""

    wrapping = KeyWrapping.NONE

    def wrap(self, secret: str) -> str:
        return secret

    def unwrap(self, wrapped: str) -> str:
        return wrapped


class KmsKeyWrapper:
    """Envelope-encrypts the per-document secret under a KMS master key."""

    wrapping = KeyWrapping.KMS
    encryption_context = {"purpose": "identity-document"}

    def __init__(self, kms_client, key_id: str):
        self.kms = kms_client
        self.key_id = key_id

    def wrap(self, secret: str) -> str:
        try:
            response = self.kms.encrypt(
                KeyId=self.key_id,
                Plaintext=secret.encode("utf-8"),
                EncryptionContext=self.encryption_context,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error wrapping document key with {self.key_id}: {err}")
            raise_store_error(err)
        return base64.b64encode(response["CiphertextBlob"]).decode("ascii")

    def unwrap(self, wrapped: str) -> str:
        try:
            response = self.kms.decrypt(
                CiphertextBlob=base64.b64decode(wrapped),
                EncryptionContext=self.encryption_context,
            )
        except ClientError as err:
            if error_code(err) == "InvalidCiphertextException":
                raise IntegrityError("document key failed authentication") from err
            logger.error(f"Error unwrapping document key: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error unwrapping document key: {err}")
            raise_store_error(err)
        return response["Plaintext"].decode("utf-8")
