import logging
import secrets
import time
from typing import Dict, Optional
from uuid import uuid4

from common.models.documents import DocumentRef, KeyWrapping, SensitiveDocument
from common.models.users import Principal
from common.repository.document_repo import DocumentRepository
from common.services.encryption import EncryptionService, KeyWrapper, PlaintextKeyWrapper
from common.services.object_store import S3ObjectStore
from common.utils.constants import (
    ALLOWED_DOCUMENT_TYPES,
    DOCUMENT_KEY_PREFIX,
    DOCUMENT_URL_EXPIRY,
    MAX_DOCUMENT_SIZE,
)
from common.utils.custom_exceptions import (
    AuthorizationError,
    KeyWrapperUnavailableError,
    NotFoundError,
    TransitionReconciliationError,
    ValidationError,
)
from common.utils.retry import with_backoff

logger = logging.getLogger(__name__)


class DocumentVault:
    def __init__(
        self,
        document_repo: DocumentRepository,
        object_store: S3ObjectStore,
        key_wrapper: Optional[KeyWrapper] = None,
    ):
        self.document_repo = document_repo
        self.object_store = object_store
        self.key_wrapper = key_wrapper or PlaintextKeyWrapper()
        self._unwrappers: Dict[KeyWrapping, KeyWrapper] = {
            KeyWrapping.NONE: PlaintextKeyWrapper(),
            self.key_wrapper.wrapping: self.key_wrapper,
        }

    @staticmethod
    def _storage_key(owner_id: str) -> str:
        timestamp = int(time.time() * 1000)
        return f"{DOCUMENT_KEY_PREFIX}/{owner_id}/{timestamp}-{secrets.token_hex(8)}"

    @staticmethod
    def _validate(plaintext: bytes, mime_type: str):
        if mime_type not in ALLOWED_DOCUMENT_TYPES:
            allowed = ", ".join(ALLOWED_DOCUMENT_TYPES)
            raise ValidationError(f"Invalid file type. Allowed: {allowed}")
        if not plaintext:
            raise ValidationError("document is empty")
        if len(plaintext) > MAX_DOCUMENT_SIZE:
            raise ValidationError(f"document exceeds {MAX_DOCUMENT_SIZE} bytes")

    def store_document(self, owner_id: str, plaintext: bytes, mime_type: str) -> DocumentRef:
        self._validate(plaintext, mime_type)

        payload = EncryptionService.encrypt(plaintext)
        wrapped_key = with_backoff(
            lambda: self.key_wrapper.wrap(payload.secret), "wrap document key"
        )
        document = SensitiveDocument(
            document_id=str(uuid4()),
            owner_id=owner_id,
            storage_key=self._storage_key(owner_id),
            encryption_key=wrapped_key,
            key_wrapping=self.key_wrapper.wrapping,
            mime_type=mime_type,
            size=len(plaintext),
        )

        with_backoff(
            lambda: self.object_store.put(document.storage_key, payload.data),
            f"upload {document.storage_key}",
        )
        request_token = str(uuid4())
        try:
            with_backoff(
                lambda: self.document_repo.add_document(document, request_token),
                f"record document {document.document_id}",
            )
        except Exception:
            self._discard_object(document.storage_key)
            raise

        logger.info(f"Stored identity document {document.document_id} for user {owner_id}")
        return document.ref

    def retrieve_document(self, document_id: str, requester: Principal) -> bytes:
        document = self._authorized_document(document_id, requester)
        blob = with_backoff(
            lambda: self.object_store.get(document.storage_key),
            f"download {document.storage_key}",
        )
        secret = self._unwrap(document)
        return EncryptionService.decrypt(blob, secret)

    def get_document_url(
        self, document_id: str, requester: Principal, expires_in: int = DOCUMENT_URL_EXPIRY
    ) -> str:
        document = self._authorized_document(document_id, requester)
        return self.object_store.presigned_url(document.storage_key, expires_in)

    def delete_document(self, document_id: str, requester: Principal):
        document = self._authorized_document(document_id, requester)
        request_token = str(uuid4())
        with_backoff(
            lambda: self.document_repo.delete_document(document, request_token),
            f"delete document record {document_id}",
        )
        try:
            with_backoff(
                lambda: self.object_store.delete(document.storage_key),
                f"delete {document.storage_key}",
            )
        except Exception as err:
            logger.error(
                f"Document {document_id} record deleted but ciphertext {document.storage_key} "
                f"was not: {err}. Manual cleanup required."
            )
            raise TransitionReconciliationError(
                document.storage_key, f"document {document_id} left an orphaned object"
            ) from err
        logger.info(f"Deleted identity document {document_id}")

    def _authorized_document(self, document_id: str, requester: Principal) -> SensitiveDocument:
        document: Optional[SensitiveDocument] = with_backoff(
            lambda: self.document_repo.get_document(document_id),
            f"load document {document_id}",
        )
        if document is None:
            raise NotFoundError("document", document_id)
        if requester.user_id != document.owner_id and not requester.is_admin:
            raise AuthorizationError(
                f"user {requester.user_id} may not access document {document_id}"
            )
        return document

    def _unwrap(self, document: SensitiveDocument) -> str:
        unwrapper = self._unwrappers.get(document.key_wrapping)
        if unwrapper is None:
            raise KeyWrapperUnavailableError(document.document_id, document.key_wrapping)
        return with_backoff(
            lambda: unwrapper.unwrap(document.encryption_key), "unwrap document key"
        )

    def _discard_object(self, storage_key: str):
        try:
            with_backoff(
                lambda: self.object_store.delete(storage_key), f"discard {storage_key}"
            )
        except Exception as err:
            logger.error(
                f"Could not discard uploaded object {storage_key} after a failed record write: {err}"
            )
            raise TransitionReconciliationError(
                storage_key, "uploaded document has no record"
            ) from err
