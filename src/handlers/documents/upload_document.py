import logging
import os

import boto3

from common.repository.document_repo import DocumentRepository
from common.services.document_vault import DocumentVault
from common.services.encryption import KmsKeyWrapper
from common.services.object_store import S3ObjectStore
from common.schemas.documents import DocumentUploadRequest
from common.utils.aws_config import client_config
from common.utils.custom_response import send_custom_response, send_error_response
from common.utils.custom_exceptions import ReservationError
from common.utils.request_context import principal_from_event
from pydantic import ValidationError as RequestValidationError

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")
DOCUMENT_BUCKET = os.environ.get("DOCUMENT_BUCKET")
DOCUMENT_KMS_KEY_ID = os.environ.get("DOCUMENT_KMS_KEY_ID")

table = boto3.resource("dynamodb", config=client_config()).Table(TABLE_NAME)
s3 = boto3.client("s3", config=client_config())
key_wrapper = (
    KmsKeyWrapper(boto3.client("kms", config=client_config()), DOCUMENT_KMS_KEY_ID)
    if DOCUMENT_KMS_KEY_ID
    else None
)

vault = DocumentVault(
    document_repo=DocumentRepository(table),
    object_store=S3ObjectStore(s3, DOCUMENT_BUCKET),
    key_wrapper=key_wrapper,
)


def upload_document(event, context):
    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    if not event.get("body"):
        return send_custom_response(400, "Request body is required")
    try:
        request_body = DocumentUploadRequest.model_validate_json(event["body"])
    except RequestValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    try:
        ref = vault.store_document(
            principal.user_id, request_body.content, request_body.mime_type
        )
        return send_custom_response(
            201,
            "Document stored",
            {"document_id": ref.document_id, "owner_id": ref.owner_id},
        )
    except ReservationError as err:
        logger.warning(f"Document upload by {principal.user_id} rejected: {err}")
        return send_error_response(err)
    except Exception:
        logger.exception("Unhandled error while storing document")
        return send_custom_response(500, "Internal server error")
