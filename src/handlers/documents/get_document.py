import base64
import logging
import os

import boto3

from common.repository.document_repo import DocumentRepository
from common.services.document_vault import DocumentVault
from common.services.encryption import KmsKeyWrapper
from common.services.object_store import S3ObjectStore
from common.utils.aws_config import client_config
from common.utils.custom_response import send_custom_response, send_error_response
from common.utils.custom_exceptions import ReservationError
from common.utils.request_context import path_parameter, principal_from_event

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


def get_document(event, context):
    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    document_id = path_parameter(event, "document_id")
    if not document_id:
        return send_custom_response(400, "document_id is required")

    as_url = (event.get("queryStringParameters") or {}).get("format") == "url"
    try:
        if as_url:
            url = vault.get_document_url(document_id, principal)
            return send_custom_response(200, "Document link created", {"url": url})

        content = vault.retrieve_document(document_id, principal)
        return send_custom_response(
            200,
            "Document retrieved",
            {
                "document_id": document_id,
                "content": base64.b64encode(content).decode("ascii"),
            },
        )
    except ReservationError as err:
        logger.warning(f"Document {document_id} access by {principal.user_id} failed: {err}")
        return send_error_response(err)
    except Exception:
        logger.exception(f"Unhandled error while retrieving document {document_id}")
        return send_custom_response(500, "Internal server error")
