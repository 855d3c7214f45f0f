from botocore.exceptions import BotoCoreError, ClientError
import logging
from typing import Optional

from common.models.documents import KeyWrapping, SensitiveDocument
from common.utils.aws_errors import cancellation_reasons, error_code, raise_store_error
from common.utils.custom_exceptions import ConflictError, NotFoundError
from common.utils.datetime_normaliser import from_iso_string, to_iso_string

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


class DocumentRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def add_document(self, document: SensitiveDocument, request_token: str):
        """Persist ``document`` and claim its owner's single document slot."""
        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"DOCUMENT#{document.document_id}",
                                "sk": "DETAILS",
                                "owner_id": document.owner_id,
                                "storage_key": document.storage_key,
                                "encryption_key": document.encryption_key,
                                "key_wrapping": document.key_wrapping.value,
                                "mime_type": document.mime_type,
                                "size": document.size,
                                "created_at": to_iso_string(document.created_at),
                            },
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"USER#{document.owner_id}",
                                "sk": "IDENTITY_DOCUMENT",
                                "document_id": document.document_id,
                            },
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                ],
                ClientRequestToken=request_token,
            )
        except ClientError as err:
            reasons = cancellation_reasons(err)
            if (
                error_code(err) == "TransactionCanceledException"
                and len(reasons) > 1
                and reasons[1] == "ConditionalCheckFailed"
            ):
                raise ConflictError(
                    f"user {document.owner_id} already has an identity document"
                ) from err
            logger.error(f"Error storing document {document.document_id}: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error storing document {document.document_id}: {err}")
            raise_store_error(err)

    def get_document(self, document_id: str) -> Optional[SensitiveDocument]:
        try:
            response = self.table.get_item(
                Key={"pk": f"DOCUMENT#{document_id}", "sk": "DETAILS"}
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving document {document_id}: {err}")
            raise_store_error(err)

        item = response.get("Item")
        if not item:
            return None
        return SensitiveDocument(
            document_id=document_id,
            owner_id=item["owner_id"],
            storage_key=item["storage_key"],
            encryption_key=item["encryption_key"],
            key_wrapping=KeyWrapping(item.get("key_wrapping", KeyWrapping.NONE.value)),
            mime_type=item["mime_type"],
            size=int(item["size"]),
            created_at=from_iso_string(item["created_at"]),
        )

    def delete_document(self, document: SensitiveDocument, request_token: str):
        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Delete": {
                            "TableName": self.table.name,
                            "Key": {"pk": f"DOCUMENT#{document.document_id}", "sk": "DETAILS"},
                            "ConditionExpression": "attribute_exists(pk)",
                        }
                    },
                    {
                        "Delete": {
                            "TableName": self.table.name,
                            "Key": {"pk": f"USER#{document.owner_id}", "sk": "IDENTITY_DOCUMENT"},
                        }
                    },
                ],
                ClientRequestToken=request_token,
            )
        except ClientError as err:
            reasons = cancellation_reasons(err)
            if reasons and reasons[0] == "ConditionalCheckFailed":
                raise NotFoundError("document", document.document_id) from err
            logger.error(f"Error deleting document {document.document_id}: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error deleting document {document.document_id}: {err}")
            raise_store_error(err)
