import logging

from botocore.exceptions import BotoCoreError, ClientError

from common.utils.aws_errors import error_code, raise_object_store_error
from common.utils.constants import DOCUMENT_URL_EXPIRY
from common.utils.custom_exceptions import IntegrityError

logger = logging.getLogger(__name__)


class S3ObjectStore:
    def __init__(self, s3_client, bucket: str):
        self.s3 = s3_client
        self.bucket = bucket

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream"):
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error uploading {key} to {self.bucket}: {err}")
            raise_object_store_error(err)

    def get(self, key: str) -> bytes:
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as err:
            if error_code(err) in ("NoSuchKey", "404"):
                raise IntegrityError(f"stored object {key} is missing") from err
            logger.error(f"Error downloading {key} from {self.bucket}: {err}")
            raise_object_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error downloading {key} from {self.bucket}: {err}")
            raise_object_store_error(err)

    def delete(self, key: str):
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error deleting {key} from {self.bucket}: {err}")
            raise_object_store_error(err)

    def presigned_url(self, key: str, expires_in: int = DOCUMENT_URL_EXPIRY) -> str:
        try:
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error signing url for {key}: {err}")
            raise_object_store_error(err)
