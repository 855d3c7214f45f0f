import os

from botocore.config import Config

REGION = os.environ.get("AWS_REGION", "ap-south-1")
CONNECT_TIMEOUT = float(os.environ.get("STORE_CONNECT_TIMEOUT", "2"))
READ_TIMEOUT = float(os.environ.get("STORE_READ_TIMEOUT", "5"))


def client_config() -> Config:
    # backoff is handled by common.utils.retry
    return Config(
        region_name=REGION,
        connect_timeout=CONNECT_TIMEOUT,
        read_timeout=READ_TIMEOUT,
        retries={"max_attempts": 1, "mode": "standard"},
    )
