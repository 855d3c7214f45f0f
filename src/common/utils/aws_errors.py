import re
from typing import List, Type

from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from common.utils.custom_exceptions import (
    ObjectStoreTimeoutError,
    StoreTimeoutError,
    TransientObjectStoreError,
    TransientStoreError,
)

TRANSIENT_ERROR_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "Throttling",
    "RequestLimitExceeded",
    "InternalServerError",
    "InternalError",
    "ServiceUnavailable",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeoutException",
}

WRITE_CONFLICT_REASONS = {"ConditionalCheckFailed", "TransactionConflict"}


def error_code(err: Exception) -> str | None:
    if not isinstance(err, ClientError):
        return None
    return err.response.get("Error", {}).get("Code")


def cancellation_reasons(err: ClientError) -> List[str]:
    reasons = err.response.get("CancellationReasons")
    if reasons:
        return [reason.get("Code", "None") for reason in reasons]
    # some endpoints only report the reasons in the message:
    # "... cancellation reasons [ConditionalCheckFailed, None]"
    message = err.response.get("Error", {}).get("Message", "")
    match = re.search(r"\[([^\]]*)\]\s*$", message)
    if not match:
        return []
    return [reason.strip() for reason in match.group(1).split(",")]


def is_condition_failure(err: Exception) -> bool:
    return error_code(err) == "ConditionalCheckFailedException"


def is_write_conflict(err: Exception) -> bool:
    """True when a transactional write lost a race against another writer."""
    code = error_code(err)
    if code == "TransactionConflictException":
        return True
    if code != "TransactionCanceledException":
        return False
    return any(reason in WRITE_CONFLICT_REASONS for reason in cancellation_reasons(err))


def _raise_translated(
    err: Exception,
    transient_cls: Type[Exception],
    timeout_cls: Type[Exception],
):
    if isinstance(err, (ReadTimeoutError, ConnectTimeoutError)):
        raise timeout_cls(str(err)) from err
    if isinstance(err, EndpointConnectionError):
        raise transient_cls(str(err)) from err
    if error_code(err) in TRANSIENT_ERROR_CODES:
        raise transient_cls(str(err)) from err
    raise err


def raise_store_error(err: Exception):
    _raise_translated(err, TransientStoreError, StoreTimeoutError)


def raise_object_store_error(err: Exception):
    _raise_translated(err, TransientObjectStoreError, ObjectStoreTimeoutError)
