import logging
from typing import Any, Callable, Dict

from botocore.exceptions import BotoCoreError, ClientError

from common.utils.aws_errors import cancellation_reasons, error_code, raise_store_error
from common.utils.constants import MAX_CODE_ATTEMPTS
from common.utils.custom_exceptions import ConflictError

logger = logging.getLogger(__name__)


def put_with_unique_code(
    client,
    table_name: str,
    item: Dict[str, Any],
    code_attribute: str,
    code_prefix: str,
    generate_code: Callable[[], str],
) -> str:
    """Write ``item`` together with a claim on a freshly generated short code.

    Codes are random, so the claim item carries the uniqueness constraint and
    a collision just means another draw. Returns the claimed code.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        code = generate_code()
        try:
            client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": table_name,
                            "Item": {**item, code_attribute: code},
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": table_name,
                            "Item": {
                                "pk": f"{code_prefix}#{code}",
                                "sk": "DETAILS",
                                "owner_pk": item["pk"],
                            },
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                ]
            )
            return code
        except ClientError as err:
            if error_code(err) != "TransactionCanceledException":
                logger.error(f"Error writing {item['pk']}: {err}")
                raise_store_error(err)
            reasons = cancellation_reasons(err)
            if reasons and reasons[0] == "ConditionalCheckFailed":
                raise ConflictError(f"{item['pk']} already exists") from err
            logger.warning(
                f"{code_prefix} {code} already taken (attempt {attempt}/{MAX_CODE_ATTEMPTS})"
            )
        except BotoCoreError as err:
            logger.error(f"Error writing {item['pk']}: {err}")
            raise_store_error(err)

    raise ConflictError(
        f"could not allocate a unique {code_attribute} after {MAX_CODE_ATTEMPTS} attempts"
    )
