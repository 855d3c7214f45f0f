from botocore.exceptions import BotoCoreError, ClientError
import json
import logging
from typing import Any, Dict, List, Optional
from boto3.dynamodb.conditions import Key
from common.models.bookings import (
    BookedInterval,
    Booking,
    BookingStatus,
    LIVE_STATUSES,
    PaymentStatus,
    ReservationInterval,
)
from common.utils.aws_errors import is_write_conflict, raise_store_error
from common.utils.custom_exceptions import SerializationFailure
from common.utils.datetime_normaliser import from_iso_string, to_iso_string
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


class BookingRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    @staticmethod
    def _booking_attributes(booking: Booking) -> Dict[str, Any]:
        # occupants and documents are free-form, so they are kept as JSON text
        return {
            "booking_id": booking.booking_id,
            "user_id": booking.user_id,
            "room_id": booking.room_id,
            "hotel_id": booking.hotel_id,
            "check_in": to_iso_string(booking.check_in),
            "check_out": to_iso_string(booking.check_out),
            "booking_status": booking.status.value,
            "payment_status": booking.payment_status.value,
            "total_amount": Decimal(str(booking.total_amount)),
            "occupants": json.dumps(booking.occupants),
            "documents": json.dumps(booking.documents) if booking.documents is not None else None,
            "created_at": to_iso_string(booking.created_at),
            "updated_at": to_iso_string(booking.updated_at),
        }

    @staticmethod
    def _interval_sort_key(booking: Booking) -> str:
        return f"BOOKING#{to_iso_string(booking.check_in)}#{booking.booking_id}"

    def _query_all(self, **kwargs) -> List[dict]:
        response = self.table.query(**kwargs)
        items = list(response.get("Items", []))
        while "LastEvaluatedKey" in response:
            response = self.table.query(
                **kwargs, ExclusiveStartKey=response["LastEvaluatedKey"]
            )
            items.extend(response.get("Items", []))
        return items

    def get_live_intervals(self, room_id: str) -> List[BookedInterval]:
        """Intervals of the room's bookings that still hold the room."""
        try:
            items = self._query_all(
                KeyConditionExpression=(
                    Key("pk").eq(f"ROOM#{room_id}") & Key("sk").begins_with("BOOKING#")
                ),
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving bookings for room {room_id}: {err}")
            raise_store_error(err)

        intervals = []
        for item in items:
            status = BookingStatus(item["booking_status"])
            if status not in LIVE_STATUSES:
                continue
            intervals.append(
                BookedInterval(
                    booking_id=item["booking_id"],
                    interval=ReservationInterval(
                        from_iso_string(item["check_in"]),
                        from_iso_string(item["check_out"]),
                    ),
                    status=status,
                )
            )
        return intervals

    def add_booking(self, booking: Booking, expected_version: int, request_token: str):
        """Commit ``booking`` if the room's booking version is still ``expected_version``.

        Raises ``SerializationFailure`` when another booking for the room was
        committed after the version was read.
        """
        attributes = self._booking_attributes(booking)
        version_condition = "booking_version = :expected"
        if expected_version == 0:
            version_condition = f"({version_condition} OR attribute_not_exists(booking_version))"

        room_interval = {
            "pk": f"ROOM#{booking.room_id}",
            "sk": self._interval_sort_key(booking),
            "booking_id": booking.booking_id,
            "user_id": booking.user_id,
            "check_in": attributes["check_in"],
            "check_out": attributes["check_out"],
            "booking_status": attributes["booking_status"],
        }

        try:
            self.client.transact_write_items(
                TransactItems=[
                    {
                        "Update": {
                            "TableName": self.table.name,
                            "Key": {"pk": f"ROOM#{booking.room_id}", "sk": "DETAILS"},
                            "UpdateExpression": "SET booking_version = :next",
                            "ConditionExpression": f"attribute_exists(pk) AND {version_condition}",
                            "ExpressionAttributeValues": {
                                ":expected": expected_version,
                                ":next": expected_version + 1,
                            },
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"BOOKING#{booking.booking_id}",
                                "sk": "DETAILS",
                                **attributes,
                            },
                            "ConditionExpression": "attribute_not_exists(pk)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": {
                                "pk": f"USER#{booking.user_id}",
                                "sk": f"BOOKING#{booking.booking_id}",
                                **attributes,
                            },
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.table.name,
                            "Item": room_interval,
                        }
                    },
                ],
                ClientRequestToken=request_token,
            )
        except ClientError as err:
            if is_write_conflict(err):
                raise SerializationFailure(
                    f"room {booking.room_id} changed while booking {booking.booking_id} was in flight"
                ) from err
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error creating booking {booking.booking_id}: {err}")
            raise_store_error(err)

    def get_booking_by_id(self, booking_id: str) -> Optional[Booking]:
        try:
            response = self.table.get_item(
                Key={"pk": f"BOOKING#{booking_id}", "sk": "DETAILS"},
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving booking {booking_id}: {err}")
            raise_store_error(err)

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(item)

    def get_user_bookings(self, user_id: str) -> List[Booking]:
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(f"USER#{user_id}")
                & Key("sk").begins_with("BOOKING#")
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving user {user_id} bookings: {err}")
            raise_store_error(err)

        return [self._to_domain(item) for item in items]

    def save_booking_state(self, booking: Booking, previous: Booking, request_token: str):
        """Persist status and payment status of ``booking`` on all of its items.

        The write is conditional on the stored booking still matching
        ``previous``; ``SerializationFailure`` is raised otherwise.
        """
        values = {
            ":status": booking.status.value,
            ":payment": booking.payment_status.value,
            ":updated": to_iso_string(booking.updated_at),
        }
        names = {
            "#booking_status": "booking_status",
            "#payment_status": "payment_status",
            "#updated_at": "updated_at",
        }
        booking_keys = [
            {"pk": f"BOOKING#{booking.booking_id}", "sk": "DETAILS"},
            {"pk": f"USER#{booking.user_id}", "sk": f"BOOKING#{booking.booking_id}"},
        ]

        transact_items = []
        for index, key in enumerate(booking_keys):
            update = {
                "TableName": self.table.name,
                "Key": key,
                "UpdateExpression": (
                    "SET #booking_status = :status, #payment_status = :payment, "
                    "#updated_at = :updated"
                ),
                "ExpressionAttributeNames": dict(names),
                "ExpressionAttributeValues": dict(values),
                "ConditionExpression": "attribute_exists(pk)",
            }
            if index == 0:
                update["ConditionExpression"] = (
                    "attribute_exists(pk) AND #booking_status = :prev_status "
                    "AND #payment_status = :prev_payment"
                )
                update["ExpressionAttributeValues"].update(
                    {
                        ":prev_status": previous.status.value,
                        ":prev_payment": previous.payment_status.value,
                    }
                )
            transact_items.append({"Update": update})

        transact_items.append(
            {
                "Update": {
                    "TableName": self.table.name,
                    "Key": {
                        "pk": f"ROOM#{booking.room_id}",
                        "sk": self._interval_sort_key(booking),
                    },
                    "UpdateExpression": "SET #booking_status = :status",
                    "ExpressionAttributeNames": {"#booking_status": "booking_status"},
                    "ExpressionAttributeValues": {":status": booking.status.value},
                    "ConditionExpression": "attribute_exists(pk)",
                }
            }
        )

        try:
            self.client.transact_write_items(
                TransactItems=transact_items,
                ClientRequestToken=request_token,
            )
        except ClientError as err:
            if is_write_conflict(err):
                raise SerializationFailure(
                    f"booking {booking.booking_id} changed concurrently"
                ) from err
            logger.error(f"Error updating booking {booking.booking_id} status: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error updating booking {booking.booking_id} status: {err}")
            raise_store_error(err)

    @staticmethod
    def _to_domain(item: dict) -> Booking:
        documents = item.get("documents")
        return Booking(
            booking_id=item["booking_id"],
            user_id=item["user_id"],
            room_id=item["room_id"],
            hotel_id=item["hotel_id"],
            check_in=from_iso_string(item["check_in"]),
            check_out=from_iso_string(item["check_out"]),
            status=BookingStatus(item["booking_status"]),
            payment_status=PaymentStatus(item["payment_status"]),
            total_amount=Decimal(str(item["total_amount"])),
            occupants=json.loads(item["occupants"]),
            documents=json.loads(documents) if documents else None,
            created_at=from_iso_string(item["created_at"]),
            updated_at=from_iso_string(item["updated_at"]),
        )
