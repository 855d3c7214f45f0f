from botocore.exceptions import BotoCoreError, ClientError
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from common.models.rooms import Room, Category, RoomStatus
from common.repository.code_claims import put_with_unique_code
from common.utils.aws_errors import is_condition_failure, raise_store_error
from common.utils.codes import generate_room_code
from common.utils.custom_exceptions import NotFoundError

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


class RoomRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def add_room(self, room: Room) -> Room:
        room_item = {
            "pk": f"ROOM#{room.room_id}",
            "sk": "DETAILS",
            "hotel_id": room.hotel_id,
            "room_number": room.room_number,
            "category": room.category.value,
            "price": Decimal(str(room.price_per_night)),
            "capacity": room.capacity,
            "room_status": room.status.value,
            "booking_version": 0,
        }
        code = put_with_unique_code(
            self.client,
            self.table.name,
            room_item,
            code_attribute="room_code",
            code_prefix="ROOM_CODE",
            generate_code=generate_room_code,
        )
        return replace(room, room_code=code, booking_version=0)

    def get_room_by_id(self, room_id: str, consistent: bool = False) -> Optional[Room]:
        try:
            response = self.table.get_item(
                Key={"pk": f"ROOM#{room_id}", "sk": "DETAILS"},
                ConsistentRead=consistent,
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving room by id {room_id}: {err}")
            raise_store_error(err)

        item = response.get("Item")
        if not item:
            return None
        return self._to_domain(room_id, item)

    def update_room_status(self, room_id: str, status: RoomStatus):
        try:
            self.table.update_item(
                Key={"pk": f"ROOM#{room_id}", "sk": "DETAILS"},
                UpdateExpression="SET #attribute=:value",
                ExpressionAttributeNames={"#attribute": "room_status"},
                ExpressionAttributeValues={
                    ":value": status.value,
                },
                ConditionExpression="attribute_exists(pk)",
            )
        except ClientError as err:
            if is_condition_failure(err):
                raise NotFoundError("room", room_id) from err
            logger.error(f"Error updating room {room_id} status: {err}")
            raise_store_error(err)
        except BotoCoreError as err:
            logger.error(f"Error updating room {room_id} status: {err}")
            raise_store_error(err)

    @staticmethod
    def _to_domain(room_id: str, item: dict) -> Room:
        return Room(
            room_id=room_id,
            hotel_id=item["hotel_id"],
            room_number=item.get("room_number", ""),
            category=Category(item["category"]),
            price_per_night=Decimal(str(item["price"])),
            capacity=int(item.get("capacity", 1)),
            status=RoomStatus(item.get("room_status", RoomStatus.AVAILABLE.value)),
            room_code=item.get("room_code", ""),
            booking_version=int(item.get("booking_version", 0)),
        )
