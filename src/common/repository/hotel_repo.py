from botocore.exceptions import BotoCoreError, ClientError
import logging
from dataclasses import replace
from typing import Optional

from common.models.hotels import Hotel
from common.repository.code_claims import put_with_unique_code
from common.utils.aws_errors import raise_store_error
from common.utils.codes import generate_hotel_code

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types_boto3_dynamodb.service_resource import Table
    from types_boto3_dynamodb import DynamoDBClient
else:
    Table = object
    DynamoDBClient = object


logger = logging.getLogger(__name__)


class HotelRepository:
    def __init__(self, table: Table, client: DynamoDBClient = None):
        self.table = table
        self.client = client if client else table.meta.client

    def add_hotel(self, hotel: Hotel) -> Hotel:
        hotel_item = {
            "pk": f"HOTEL#{hotel.hotel_id}",
            "sk": "DETAILS",
            "name": hotel.name,
            "location": hotel.location,
            "owner_id": hotel.owner_id,
            "manager_ids": list(hotel.manager_ids),
        }
        code = put_with_unique_code(
            self.client,
            self.table.name,
            hotel_item,
            code_attribute="hotel_code",
            code_prefix="HOTEL_CODE",
            generate_code=generate_hotel_code,
        )
        return replace(hotel, hotel_code=code)

    def get_hotel_by_id(self, hotel_id: str) -> Optional[Hotel]:
        try:
            response = self.table.get_item(
                Key={"pk": f"HOTEL#{hotel_id}", "sk": "DETAILS"}
            )
        except (ClientError, BotoCoreError) as err:
            logger.error(f"Error retrieving hotel {hotel_id}: {err}")
            raise_store_error(err)

        item = response.get("Item")
        if not item:
            return None
        return Hotel(
            hotel_id=hotel_id,
            name=item.get("name", ""),
            location=item.get("location", ""),
            owner_id=item["owner_id"],
            manager_ids=list(item.get("manager_ids", [])),
            hotel_code=item.get("hotel_code", ""),
        )
