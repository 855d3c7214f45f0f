import logging
import os
from boto3 import resource

from common.repository.booking_repo import BookingRepository
from common.repository.hotel_repo import HotelRepository
from common.repository.room_repo import RoomRepository
from common.services.booking_service import BookingService
from common.utils.aws_config import client_config
from common.utils.custom_response import send_custom_response, send_error_response
from common.utils.custom_exceptions import ReservationError
from common.utils.request_context import principal_from_event

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")

dynamodb = resource("dynamodb", config=client_config())
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    room_repo=RoomRepository(table),
    hotel_repo=HotelRepository(table),
)


def get_user_bookings(event, context):
    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    requested_user_id = (event.get("queryStringParameters") or {}).get("user_id")

    try:
        bookings = booking_service.list_bookings_for(principal, requested_user_id)
    except ReservationError as err:
        return send_error_response(err)
    except Exception:
        logger.exception("Unhandled error while listing bookings")
        return send_custom_response(500, "Internal server error")

    result = [b.to_record() for b in bookings]
    return send_custom_response(
        200,
        "Bookings retrieved successfully",
        {
            "count": len(result),
            "bookings": result
        }
    )
