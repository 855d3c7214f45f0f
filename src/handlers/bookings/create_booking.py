import logging
import os
from boto3 import resource

from common.repository.booking_repo import BookingRepository
from common.repository.hotel_repo import HotelRepository
from common.repository.room_repo import RoomRepository
from common.services.booking_service import BookingService
from common.schemas.bookings import BookingRequest
from common.utils.aws_config import client_config
from common.utils.custom_response import send_custom_response, send_error_response
from common.utils.custom_exceptions import ReservationError
from common.utils.request_context import principal_from_event
from pydantic import ValidationError as RequestValidationError

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")

dynamodb = resource("dynamodb", config=client_config())
table = dynamodb.Table(TABLE_NAME)

booking_repo = BookingRepository(table)
room_repo = RoomRepository(table)
hotel_repo = HotelRepository(table)

booking_service = BookingService(
    booking_repo=booking_repo,
    room_repo=room_repo,
    hotel_repo=hotel_repo,
)


def create_booking(event, context):
    if not event.get("body"):
        return send_custom_response(400, "Request body is required")

    try:
        request_body = BookingRequest.model_validate_json(event["body"])
    except RequestValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return send_custom_response(400, formatted)

    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    try:
        booking = booking_service.request_booking(principal, request_body)
        return send_custom_response(201, "Booking created successfully", booking.to_record())

    except ReservationError as err:
        logger.warning(f"Booking request by {principal.user_id} rejected: {err}")
        return send_error_response(err)

    except Exception:
        logger.exception("Unhandled error while creating booking")
        return send_custom_response(500, "Internal server error")
