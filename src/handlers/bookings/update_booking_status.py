import logging
import os
from boto3 import resource

from common.repository.booking_repo import BookingRepository
from common.repository.hotel_repo import HotelRepository
from common.repository.room_repo import RoomRepository
from common.services.booking_service import BookingService
from common.schemas.bookings import PaymentStatusUpdateRequest, StatusUpdateRequest
from common.utils.aws_config import client_config
from common.utils.custom_response import send_custom_response, send_error_response
from common.utils.custom_exceptions import ReservationError
from common.utils.request_context import path_parameter, principal_from_event
from pydantic import ValidationError as RequestValidationError

logger = logging.getLogger(__name__)

TABLE_NAME = os.environ.get("TABLE_NAME")

dynamodb = resource("dynamodb", config=client_config())
table = dynamodb.Table(TABLE_NAME)

booking_service = BookingService(
    booking_repo=BookingRepository(table),
    room_repo=RoomRepository(table),
    hotel_repo=HotelRepository(table),
)


def _parse(event, model):
    if not event.get("body"):
        return None, send_custom_response(400, "Request body is required")
    try:
        return model.model_validate_json(event["body"]), None
    except RequestValidationError as e:
        formatted = "; ".join(f"{err['msg']}" for err in e.errors())
        return None, send_custom_response(400, formatted)


def update_booking_status(event, context):
    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    booking_id = path_parameter(event, "booking_id")
    if not booking_id:
        return send_custom_response(400, "booking_id is required")

    request_body, error = _parse(event, StatusUpdateRequest)
    if error:
        return error

    try:
        booking = booking_service.transition_booking_status(
            booking_id, request_body.status, principal
        )
        return send_custom_response(200, "Booking status updated", booking.to_record())
    except ReservationError as err:
        logger.warning(f"Status change of booking {booking_id} by {principal.user_id} rejected: {err}")
        return send_error_response(err)
    except Exception:
        logger.exception(f"Unhandled error while updating booking {booking_id}")
        return send_custom_response(500, "Internal server error")


def update_payment_status(event, context):
    principal = principal_from_event(event)
    if principal is None:
        return send_custom_response(401, "Unauthorized")

    booking_id = path_parameter(event, "booking_id")
    if not booking_id:
        return send_custom_response(400, "booking_id is required")

    request_body, error = _parse(event, PaymentStatusUpdateRequest)
    if error:
        return error

    try:
        booking = booking_service.update_payment_status(
            booking_id, request_body.payment_status, principal
        )
        return send_custom_response(200, "Payment status updated", booking.to_record())
    except ReservationError as err:
        return send_error_response(err)
    except Exception:
        logger.exception(f"Unhandled error while updating payment of booking {booking_id}")
        return send_custom_response(500, "Internal server error")
