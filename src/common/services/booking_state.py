from dataclasses import replace
from typing import Dict, FrozenSet

from common.models.bookings import Booking, BookingStatus
from common.models.hotels import Hotel
from common.models.users import Principal
from common.utils.custom_exceptions import AuthorizationError, InvalidTransitionError
from common.utils.datetime_normaliser import utc_now

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}
    ),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: BookingStatus, new_status: BookingStatus) -> bool:
    return new_status in ALLOWED_TRANSITIONS[current]


def ensure_can_manage(actor: Principal, hotel: Hotel):
    if not hotel.is_managed_by(actor.user_id):
        raise AuthorizationError(
            f"user {actor.user_id} does not manage hotel {hotel.hotel_id}"
        )


def transition(
    booking: Booking, new_status: BookingStatus, actor: Principal, hotel: Hotel
) -> Booking:
    """Return ``booking`` moved to ``new_status``.

    The caller persists the result.
    """
    if hotel.hotel_id != booking.hotel_id:
        raise AuthorizationError(
            f"booking {booking.booking_id} does not belong to hotel {hotel.hotel_id}"
        )
    ensure_can_manage(actor, hotel)
    if not can_transition(booking.status, new_status):
        raise InvalidTransitionError(booking.status, new_status)
    return replace(booking, status=new_status, updated_at=utc_now())
