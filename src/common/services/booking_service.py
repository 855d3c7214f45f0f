import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional
from uuid import uuid4

from common.models.bookings import (
    Booking,
    BookingStatus,
    PaymentStatus,
    ReservationInterval,
)
from common.models.hotels import Hotel
from common.models.rooms import Room
from common.models.users import Principal
from common.repository.booking_repo import BookingRepository
from common.repository.hotel_repo import HotelRepository
from common.repository.room_repo import RoomRepository
from common.schemas.bookings import BookingRequest
from common.services import booking_state
from common.services.pricing import calculate_total
from common.utils.constants import MAX_BOOKING_ATTEMPTS, MAX_TRANSITION_ATTEMPTS
from common.utils.custom_exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    SerializationFailure,
    ValidationError,
)
from common.utils.datetime_normaliser import utc_now
from common.utils.retry import with_backoff

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        booking_repo: BookingRepository,
        room_repo: RoomRepository,
        hotel_repo: HotelRepository,
        max_attempts: int = MAX_BOOKING_ATTEMPTS,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ):
        self.booking_repo = booking_repo
        self.room_repo = room_repo
        self.hotel_repo = hotel_repo
        self.max_attempts = max_attempts
        self.id_factory = id_factory

    def request_booking(self, principal: Principal, req: BookingRequest) -> Booking:
        """Reserve ``req.room_id`` for ``[req.checkin, req.checkout)``.

        The overlap check and the write form one optimistic unit guarded by
        the room's booking version. Losing the race restarts the unit; running
        out of attempts surfaces as ``ConflictError``.
        """
        requested = ReservationInterval(req.checkin, req.checkout)
        occupants = req.occupant_records()

        for attempt in range(1, self.max_attempts + 1):
            room = self._get_room(req.room_id)
            if len(occupants) > room.capacity:
                raise ValidationError(
                    f"room {room.room_id} holds at most {room.capacity} occupants"
                )
            self._ensure_available(room, requested)

            now = utc_now()
            booking = Booking(
                booking_id=self.id_factory(),
                room_id=room.room_id,
                user_id=principal.user_id,
                hotel_id=room.hotel_id,
                check_in=requested.check_in,
                check_out=requested.check_out,
                total_amount=calculate_total(
                    room.price_per_night, requested.check_in, requested.check_out
                ),
                occupants=occupants,
                documents=req.documents,
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            request_token = str(uuid4())
            try:
                with_backoff(
                    lambda: self.booking_repo.add_booking(
                        booking, room.booking_version, request_token
                    ),
                    f"commit booking {booking.booking_id}",
                )
            except SerializationFailure as err:
                logger.warning(
                    f"Booking attempt {attempt}/{self.max_attempts} for room {room.room_id} lost a race: {err}"
                )
                continue

            logger.info(
                f"Booking {booking.booking_id} created for room {room.room_id} "
                f"({requested.check_in.isoformat()} - {requested.check_out.isoformat()})"
            )
            return booking

        raise ConflictError(
            f"room {req.room_id} is under contention, could not reserve after {self.max_attempts} attempts"
        )

    def is_room_available(self, room_id: str, checkin: datetime, checkout: datetime) -> bool:
        if checkin >= checkout:
            raise ValidationError("checkout must be after checkin")
        room = self._get_room(room_id)
        try:
            self._ensure_available(room, ReservationInterval(checkin, checkout))
        except ConflictError:
            return False
        return True

    def get_booking(self, booking_id: str) -> Booking:
        booking = with_backoff(
            lambda: self.booking_repo.get_booking_by_id(booking_id),
            f"load booking {booking_id}",
        )
        if booking is None:
            raise NotFoundError("booking", booking_id)
        return booking

    def get_user_bookings(self, user_id: str) -> List[Booking]:
        return with_backoff(
            lambda: self.booking_repo.get_user_bookings(user_id),
            f"list bookings of user {user_id}",
        )

    def list_bookings_for(self, principal: Principal, user_id: Optional[str] = None) -> List[Booking]:
        target = user_id or principal.user_id
        if target != principal.user_id and not principal.is_admin:
            raise AuthorizationError("only administrators may list other users' bookings")
        return self.get_user_bookings(target)

    def transition_booking_status(
        self, booking_id: str, new_status: BookingStatus, actor: Principal
    ) -> Booking:
        def apply(booking: Booking, hotel: Hotel) -> Booking:
            return booking_state.transition(booking, new_status, actor, hotel)

        updated = self._update_booking(booking_id, apply)
        logger.info(f"Booking {booking_id} moved to {new_status.value} by {actor.user_id}")
        return updated

    def update_payment_status(
        self, booking_id: str, payment_status: PaymentStatus, actor: Principal
    ) -> Booking:
        def apply(booking: Booking, hotel: Hotel) -> Booking:
            booking_state.ensure_can_manage(actor, hotel)
            return replace(booking, payment_status=payment_status, updated_at=utc_now())

        return self._update_booking(booking_id, apply)

    def _update_booking(
        self, booking_id: str, apply: Callable[[Booking, Hotel], Booking]
    ) -> Booking:
        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            current = self.get_booking(booking_id)
            hotel = self._get_hotel(current.hotel_id)
            updated = apply(current, hotel)
            request_token = str(uuid4())
            try:
                with_backoff(
                    lambda: self.booking_repo.save_booking_state(
                        updated, current, request_token
                    ),
                    f"update booking {booking_id}",
                )
            except SerializationFailure as err:
                logger.warning(
                    f"Update attempt {attempt}/{MAX_TRANSITION_ATTEMPTS} of booking {booking_id} raced: {err}"
                )
                continue
            return updated

        raise ConflictError(f"booking {booking_id} kept changing, giving up")

    def _get_room(self, room_id: str) -> Room:
        room = with_backoff(
            lambda: self.room_repo.get_room_by_id(room_id, consistent=True),
            f"load room {room_id}",
        )
        if room is None:
            raise NotFoundError("room", room_id)
        return room

    def _get_hotel(self, hotel_id: str) -> Hotel:
        hotel = with_backoff(
            lambda: self.hotel_repo.get_hotel_by_id(hotel_id),
            f"load hotel {hotel_id}",
        )
        if hotel is None:
            raise NotFoundError("hotel", hotel_id)
        return hotel

    def _ensure_available(self, room: Room, requested: ReservationInterval):
        live = with_backoff(
            lambda: self.booking_repo.get_live_intervals(room.room_id),
            f"load bookings of room {room.room_id}",
        )
        for existing in live:
            if existing.interval.overlaps(requested):
                raise ConflictError(
                    f"room {room.room_id} is already booked from "
                    f"{existing.interval.check_in.isoformat()} to {existing.interval.check_out.isoformat()}"
                )
