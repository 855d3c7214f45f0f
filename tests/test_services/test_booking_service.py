import unittest
from unittest.mock import ANY, MagicMock, patch
from datetime import datetime, timezone
from decimal import Decimal

from common.services.booking_service import BookingService
from common.models.bookings import (
    BookedInterval,
    Booking,
    BookingStatus,
    PaymentStatus,
    ReservationInterval,
)
from common.models.hotels import Hotel
from common.models.rooms import Category, Room
from common.models.users import Principal, UserRole
from common.schemas.bookings import BookingRequest
from common.utils.custom_exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SerializationFailure,
    StoreTimeoutError,
    TransientStoreError,
    ValidationError,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


OCCUPANT = {"name": "Ann", "age": 34, "gender": "FEMALE", "relationship": "self"}


class TestBookingService(unittest.TestCase):

    def setUp(self):
        self.booking_repo = MagicMock()
        self.room_repo = MagicMock()
        self.hotel_repo = MagicMock()

        self.service = BookingService(
            booking_repo=self.booking_repo,
            room_repo=self.room_repo,
            hotel_repo=self.hotel_repo,
            max_attempts=3,
            id_factory=lambda: "b-new",
        )

        self.room = Room(
            room_id="r1",
            hotel_id="h1",
            room_number="101",
            category=Category.STANDARD,
            price_per_night=Decimal("100"),
            capacity=2,
            booking_version=3,
        )
        self.hotel = Hotel("h1", "Grand Hotel", "New York", owner_id="owner-1", manager_ids=["manager-1"])
        self.guest = Principal("guest-1", UserRole.GUEST)
        self.owner = Principal("owner-1", UserRole.OWNER)

        self.room_repo.get_room_by_id.return_value = self.room
        self.hotel_repo.get_hotel_by_id.return_value = self.hotel
        self.booking_repo.get_live_intervals.return_value = []

        self.sleep = patch("common.utils.retry.time.sleep")
        self.sleep.start()

    def tearDown(self):
        self.sleep.stop()

    def _request(self, checkin, checkout, occupants=1):
        return BookingRequest(
            room_id="r1",
            checkin=checkin,
            checkout=checkout,
            occupants=[OCCUPANT] * occupants,
        )

    def _existing(self, check_in, check_out, status=BookingStatus.CONFIRMED):
        return BookedInterval("b-old", ReservationInterval(check_in, check_out), status)

    def _booking(self, status=BookingStatus.PENDING):
        return Booking(
            booking_id="b1",
            room_id="r1",
            user_id="guest-1",
            hotel_id="h1",
            check_in=utc(2099, 2, 1),
            check_out=utc(2099, 2, 3),
            total_amount=Decimal("200"),
            occupants=[OCCUPANT],
            status=status,
        )

    # -------------------------
    # REQUEST BOOKING
    # -------------------------
    def test_request_booking_success(self):
        req = self._request(utc(2099, 2, 1, 14), utc(2099, 2, 5, 12))

        booking = self.service.request_booking(self.guest, req)

        self.assertEqual(booking.booking_id, "b-new")
        self.assertEqual(booking.user_id, "guest-1")
        self.assertEqual(booking.hotel_id, "h1")
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(booking.payment_status, PaymentStatus.PENDING)
        self.assertEqual(booking.total_amount, Decimal("400"))
        self.assertEqual(booking.occupants, [OCCUPANT])
        self.room_repo.get_room_by_id.assert_called_once_with("r1", consistent=True)
        self.booking_repo.add_booking.assert_called_once_with(booking, 3, ANY)

    def test_back_to_back_stay_is_allowed(self):
        self.booking_repo.get_live_intervals.return_value = [
            self._existing(utc(2099, 2, 1), utc(2099, 2, 3))
        ]

        booking = self.service.request_booking(
            self.guest, self._request(utc(2099, 2, 3), utc(2099, 2, 5))
        )

        self.assertEqual(booking.total_amount, Decimal("200"))
        self.booking_repo.add_booking.assert_called_once()

    def test_stay_ending_at_existing_checkin_is_allowed(self):
        self.booking_repo.get_live_intervals.return_value = [
            self._existing(utc(2099, 2, 5), utc(2099, 2, 7))
        ]

        self.service.request_booking(self.guest, self._request(utc(2099, 2, 3), utc(2099, 2, 5)))

        self.booking_repo.add_booking.assert_called_once()

    def test_same_checkin_conflicts(self):
        self.booking_repo.get_live_intervals.return_value = [
            self._existing(utc(2099, 2, 1), utc(2099, 2, 3))
        ]

        with self.assertRaises(ConflictError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))
        self.booking_repo.add_booking.assert_not_called()

    def test_enclosing_stay_conflicts(self):
        self.booking_repo.get_live_intervals.return_value = [
            self._existing(utc(2099, 2, 2), utc(2099, 2, 3), BookingStatus.CHECKED_IN)
        ]

        with self.assertRaises(ConflictError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 6)))
        self.booking_repo.add_booking.assert_not_called()

    def test_room_not_found(self):
        self.room_repo.get_room_by_id.return_value = None

        with self.assertRaises(NotFoundError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))

    def test_too_many_occupants(self):
        with self.assertRaises(ValidationError):
            self.service.request_booking(
                self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2), occupants=3)
            )
        self.booking_repo.add_booking.assert_not_called()

    def test_lost_race_retries_with_fresh_read(self):
        self.booking_repo.add_booking.side_effect = [SerializationFailure("raced"), None]

        booking = self.service.request_booking(
            self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2))
        )

        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertEqual(self.room_repo.get_room_by_id.call_count, 2)
        self.assertEqual(self.booking_repo.get_live_intervals.call_count, 2)
        self.assertEqual(self.booking_repo.add_booking.call_count, 2)

    def test_lost_race_then_overlap_is_conflict(self):
        self.booking_repo.add_booking.side_effect = SerializationFailure("raced")
        self.booking_repo.get_live_intervals.side_effect = [
            [],
            [self._existing(utc(2099, 2, 1), utc(2099, 2, 2), BookingStatus.PENDING)],
        ]

        with self.assertRaises(ConflictError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))
        self.booking_repo.add_booking.assert_called_once()

    def test_contention_exhausts_attempts(self):
        self.booking_repo.add_booking.side_effect = SerializationFailure("raced")

        with self.assertRaises(ConflictError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))
        self.assertEqual(self.booking_repo.add_booking.call_count, 3)

    def test_transient_commit_error_reuses_request_token(self):
        self.booking_repo.add_booking.side_effect = [TransientStoreError("throttled"), None]

        self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))

        first, second = self.booking_repo.add_booking.call_args_list
        self.assertEqual(first.args, second.args)
        self.room_repo.get_room_by_id.assert_called_once()

    def test_transient_errors_surface_after_retries(self):
        self.booking_repo.get_live_intervals.side_effect = TransientStoreError("down")

        with self.assertRaises(TransientStoreError):
            self.service.request_booking(self.guest, self._request(utc(2099, 2, 1), utc(2099, 2, 2)))
        self.booking_repo.add_booking.assert_not_called()

    def test_is_room_available(self):
        self.booking_repo.get_live_intervals.return_value = [
            self._existing(utc(2099, 2, 1), utc(2099, 2, 3))
        ]

        self.assertFalse(self.service.is_room_available("r1", utc(2099, 2, 2), utc(2099, 2, 4)))
        self.assertTrue(self.service.is_room_available("r1", utc(2099, 2, 3), utc(2099, 2, 4)))
        with self.assertRaises(ValidationError):
            self.service.is_room_available("r1", utc(2099, 2, 4), utc(2099, 2, 3))

    # -------------------------
    # STATUS TRANSITIONS
    # -------------------------
    def test_transition_persists_new_status(self):
        current = self._booking()
        self.booking_repo.get_booking_by_id.return_value = current

        updated = self.service.transition_booking_status("b1", BookingStatus.CONFIRMED, self.owner)

        self.assertEqual(updated.status, BookingStatus.CONFIRMED)
        self.booking_repo.save_booking_state.assert_called_once_with(updated, current, ANY)
        self.hotel_repo.get_hotel_by_id.assert_called_once_with("h1")

    def test_transition_booking_not_found(self):
        self.booking_repo.get_booking_by_id.return_value = None

        with self.assertRaises(NotFoundError):
            self.service.transition_booking_status("missing", BookingStatus.CONFIRMED, self.owner)

    def test_transition_by_guest_is_rejected(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking()

        with self.assertRaises(AuthorizationError):
            self.service.transition_booking_status("b1", BookingStatus.CONFIRMED, self.guest)
        self.booking_repo.save_booking_state.assert_not_called()

    def test_invalid_transition(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking()

        with self.assertRaises(InvalidTransitionError):
            self.service.transition_booking_status("b1", BookingStatus.CHECKED_OUT, self.owner)
        self.booking_repo.save_booking_state.assert_not_called()

    def test_concurrent_transition_is_revalidated(self):
        self.booking_repo.get_booking_by_id.side_effect = [
            self._booking(BookingStatus.PENDING),
            self._booking(BookingStatus.CANCELLED),
        ]
        self.booking_repo.save_booking_state.side_effect = SerializationFailure("raced")

        with self.assertRaises(InvalidTransitionError):
            self.service.transition_booking_status("b1", BookingStatus.CONFIRMED, self.owner)
        self.booking_repo.save_booking_state.assert_called_once()

    def test_transition_retry_after_timeout_reuses_request_token(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking()
        self.booking_repo.save_booking_state.side_effect = [StoreTimeoutError("read timeout"), None]

        updated = self.service.transition_booking_status("b1", BookingStatus.CONFIRMED, self.owner)

        self.assertEqual(updated.status, BookingStatus.CONFIRMED)
        first, second = self.booking_repo.save_booking_state.call_args_list
        self.assertEqual(first.args, second.args)
        self.booking_repo.get_booking_by_id.assert_called_once()

    def test_each_transition_attempt_gets_its_own_token(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking()
        self.booking_repo.save_booking_state.side_effect = [SerializationFailure("raced"), None]

        self.service.transition_booking_status("b1", BookingStatus.CONFIRMED, self.owner)

        first, second = self.booking_repo.save_booking_state.call_args_list
        self.assertNotEqual(first.args[2], second.args[2])

    def test_update_payment_status(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking(BookingStatus.CONFIRMED)

        updated = self.service.update_payment_status("b1", PaymentStatus.COMPLETED, self.owner)

        self.assertEqual(updated.payment_status, PaymentStatus.COMPLETED)
        self.assertEqual(updated.status, BookingStatus.CONFIRMED)

    def test_update_payment_status_requires_hotel_rights(self):
        self.booking_repo.get_booking_by_id.return_value = self._booking()

        with self.assertRaises(AuthorizationError):
            self.service.update_payment_status("b1", PaymentStatus.COMPLETED, self.guest)

    # -------------------------
    # LISTING
    # -------------------------
    def test_list_own_bookings(self):
        self.booking_repo.get_user_bookings.return_value = ["b1", "b2"]

        result = self.service.list_bookings_for(self.guest)

        self.booking_repo.get_user_bookings.assert_called_once_with("guest-1")
        self.assertEqual(result, ["b1", "b2"])

    def test_list_other_users_bookings_requires_admin(self):
        with self.assertRaises(AuthorizationError):
            self.service.list_bookings_for(self.guest, "someone-else")

        admin = Principal("admin-1", UserRole.ADMIN)
        self.service.list_bookings_for(admin, "someone-else")
        self.booking_repo.get_user_bookings.assert_called_once_with("someone-else")


if __name__ == "__main__":
    unittest.main()
