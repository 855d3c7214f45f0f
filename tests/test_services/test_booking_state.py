import unittest
from datetime import datetime, timezone
from decimal import Decimal

from common.models.bookings import Booking, BookingStatus
from common.models.hotels import Hotel
from common.models.users import Principal, UserRole
from common.services.booking_state import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    transition,
)
from common.utils.custom_exceptions import AuthorizationError, InvalidTransitionError


class TestBookingStateMachine(unittest.TestCase):

    def setUp(self):
        self.hotel = Hotel(
            hotel_id="h1",
            name="Grand Hotel",
            location="New York",
            owner_id="owner-1",
            manager_ids=["manager-1"],
        )
        self.owner = Principal("owner-1", UserRole.OWNER)
        self.manager = Principal("manager-1", UserRole.MANAGER)
        self.guest = Principal("guest-1", UserRole.GUEST)

    def _booking(self, status):
        return Booking(
            booking_id="b1",
            room_id="r1",
            user_id="guest-1",
            hotel_id="h1",
            check_in=datetime(2099, 2, 1, tzinfo=timezone.utc),
            check_out=datetime(2099, 2, 3, tzinfo=timezone.utc),
            total_amount=Decimal("200"),
            occupants=[{"name": "Ann"}],
            status=status,
        )

    def test_terminal_statuses(self):
        self.assertEqual(
            TERMINAL_STATUSES,
            {BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED, BookingStatus.REJECTED},
        )

    def test_every_status_has_an_entry(self):
        self.assertEqual(set(ALLOWED_TRANSITIONS), set(BookingStatus))

    def test_owner_confirms_pending(self):
        booking = self._booking(BookingStatus.PENDING)

        updated = transition(booking, BookingStatus.CONFIRMED, self.owner, self.hotel)

        self.assertEqual(updated.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertGreaterEqual(updated.updated_at, booking.updated_at)

    def test_manager_may_transition(self):
        booking = self._booking(BookingStatus.CONFIRMED)

        updated = transition(booking, BookingStatus.CHECKED_IN, self.manager, self.hotel)

        self.assertEqual(updated.status, BookingStatus.CHECKED_IN)

    def test_full_lifecycle(self):
        booking = self._booking(BookingStatus.PENDING)
        for status in (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT):
            booking = transition(booking, status, self.owner, self.hotel)
        self.assertEqual(booking.status, BookingStatus.CHECKED_OUT)

    def test_guest_cannot_transition(self):
        with self.assertRaises(AuthorizationError):
            transition(self._booking(BookingStatus.PENDING), BookingStatus.CONFIRMED, self.guest, self.hotel)

    def test_admin_without_hotel_rights_cannot_transition(self):
        admin = Principal("admin-1", UserRole.ADMIN)
        with self.assertRaises(AuthorizationError):
            transition(self._booking(BookingStatus.PENDING), BookingStatus.CONFIRMED, admin, self.hotel)

    def test_hotel_mismatch_is_rejected(self):
        other = Hotel("h2", "Beach Resort", "Miami", owner_id="owner-1")
        with self.assertRaises(AuthorizationError):
            transition(self._booking(BookingStatus.PENDING), BookingStatus.CONFIRMED, self.owner, other)

    def test_pending_to_checked_out_is_invalid(self):
        with self.assertRaises(InvalidTransitionError) as ctx:
            transition(self._booking(BookingStatus.PENDING), BookingStatus.CHECKED_OUT, self.owner, self.hotel)
        self.assertEqual(ctx.exception.current, BookingStatus.PENDING)
        self.assertEqual(ctx.exception.requested, BookingStatus.CHECKED_OUT)

    def test_no_transition_out_of_cancelled(self):
        booking = self._booking(BookingStatus.CANCELLED)
        for status in BookingStatus:
            with self.subTest(status=status):
                with self.assertRaises(InvalidTransitionError):
                    transition(booking, status, self.owner, self.hotel)

    def test_checked_in_cannot_be_cancelled(self):
        self.assertFalse(can_transition(BookingStatus.CHECKED_IN, BookingStatus.CANCELLED))
        self.assertTrue(can_transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED))


if __name__ == "__main__":
    unittest.main()
