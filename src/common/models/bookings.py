from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# Statuses that hold the room for their interval.
LIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN}
)


@dataclass(frozen=True)
class ReservationInterval:
    """Half-open stay interval ``[check_in, check_out)``."""

    check_in: datetime
    check_out: datetime

    def overlaps(self, other: "ReservationInterval") -> bool:
        return intervals_overlap(self, other)


def intervals_overlap(a: ReservationInterval, b: ReservationInterval) -> bool:
    return a.check_in < b.check_out and b.check_in < a.check_out


@dataclass(frozen=True)
class BookedInterval:
    booking_id: str
    interval: ReservationInterval
    status: BookingStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Booking:
    booking_id: str
    room_id: str
    user_id: str
    hotel_id: str
    check_in: datetime
    check_out: datetime
    total_amount: Decimal
    occupants: List[Dict[str, Any]]
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    documents: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def interval(self) -> ReservationInterval:
        return ReservationInterval(self.check_in, self.check_out)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.booking_id,
            "roomId": self.room_id,
            "hotelId": self.hotel_id,
            "userId": self.user_id,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "status": self.status.value,
            "paymentStatus": self.payment_status.value,
            "totalAmount": float(self.total_amount),
            "occupants": self.occupants,
            "documents": self.documents,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
