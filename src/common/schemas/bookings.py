from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from common.models.bookings import BookingStatus, PaymentStatus
from common.utils.constants import MAX_STAY


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Occupant(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=0)
    gender: Gender
    relationship: str


class BookingRequest(BaseModel):
    room_id: str = Field(min_length=1)
    checkin: datetime
    checkout: datetime
    occupants: List[Occupant] = Field(min_length=1)
    documents: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def validate_and_normalize(self):
        if self.checkin.tzinfo is None or self.checkout.tzinfo is None:
            raise ValueError("checkin and checkout must include timezone info")

        checkin_utc = self.checkin.astimezone(timezone.utc)
        checkout_utc = self.checkout.astimezone(timezone.utc)
        now_utc = datetime.now(timezone.utc)

        if checkin_utc <= now_utc:
            raise ValueError("checkin must be in the future")

        if checkout_utc <= checkin_utc:
            raise ValueError("checkout must be after checkin")
        max_stay = timedelta(days=MAX_STAY)
        if checkout_utc - checkin_utc > max_stay:
            raise ValueError(f"Maximum stay is {MAX_STAY} days")

        self.checkin = checkin_utc
        self.checkout = checkout_utc

        return self

    def occupant_records(self) -> List[Dict[str, Any]]:
        return [occupant.model_dump(mode="json") for occupant in self.occupants]


class StatusUpdateRequest(BaseModel):
    status: BookingStatus


class PaymentStatusUpdateRequest(BaseModel):
    payment_status: PaymentStatus
