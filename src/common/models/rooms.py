from enum import Enum
from dataclasses import dataclass
from decimal import Decimal


class Category(str, Enum):
    STANDARD = "STANDARD"
    DELUXE = "DELUXE"
    SUITE = "SUITE"
    PRESIDENTIAL = "PRESIDENTIAL"


class RoomStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"
    RESERVED = "RESERVED"


@dataclass
class Room:
    room_id: str
    hotel_id: str
    room_number: str
    category: Category
    price_per_night: Decimal
    capacity: int = 1
    status: RoomStatus = RoomStatus.AVAILABLE
    room_code: str = ""
    booking_version: int = 0
