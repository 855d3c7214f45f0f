import random
import string

from common.utils.constants import HOTEL_CODE_LENGTH, ROOM_CODE_LENGTH

HOTEL_CODE_ALPHABET = string.ascii_lowercase + string.digits
ROOM_CODE_ALPHABET = string.hexdigits.lower()[:16]


def generate_hotel_code() -> str:
    return "".join(random.choices(HOTEL_CODE_ALPHABET, k=HOTEL_CODE_LENGTH))


def generate_room_code() -> str:
    return "".join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))
