MAX_STAY = 30

MAX_BOOKING_ATTEMPTS = 5
MAX_TRANSITION_ATTEMPTS = 3

MAX_TRANSIENT_RETRIES = 3
RETRY_BASE_DELAY = 0.05
RETRY_MAX_DELAY = 1.0

MAX_CODE_ATTEMPTS = 5
HOTEL_CODE_LENGTH = 4
ROOM_CODE_LENGTH = 6

ALLOWED_DOCUMENT_TYPES = ("image/jpeg", "image/png", "image/jpg", "application/pdf")
MAX_DOCUMENT_SIZE = 5 * 1024 * 1024
DOCUMENT_KEY_PREFIX = "identity-documents"
DOCUMENT_URL_EXPIRY = 3600

