import math
from datetime import datetime, timedelta
from decimal import Decimal

from common.utils.custom_exceptions import ValidationError

ONE_NIGHT = timedelta(days=1)


def count_nights(check_in: datetime, check_out: datetime) -> int:
    """Whole nights in ``[check_in, check_out)``, rounded up."""
    if check_in.tzinfo is None or check_out.tzinfo is None:
        raise ValidationError("check_in and check_out must be timezone-aware")
    duration = check_out - check_in
    if duration <= timedelta(0):
        raise ValidationError("check_out must be after check_in")
    return math.ceil(duration / ONE_NIGHT)


def calculate_total(
    price_per_night: Decimal | int | float | str,
    check_in: datetime,
    check_out: datetime,
) -> Decimal:
    rate = Decimal(str(price_per_night))
    if rate <= 0:
        raise ValidationError("nightly rate must be positive")
    return count_nights(check_in, check_out) * rate
