# registrar/utils.py

"""
Registrar Utility Functions

Contains:
- Clock helper (the single place services read "now" from by default)
- Money normalisation
- Reference number generation (request numbers, payment references)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from django.db import transaction
from django.utils import timezone
import logging

from registrar.conf import get_setting

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def get_current_time():
    """Default clock for the registrar services."""
    return timezone.now()


def to_money(value):
    """
    Normalise an amount to a Decimal with two fractional digits.

    Floats are refused.
    Strings, ints and Decimals are accepted.

    Raises:
        ValueError: for floats, booleans or unparsable values
    """
    if isinstance(value, (float, bool)):
        raise ValueError(f"Monetary amounts must not be floats: {value!r}")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid monetary amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def get_unit_price(document_type):
    prices = get_setting('DOCUMENT_PRICES')
    if document_type not in prices:
        return None
    return to_money(prices[document_type])


# =============================================================================
# REFERENCE NUMBER GENERATION
# =============================================================================

def _next_daily_number(queryset, field_name, search_prefix):
    """Highest numeric suffix already issued under search_prefix, plus one."""
    numbers = []
    values = queryset.filter(
        **{f"{field_name}__startswith": search_prefix}
    ).select_for_update().values_list(field_name, flat=True)
    for value in values:
        try:
            numbers.append(int(value[len(search_prefix):]))
        except ValueError:
            continue
    return max(numbers) + 1 if numbers else 1


def generate_request_number(now=None, offset=0):
    """
    Generate the next request number for the day.
    Format: REQ-20250115-0001

    Like payment references, a collision on insert is retried by the
    caller with a larger offset.

    Returns:
        str: Request number not used yet at the time of the call
    """
    from registrar.models import DocumentRequest

    now = now or get_current_time()
    prefix = get_setting('REQUEST_NUMBER_PREFIX')
    search_prefix = f"{prefix}-{timezone.localtime(now):%Y%m%d}-"

    with transaction.atomic():
        new_number = _next_daily_number(
            DocumentRequest.objects.all(), 'request_number', search_prefix
        ) + offset

    return f"{search_prefix}{new_number:04d}"


def generate_payment_reference(now=None, offset=0):
    """
    Generate the next cash payment reference (PRN) for the day.
    Format: PRN-20250115-000001

    Uniqueness is finally guaranteed by the unique constraint on
    Payment.payment_reference_number; callers retry with a larger offset
    when an insert collides.

    Args:
        now: Datetime whose local date forms the date component
        offset: Added to the next free sequence number (retry support)
    """
    from registrar.models import Payment

    now = now or get_current_time()
    prefix = get_setting('PAYMENT_REFERENCE_PREFIX')
    search_prefix = f"{prefix}-{timezone.localtime(now):%Y%m%d}-"

    with transaction.atomic():
        new_number = _next_daily_number(
            Payment.objects.all(), 'payment_reference_number', search_prefix
        ) + offset

    return f"{search_prefix}{new_number:06d}"
