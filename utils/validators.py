"""
utils/validators.py — Input validation helpers.

Validates, before anything reaches the store:
- Yearly program entries (non-empty fertilizer name, positive amount per palm)
- Daily entries (worker name, block selection, bag size, quantity >= 1)
- Program start dates and ISO date strings

Each validator returns cleaned values (names trimmed, numbers coerced) or
raises ValidationError naming the offending field.
"""

import math
from collections.abc import Mapping
from datetime import datetime


BAG_SIZES = (10, 50)


class ValidationError(ValueError):
    """Malformed input to a write operation. Nothing has been written."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


def parse_iso_date(value, field='date'):
    """Parse "YYYY-MM-DD" (or a date) into a date."""
    if value is None or value == '':
        raise ValidationError("A date is required.", field)
    if hasattr(value, 'year') and hasattr(value, 'month') and hasattr(value, 'day'):
        return value if not isinstance(value, datetime) else value.date()
    try:
        return datetime.strptime(str(value).strip()[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD).", field)


def validate_block_selection(block_id):
    if block_id is None or block_id == '':
        raise ValidationError("Please select a block.", 'block_id')
    return _whole_number(block_id, 'block_id', 'block')


def _positive_amount(value):
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}.", 'kilogram_amount')
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Amount must be greater than 0.", 'kilogram_amount')
    return amount


def _whole_number(value, field, label):
    """Coerce to int, refusing fractional or non-finite values."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}: {value!r}.", field)
    if not math.isfinite(number) or number != int(number):
        raise ValidationError(f"Invalid {label}: {value!r} (must be a whole number).", field)
    return int(number)


def validate_yearly_entries(entries):
    """
    Validate a batch of program entries for one block/month.

    Args:
        entries: list of dicts with 'fertilizer_name' and 'kilogram_amount'

    Returns:
        List of (fertilizer_name, amount) tuples.
    """
    if entries is None:
        entries = []
    if not isinstance(entries, (list, tuple)) or not all(isinstance(e, Mapping) for e in entries):
        raise ValidationError("Entries must be a list of fertilizer entries.", 'entries')

    cleaned = []
    for entry in entries:
        name = str(entry.get('fertilizer_name') or '').strip()
        if not name:
            raise ValidationError("Fertilizer name is required.", 'fertilizer_name')
        cleaned.append((name, _positive_amount(entry.get('kilogram_amount'))))
    if not cleaned:
        raise ValidationError("Please add at least one valid fertilizer entry.", 'entries')
    return cleaned


def validate_daily_entry(worker_name, block_id, bag_size, quantity):
    """Validate one daily application. Returns (worker_name, block_id, bag_size, quantity)."""
    name = str(worker_name or '').strip()
    if not name:
        raise ValidationError("Worker name is required.", 'name')

    block_id = validate_block_selection(block_id)

    bag_size = _whole_number(bag_size, 'bag', 'bag size')
    if bag_size not in BAG_SIZES:
        raise ValidationError(
            f"Unsupported bag size {bag_size} (allowed: {', '.join(map(str, BAG_SIZES))} kg).",
            'bag')

    quantity = _whole_number(quantity, 'quantity', 'quantity')
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.", 'quantity')

    return name, block_id, bag_size, quantity


def validate_start_date(value):
    if value is None or value == '':
        raise ValidationError("Please select a start date.", 'start_date')
    return parse_iso_date(value, 'start_date')
