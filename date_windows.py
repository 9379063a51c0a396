"""
date_windows.py — Month arithmetic and period keys for the fertilizer program.

Provides:
- month_sequence: consecutive first-of-month dates with short labels
- period_key: normalizes any date to its "YYYY-MM-01" grouping key
- compare_month_strings: calendar ordering of "Month YYYY" strings
- add_months / days_in_month helpers used by the grid builders

Every month date produced here has day = 1, so adding months can never
overflow into an unintended month (Jan 31 + 1 month is never Mar 2/3).
"""

import calendar
from datetime import date, datetime


MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
              'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


def parse_date(value):
    """Coerce a date, datetime or ISO string ("YYYY-MM-DD" / "YYYY-MM") to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 7:
            return datetime.strptime(text, '%Y-%m').date()
        # Timestamps from the store ("2024-03-05T00:00:00") keep only the date part
        return datetime.strptime(text[:10], '%Y-%m-%d').date()
    raise TypeError(f"Cannot interpret {value!r} as a date")


def first_of_month(value):
    d = parse_date(value)
    return date(d.year, d.month, 1)


def add_months(value, months):
    """Shift to the first day of the month `months` away (negative allowed)."""
    d = parse_date(value)
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def days_in_month(year, month):
    """Number of days in a 1-based month, proleptic Gregorian."""
    return calendar.monthrange(year, month)[1]


def period_key(value):
    """Normalize to the aggregation key for yearly-granularity records."""
    return first_of_month(value).isoformat()


def month_key(value):
    """Month key (YYYY-MM) used by the daily calendar and history filters."""
    d = parse_date(value)
    return f"{d.year:04d}-{d.month:02d}"


def month_label(value):
    return MONTH_ABBR[parse_date(value).month - 1]


def month_sequence(start, count):
    """
    Generate `count` consecutive months starting at `start`'s month.

    Args:
        start: Any date inside the first month.
        count: Number of months to emit.

    Returns:
        List of (first_of_month_date, short_label) tuples, e.g.
        [(date(2024, 2, 1), 'Feb'), (date(2024, 3, 1), 'Mar'), ...]
    """
    base = first_of_month(start)
    sequence = []
    for offset in range(count):
        d = add_months(base, offset)
        sequence.append((d, MONTH_ABBR[d.month - 1]))
    return sequence


def _parse_month_string(text):
    cleaned = ' '.join(text.split())
    for fmt in ('%B %Y', '%b %Y'):
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized month string: {text!r}")


def compare_month_strings(a, b):
    """
    Compare two "Month YYYY" strings ("March 2024", "Mar 2024") by calendar order.

    Returns -1 if a is earlier, 0 if same month, 1 if later.
    """
    da = _parse_month_string(a)
    db = _parse_month_string(b)
    if da < db:
        return -1
    if da > db:
        return 1
    return 0
