"""
calendar_grid.py — Month-to-month calendar grid for daily fertilizer entries.

Builds the cell list for one calendar month: one blank (None) cell per
weekday before the 1st (weeks start on Sunday), then one cell per day
carrying that day's daily applications.
"""

from datetime import date

from date_windows import add_months, days_in_month, first_of_month
from fertilizer_ledger import daily_cell_entries


DAYS_PER_WEEK = 7


def sunday_weekday(d):
    """Weekday index with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % DAYS_PER_WEEK


def build_month_grid(year, month_index, records=(), block_id=None, today=None):
    """
    Build the calendar cells for a month.

    Args:
        year: Calendar year.
        month_index: 0-based month; out-of-range values roll over into the
            neighbouring years (12 -> January of year + 1).
        records: DailyApplication records to place on the grid.
        block_id: Only show entries for this block (None = all blocks).
        today: Date used for the is_today flag (defaults to date.today()).

    Returns:
        List of cells. Leading blanks are None; day cells are dicts with
        'day', 'date', 'is_today', 'entries' and 'total_kg'.
    """
    year += month_index // 12
    month = month_index % 12 + 1
    today = today or date.today()
    records = list(records)

    first = date(year, month, 1)
    cells = [None] * sunday_weekday(first)

    for day in range(1, days_in_month(year, month) + 1):
        current = date(year, month, day)
        entries = daily_cell_entries(records, block_id, current)
        cells.append({
            'day': day,
            'date': current.isoformat(),
            'is_today': current == today,
            'entries': entries,
            'total_kg': sum(e['total_kg'] for e in entries),
        })

    return cells


def grid_weeks(cells):
    """Split grid cells into rows of seven, padding the final row with blanks."""
    weeks = []
    for start in range(0, len(cells), DAYS_PER_WEEK):
        week = list(cells[start:start + DAYS_PER_WEEK])
        week.extend([None] * (DAYS_PER_WEEK - len(week)))
        weeks.append(week)
    return weeks


def navigate_month(current, direction):
    """Move one calendar month back ('prev') or forward ('next'), anchored on day 1."""
    if direction == 'prev':
        return add_months(current, -1)
    if direction == 'next':
        return add_months(current, 1)
    raise ValueError(f"Unknown navigation direction: {direction!r}")


def current_month_anchor(value=None):
    """First day of the month to display (today's month when value is None)."""
    return first_of_month(value or date.today())
