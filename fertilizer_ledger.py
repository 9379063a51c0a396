"""
fertilizer_ledger.py — Aggregation of fertilizer application records.

This module implements:
- Program grid lookups: the products recorded in one block/month cell
- Per-block totals by fertilizer and grand totals over a set of periods
- Year summary windows: 13 consecutive months starting at
  program_start + 12*k months, so window k ends on the month window k+1 starts
- Daily calendar lookups and month totals broken down by worker
- Block history statistics (yearly and daily ledgers for one block)

All functions take the already-fetched records and return fresh dicts/lists.
Nothing is cached between calls and inputs are never mutated, so a caller can
recompute from the latest fetch at any time. Empty inputs give empty/zero
results. Amounts are accumulated as plain floats; rounding is left to display.
"""

from datetime import date

from date_windows import add_months, first_of_month, month_key, parse_date, period_key


SUMMARY_WINDOW_MONTHS = 12


# ========================================
# Yearly-granularity (program grid)
# ========================================

def _matches_block(record, block_id):
    return block_id is None or record.block_id == block_id


def cell_totals(records, block_id, period):
    """Products recorded for a block in one program month, unaggregated.

    Returns a list of {'fertilizer_name', 'amount_per_palm'} in record order.
    """
    key = period_key(period)
    return [
        {'fertilizer_name': r.fertilizer_name, 'amount_per_palm': r.amount_per_palm}
        for r in records
        if r.block_id == block_id and r.period_start.isoformat() == key
    ]


def block_fertilizer_totals(records, block_id, period_keys):
    """
    Sum amount_per_palm per fertilizer for a block over a set of periods.

    A period listed more than once (the shared 13th month of consecutive
    program years) is still counted once.

    Returns:
        dict fertilizer_name -> summed amount, in first-seen order.
    """
    keys = {period_key(p) for p in period_keys}
    totals = {}
    for r in records:
        if r.block_id != block_id or r.period_start.isoformat() not in keys:
            continue
        totals[r.fertilizer_name] = totals.get(r.fertilizer_name, 0.0) + r.amount_per_palm
    return totals


def block_grand_total(records, block_id, period_keys):
    """Total amount for a block over the given periods, all products together."""
    keys = {period_key(p) for p in period_keys}
    total = 0.0
    for r in records:
        if r.block_id == block_id and r.period_start.isoformat() in keys:
            total += r.amount_per_palm
    return total


def summary_window(program_start, year_index):
    """
    Boundaries of the summary window for a 0-based program year.

    The window spans 13 months: [start + 12k, start + 12k + 12]. Its end
    month is the start month of the next year's window.
    """
    start = add_months(first_of_month(program_start), SUMMARY_WINDOW_MONTHS * year_index)
    end = add_months(start, SUMMARY_WINDOW_MONTHS)
    return start, end


def year_summary_window(records, block_id, window_start, window_end):
    """
    Totals for a block over every record whose period lies in
    [window_start, window_end], both ends inclusive.

    Returns:
        {'totals': {fertilizer_name: amount}, 'grand_total': float}
    """
    lo = first_of_month(window_start)
    hi = first_of_month(window_end)
    totals = {}
    grand_total = 0.0
    for r in records:
        if r.block_id != block_id or not (lo <= r.period_start <= hi):
            continue
        totals[r.fertilizer_name] = totals.get(r.fertilizer_name, 0.0) + r.amount_per_palm
        grand_total += r.amount_per_palm
    return {'totals': totals, 'grand_total': grand_total}


# ========================================
# Daily-granularity (calendar)
# ========================================

def _daily_entry(record):
    return {
        'worker_name': record.worker_name,
        'bag_size': record.bag_size,
        'quantity': record.quantity,
        'total_kg': record.total_kg,
    }


def daily_cell_entries(records, block_id, day):
    """Daily applications on an exact date. block_id=None matches every block."""
    target = parse_date(day)
    return [_daily_entry(r) for r in records
            if _matches_block(r, block_id) and r.date == target]


def daily_month_totals(records, block_id, month):
    """
    Aggregate daily applications falling in one calendar month.

    Args:
        records: DailyApplication records.
        block_id: Restrict to one block, or None for all blocks.
        month: Any date in the month, or a "YYYY-MM" / "YYYY-MM-DD" string.

    Returns:
        {'total_kg', 'application_count', 'by_worker': {name: {'amount', 'count'}}}
    """
    key = month_key(month)
    total_kg = 0
    count = 0
    by_worker = {}
    for r in records:
        if not _matches_block(r, block_id) or month_key(r.date) != key:
            continue
        total_kg += r.total_kg
        count += 1
        worker = by_worker.setdefault(r.worker_name, {'amount': 0, 'count': 0})
        worker['amount'] += r.total_kg
        worker['count'] += 1
    return {'total_kg': total_kg, 'application_count': count, 'by_worker': by_worker}


# ========================================
# Block history
# ========================================

def yearly_history_stats(records, block_id):
    """Per-fertilizer totals and application counts over a block's whole program."""
    by_fertilizer = {}
    total_amount = 0.0
    total_applications = 0
    for r in records:
        if r.block_id != block_id:
            continue
        group = by_fertilizer.setdefault(r.fertilizer_name, {'total': 0.0, 'applications': 0})
        group['total'] += r.amount_per_palm
        group['applications'] += 1
        total_amount += r.amount_per_palm
        total_applications += 1
    return {
        'by_fertilizer': by_fertilizer,
        'total_amount': total_amount,
        'total_applications': total_applications,
    }


def daily_history_stats(records, block_id):
    block_records = [r for r in records if r.block_id == block_id]
    return {
        'total_kg': sum(r.total_kg for r in block_records),
        'application_count': len(block_records),
    }


def available_months(records, block_id):
    """Months ("YYYY-MM") with daily data for the block, most recent first."""
    months = {month_key(r.date) for r in records if r.block_id == block_id}
    return sorted(months, reverse=True)


def default_history_month(records, block_id, today):
    """Current month if it has data, else the latest month with data, else None."""
    months = available_months(records, block_id)
    if not months:
        return None
    current = month_key(today)
    if current in months:
        return current
    return months[0]


def block_history(yearly_records, daily_records, block_id, selected_month=None, today=None):
    """
    Complete fertilizer history of one block.

    When no month is selected the default history month is used; daily
    entries are then limited to that month while the daily stats still cover
    the whole ledger.
    """
    today = parse_date(today) if today is not None else date.today()

    if selected_month is None:
        selected_month = default_history_month(daily_records, block_id, today)
    else:
        selected_month = month_key(selected_month)

    yearly = sorted((r for r in yearly_records if r.block_id == block_id),
                    key=lambda r: r.period_start)
    daily = sorted((r for r in daily_records if r.block_id == block_id),
                   key=lambda r: r.date)
    if selected_month is not None:
        daily_in_month = [r for r in daily if month_key(r.date) == selected_month]
        month_totals = daily_month_totals(daily, block_id, selected_month)
    else:
        daily_in_month = daily
        month_totals = None

    return {
        'block_id': block_id,
        'yearly_entries': [r.to_dict() for r in yearly],
        'daily_entries': [r.to_dict() for r in daily_in_month],
        'yearly_stats': yearly_history_stats(yearly, block_id),
        'daily_stats': daily_history_stats(daily, block_id),
        'available_months': available_months(daily, block_id),
        'selected_month': selected_month,
        'selected_month_totals': month_totals,
    }
