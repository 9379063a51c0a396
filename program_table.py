"""
program_table.py — Year-to-year fertilizer program table.

Assembles the matrix shown for a phase:
- one row per block, blocks sorted numerically first (1, 2, 10) then
  alphabetically (A, B)
- for each program year: 13 month columns followed by 1 summary column
  (the 13th month of year N is the same calendar month as the first month
  of year N+1, and is shown in both)
- a trailing per-block total over every month column

Cell lookups use the period key only, so the repeated month shows the same
data under both years. Blocks with no records still produce a full row.
"""

import re

from date_windows import month_sequence
from fertilizer_ledger import (
    SUMMARY_WINDOW_MONTHS, block_fertilizer_totals, block_grand_total,
    cell_totals, summary_window, year_summary_window
)


DEFAULT_PROGRAM_YEARS = 12
MONTHS_PER_PROGRAM_YEAR = SUMMARY_WINDOW_MONTHS + 1

_NUMERIC_LABEL = re.compile(r'^\d+$')


# ========================================
# Block ordering
# ========================================

def _label_of(block):
    return str(block if isinstance(block, (str, int)) else block.label)


def block_sort_key(block):
    """Sort key placing numeric labels (by value) before alphabetic labels."""
    label = _label_of(block)
    if _NUMERIC_LABEL.match(label):
        return (0, int(label), '')
    return (1, 0, label)


def sorted_blocks(blocks):
    """Return blocks (labels or Block records) in display order."""
    return sorted(blocks, key=block_sort_key)


# ========================================
# Columns and rows
# ========================================

def build_columns(program_start, year_count=DEFAULT_PROGRAM_YEARS):
    """
    Build the column descriptors for the program table.

    Per program year (1-based year_number):
    - 13 month columns: {'type': 'month', 'date', 'label', 'period_key', 'year_number'}
    - 1 summary column: {'type': 'summary', 'year_number', 'window_start', 'window_end'}
    """
    columns = []
    for year_index in range(year_count):
        window_start, window_end = summary_window(program_start, year_index)
        for month_date, label in month_sequence(window_start, MONTHS_PER_PROGRAM_YEAR):
            columns.append({
                'type': 'month',
                'date': month_date,
                'label': label,
                'period_key': month_date.isoformat(),
                'year_number': year_index + 1,
            })
        columns.append({
            'type': 'summary',
            'year_number': year_index + 1,
            'window_start': window_start,
            'window_end': window_end,
        })
    return columns


def build_row(block, columns, records):
    """
    Build one block's row aligned to `columns`.

    Returns:
        {'block': block, 'cells': [...], 'totals': {'by_fertilizer', 'grand_total'}}
    """
    cells = []
    month_keys = []
    for column in columns:
        if column['type'] == 'month':
            month_keys.append(column['period_key'])
            cells.append({
                'type': 'month',
                'period_key': column['period_key'],
                'entries': cell_totals(records, block.id, column['period_key']),
            })
        else:
            summary = year_summary_window(records, block.id,
                                          column['window_start'], column['window_end'])
            cells.append({
                'type': 'summary',
                'year_number': column['year_number'],
                'totals': summary['totals'],
                'grand_total': summary['grand_total'],
            })

    return {
        'block': block,
        'cells': cells,
        'totals': {
            'by_fertilizer': block_fertilizer_totals(records, block.id, month_keys),
            'grand_total': block_grand_total(records, block.id, month_keys),
        },
    }


def build_program_table(blocks, records, program_start, year_count=DEFAULT_PROGRAM_YEARS):
    """Columns plus one row per block (in display order) for a phase."""
    records = list(records)
    columns = build_columns(program_start, year_count)
    rows = [build_row(block, columns, records) for block in sorted_blocks(blocks)]
    return {'columns': columns, 'rows': rows}
