"""
routes/calendar.py — Month-to-month calendar of daily fertilizer applications.

Provides:
- GET    /phases/<phase_id>/calendar          — JSON: month grid, weeks and month totals
         ?month=YYYY-MM (defaults to the program start month)
         &direction=prev|next (step from `month`), &block_id= (optional filter)
- GET    /phases/<phase_id>/calendar/entries  — JSON: entries on one date (?date=YYYY-MM-DD)
- POST   /phases/<phase_id>/calendar/entries  — Add a daily application
- DELETE /calendar/entries/<entry_id>         — Delete a daily application
"""

from flask import Blueprint, request, jsonify

from calendar_grid import build_month_grid, current_month_anchor, grid_weeks, navigate_month
from database import (
    ConstraintViolation, NotFound, delete_daily, get_blocks, get_phase,
    get_start_date, insert_daily, query_daily
)
from date_windows import add_months, days_in_month, month_key
from fertilizer_ledger import daily_month_totals
from routes.main import error_response, get_channel, request_data
from utils.validators import BAG_SIZES, ValidationError, parse_iso_date

calendar_bp = Blueprint('calendar', __name__)


@calendar_bp.route('/phases/<int:phase_id>/calendar')
def month_view(phase_id):
    """Calendar grid for one month."""
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404

    month_arg = request.args.get('month')
    try:
        if month_arg:
            anchor = current_month_anchor(parse_iso_date(f"{month_arg[:7]}-01", 'month'))
        else:
            start = get_start_date(phase_id)
            if not start:
                return jsonify({'success': False, 'error': 'Program start date not set'}), 409
            anchor = current_month_anchor(start.start_date)

        direction = request.args.get('direction')
        if direction:
            anchor = navigate_month(anchor, direction)
    except ValidationError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    block_id = request.args.get('block_id', type=int)
    month_end = anchor.replace(day=days_in_month(anchor.year, anchor.month))
    records = query_daily(phase_id=phase_id, block_id=block_id, date_range=(anchor, month_end))

    cells = build_month_grid(anchor.year, anchor.month - 1, records, block_id)
    return jsonify({
        'success': True,
        'month': month_key(anchor),
        'previous_month': month_key(add_months(anchor, -1)),
        'next_month': month_key(add_months(anchor, 1)),
        'cells': cells,
        'weeks': grid_weeks(cells),
        'month_totals': daily_month_totals(records, block_id, anchor),
        'bag_sizes': list(BAG_SIZES),
    })


@calendar_bp.route('/phases/<int:phase_id>/calendar/entries')
def day_entries(phase_id):
    """Entries recorded on one date, with block labels for display."""
    try:
        day = parse_iso_date(request.args.get('date'))
    except ValidationError as e:
        return error_response(e)

    labels = {b.id: b.label for b in get_blocks(phase_id)}
    entries = []
    for entry in query_daily(phase_id=phase_id, day=day):
        item = entry.to_dict()
        item['block_label'] = labels.get(entry.block_id)
        entries.append(item)
    return jsonify({'success': True, 'date': day.isoformat(), 'entries': entries})


@calendar_bp.route('/phases/<int:phase_id>/calendar/entries', methods=['POST'])
def add_entry(phase_id):
    """Add a daily application.

    Body: {'date': 'YYYY-MM-DD', 'name', 'block_id', 'bag': 10|50, 'quantity'}
    """
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404

    data = request_data()
    try:
        entry_id = insert_daily(phase_id, data.get('block_id'), data.get('date'),
                                data.get('name'), data.get('bag', BAG_SIZES[0]),
                                data.get('quantity', 1), channel=get_channel())
    except (ValidationError, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True, 'entry_id': entry_id}), 201


@calendar_bp.route('/calendar/entries/<int:entry_id>', methods=['DELETE'])
def remove_entry(entry_id):
    try:
        delete_daily(entry_id, channel=get_channel())
    except (NotFound, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True})
