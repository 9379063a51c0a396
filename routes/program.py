"""
routes/program.py — Year-to-year fertilizer program routes.

Provides:
- GET  /phases/<phase_id>/start-date        — JSON: program start date
- PUT  /phases/<phase_id>/start-date        — Set or edit the program start date
- GET  /phases/<phase_id>/program           — JSON: program table (columns + block rows)
- GET  /phases/<phase_id>/program/entries   — JSON: entries of one block/month cell
- POST /phases/<phase_id>/program/entries   — Add fertilizer entries to a cell
- DELETE /program/entries/<entry_id>        — Delete one program entry

The table is recomputed from a fresh fetch on every request.
"""

from flask import Blueprint, current_app, request, jsonify

from database import (
    ConstraintViolation, NotFound, delete_yearly, get_blocks, get_phase,
    get_start_date, insert_yearly_entries, query_yearly, set_start_date
)
from program_table import build_program_table
from routes.main import error_response, get_channel, request_data, start_date_payload
from utils.validators import ValidationError, parse_iso_date

program_bp = Blueprint('program', __name__)

MAX_PROGRAM_YEARS = 50


def serialize_program_table(table):
    """Turn the program table into JSON-ready data (ISO dates, block dicts)."""
    columns = []
    for column in table['columns']:
        if column['type'] == 'month':
            columns.append(dict(column, date=column['date'].isoformat()))
        else:
            columns.append(dict(column,
                                window_start=column['window_start'].isoformat(),
                                window_end=column['window_end'].isoformat()))
    rows = [dict(row, block=row['block'].to_dict()) for row in table['rows']]
    return {'columns': columns, 'rows': rows}


# ========================================
# Program start date
# ========================================

@program_bp.route('/phases/<int:phase_id>/start-date')
def start_date(phase_id):
    start = get_start_date(phase_id)
    if not start:
        return jsonify({'success': False, 'error': 'Program start date not set'}), 404
    return jsonify({'success': True, 'start_date': start_date_payload(start)})


@program_bp.route('/phases/<int:phase_id>/start-date', methods=['PUT', 'POST'])
def save_start_date(phase_id):
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404
    try:
        start = set_start_date(phase_id, request_data().get('start_date'), channel=get_channel())
    except (ValidationError, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True, 'start_date': start_date_payload(start)})


# ========================================
# Program table
# ========================================

@program_bp.route('/phases/<int:phase_id>/program')
def program_table(phase_id):
    """Year-to-year table: 13 months + summary per year, one row per block."""
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404
    start = get_start_date(phase_id)
    if not start:
        return jsonify({'success': False, 'error': 'Program start date not set'}), 409

    years = request.args.get('years', current_app.config['PROGRAM_YEARS'], type=int)
    years = max(1, min(years, MAX_PROGRAM_YEARS))

    table = build_program_table(get_blocks(phase_id), query_yearly(phase_id=phase_id),
                                start.start_date, years)
    return jsonify({'success': True,
                    'start_date': start.start_date.isoformat(),
                    'years': years,
                    **serialize_program_table(table)})


# ========================================
# Program entries
# ========================================

@program_bp.route('/phases/<int:phase_id>/program/entries')
def cell_entries(phase_id):
    """Existing entries for one block/month (used by the entry form)."""
    block_id = request.args.get('block_id', type=int)
    try:
        month = parse_iso_date(request.args.get('month'), 'month')
    except ValidationError as e:
        return error_response(e)
    entries = query_yearly(phase_id=phase_id, block_id=block_id, period=month)
    return jsonify({'success': True, 'entries': [e.to_dict() for e in entries]})


@program_bp.route('/phases/<int:phase_id>/program/entries', methods=['POST'])
def add_entries(phase_id):
    """Add one or more fertilizer entries to a block/month cell.

    Body: {'block_id', 'month': 'YYYY-MM-01', 'entries': [{'fertilizer_name', 'kilogram_amount'}]}
    """
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404

    data = request_data()
    try:
        ids = insert_yearly_entries(phase_id, data.get('block_id'), data.get('month'),
                                    data.get('entries'), channel=get_channel())
    except (ValidationError, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True, 'entry_ids': ids}), 201


@program_bp.route('/program/entries/<int:entry_id>', methods=['DELETE'])
def remove_entry(entry_id):
    try:
        delete_yearly(entry_id, channel=get_channel())
    except (NotFound, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True})
