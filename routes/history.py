"""
routes/history.py — Block fertilizer history.

Provides:
- GET /phases/<phase_id>/blocks/<block_id>/history — JSON: yearly and daily ledgers
  of one block with per-fertilizer stats; ?month=YYYY-MM narrows the daily list
"""

from datetime import date

from flask import Blueprint, request, jsonify

from database import get_block, query_daily, query_yearly
from fertilizer_ledger import block_history
from routes.main import error_response
from utils.validators import ValidationError, parse_iso_date

history_bp = Blueprint('history', __name__)


@history_bp.route('/phases/<int:phase_id>/blocks/<int:block_id>/history')
def block_history_view(phase_id, block_id):
    block = get_block(block_id)
    if not block or block.phase_id != phase_id:
        return jsonify({'success': False, 'error': 'Block not found'}), 404

    month_arg = request.args.get('month')
    try:
        selected_month = parse_iso_date(f"{month_arg[:7]}-01", 'month') if month_arg else None
    except ValidationError as e:
        return error_response(e)

    history = block_history(
        query_yearly(phase_id=phase_id, block_id=block_id),
        query_daily(phase_id=phase_id, block_id=block_id),
        block_id,
        selected_month=selected_month,
        today=date.today(),
    )
    history['block'] = block.to_dict()
    return jsonify({'success': True, 'history': history})
