"""
routes/main.py — Phase selection and block management routes.

Provides:
- GET    /                        — JSON: phases with their program start dates
- GET    /phases                  — JSON: list phases
- POST   /phases                  — Create a phase
- GET    /phases/<phase_id>       — JSON: phase, blocks in display order, start date
- POST   /phases/<phase_id>/blocks — Create a block in a phase
- DELETE /blocks/<block_id>       — Delete a block (refused while it has entries)

Also holds the JSON error helpers shared by the other blueprints.
"""

from flask import Blueprint, current_app, request, jsonify

from database import (
    ConstraintViolation, NotFound, create_block, create_phase, delete_block,
    get_blocks, get_phase, get_phases, get_start_date
)
from program_table import sorted_blocks
from utils.validators import ValidationError


main_bp = Blueprint('main', __name__)


# ========================================
# Helpers
# ========================================

def get_channel():
    """Change channel created by create_app()."""
    return current_app.extensions.get('change_channel')


def error_response(error):
    """Map store and validation errors to a JSON error envelope and status."""
    if isinstance(error, ValidationError):
        body = {'success': False, 'error': str(error)}
        if error.field:
            body['field'] = error.field
        return jsonify(body), 400
    if isinstance(error, NotFound):
        return jsonify({'success': False, 'error': str(error)}), 404
    if isinstance(error, ConstraintViolation):
        return jsonify({'success': False, 'error': str(error)}), 409
    raise error


def request_data():
    """JSON object body, or form data for plain form posts. Any other JSON body reads as empty."""
    if request.is_json:
        data = request.get_json()
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def start_date_payload(start):
    if start is None:
        return None
    return {'id': start.id, 'phase_id': start.phase_id, 'start_date': start.start_date.isoformat()}


# ========================================
# Phases
# ========================================

@main_bp.route('/')
def index():
    """Phase selector: every phase and whether its program is set up."""
    phases = []
    for phase in get_phases():
        start = get_start_date(phase.id)
        phases.append({
            'id': phase.id,
            'name': phase.name,
            'area': phase.area,
            'trees': phase.trees,
            'start_date': start.start_date.isoformat() if start else None,
        })
    return jsonify({'success': True, 'phases': phases})


@main_bp.route('/phases')
def list_phases():
    phases = [{'id': p.id, 'name': p.name, 'area': p.area, 'trees': p.trees}
              for p in get_phases()]
    return jsonify({'success': True, 'phases': phases})


@main_bp.route('/phases', methods=['POST'])
def add_phase():
    data = request_data()
    try:
        phase_id = create_phase(data.get('name'), data.get('area'), data.get('trees'),
                                channel=get_channel())
    except (ValidationError, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True, 'phase_id': phase_id}), 201


@main_bp.route('/phases/<int:phase_id>')
def phase_detail(phase_id):
    phase = get_phase(phase_id)
    if not phase:
        return jsonify({'success': False, 'error': 'Phase not found'}), 404

    blocks = sorted_blocks(get_blocks(phase_id))
    return jsonify({
        'success': True,
        'phase': {'id': phase.id, 'name': phase.name, 'area': phase.area, 'trees': phase.trees},
        'blocks': [b.to_dict() for b in blocks],
        'start_date': start_date_payload(get_start_date(phase_id)),
    })


# ========================================
# Blocks
# ========================================

@main_bp.route('/phases/<int:phase_id>/blocks', methods=['POST'])
def add_block(phase_id):
    if not get_phase(phase_id):
        return jsonify({'success': False, 'error': 'Phase not found'}), 404

    data = request_data()
    try:
        block_id = create_block(phase_id, data.get('label'), data.get('area'), data.get('trees'),
                                channel=get_channel())
    except (ValidationError, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True, 'block_id': block_id}), 201


@main_bp.route('/blocks/<int:block_id>', methods=['DELETE'])
def remove_block(block_id):
    try:
        delete_block(block_id, channel=get_channel())
    except (NotFound, ConstraintViolation) as e:
        return error_response(e)
    return jsonify({'success': True})
