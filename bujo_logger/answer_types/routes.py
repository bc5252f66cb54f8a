from flask import Blueprint, request, jsonify
from .. import db
from ..models import AnswerType
from ..helpers.utils import require_auth, require_admin
from ..helpers.validation import ANSWER_TYPES, DISPLAY_OPTIONS, normalize_display_options
import json

answer_types_bp = Blueprint('answer_types', __name__)


def parse_meta(meta):
    """Accepts an object or a JSON string. Raises ValueError on bad JSON."""
    if isinstance(meta, str):
        meta = json.loads(meta)
    if isinstance(meta, dict):
        return meta
    return {}


def read_display_options(data, updates, current_default=None):
    if 'default_display_option' in data:
        if data['default_display_option'] not in DISPLAY_OPTIONS:
            return 'default_display_option must be one of graph, list, grid, count'
        updates['default_display_option'] = data['default_display_option']
    if 'allowed_display_options' in data:
        options = normalize_display_options(data['allowed_display_options'])
        default = updates.get('default_display_option', current_default)
        if default and default not in options:
            options.append(default)
        updates['allowed_display_options'] = options
    return None


# LIST ANSWER TYPES
@answer_types_bp.route('', methods=['GET'])
@require_auth
def get_answer_types():
    answer_types = AnswerType.query.order_by(AnswerType.name.asc()).all()
    return jsonify({
        'message': 'Answer types retrieved successfully',
        'data': [a.to_dict() for a in answer_types]
    })


# CREATE AN ANSWER TYPE
@answer_types_bp.route('', methods=['POST'])
@require_auth
@require_admin
def create_answer_type():
    data = request.get_json(silent=True) or {}
    type_tag = data.get('type')
    if not type_tag or type_tag not in ANSWER_TYPES:
        return jsonify({'message': 'Type is required and must be one of: ' + ', '.join(ANSWER_TYPES)}), 400
    if not data.get('name'):
        return jsonify({'message': 'Name is required'}), 400

    items = data.get('items')
    if items is not None and not isinstance(items, list):
        return jsonify({'message': 'Items must be an array or null'}), 400

    try:
        meta = parse_meta(data.get('meta'))
    except ValueError:
        return jsonify({'message': 'Meta must be valid JSON'}), 400

    updates = {}
    error = read_display_options(data, updates, 'graph')
    if error:
        return jsonify({'message': error}), 400
    default_display = updates.get('default_display_option', 'graph')

    answer_type = AnswerType(
        name=data['name'],
        description=data.get('description'),
        type=type_tag,
        items=items or None,
        meta=meta,
        default_display_option=default_display,
        allowed_display_options=updates.get(
            'allowed_display_options', [default_display]),
        created_by=request.auth_user_id
    )
    db.session.add(answer_type)
    db.session.commit()

    return jsonify({'message': 'Answer type created', 'data': answer_type.to_dict()}), 201


# UPDATE AN ANSWER TYPE
@answer_types_bp.route('', methods=['PUT'])
@require_auth
@require_admin
def update_answer_type():
    data = request.get_json(silent=True) or {}
    answer_type_id = data.get('id')
    if not answer_type_id:
        return jsonify({'message': 'Answer type id is required'}), 400

    answer_type = db.session.get(AnswerType, answer_type_id)
    if answer_type is None:
        return jsonify({'message': 'Answer type not found'}), 404

    updates = {}
    for field in ('name', 'description', 'is_active'):
        if field in data:
            updates[field] = data[field]

    if 'type' in data:
        if data['type'] not in ANSWER_TYPES:
            return jsonify({'message': 'Type must be one of: ' + ', '.join(ANSWER_TYPES)}), 400
        updates['type'] = data['type']

    if 'items' in data:
        if data['items'] is not None and not isinstance(data['items'], list):
            return jsonify({'message': 'Items must be an array or null'}), 400
        updates['items'] = data['items']

    if 'meta' in data:
        try:
            updates['meta'] = parse_meta(data['meta'])
        except ValueError:
            return jsonify({'message': 'Meta must be valid JSON'}), 400

    error = read_display_options(
        data, updates, answer_type.default_display_option)
    if error:
        return jsonify({'message': error}), 400

    if not updates:
        return jsonify({'message': 'No fields to update'}), 400

    for field, value in updates.items():
        setattr(answer_type, field, value)
    db.session.commit()

    return jsonify({'message': 'Answer type updated', 'data': answer_type.to_dict()})


# DELETE AN ANSWER TYPE
@answer_types_bp.route('', methods=['DELETE'])
@require_auth
@require_admin
def delete_answer_type():
    data = request.get_json(silent=True) or {}
    answer_type_id = data.get('id')
    if not answer_type_id:
        return jsonify({'message': 'Answer type id is required'}), 400

    deleted = AnswerType.query.filter_by(id=answer_type_id).delete()
    db.session.commit()
    if not deleted:
        return jsonify({'message': 'Answer type not found'}), 404

    return jsonify({'message': 'Answer type deleted', 'success': True})
