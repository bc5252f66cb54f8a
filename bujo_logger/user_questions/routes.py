from flask import Blueprint, request, jsonify
from .. import db
from ..models import UserQuestion, QuestionTemplate
from ..helpers.utils import require_auth, get_account_tier, get_or_create_profile
from ..helpers.validation import DISPLAY_OPTIONS, filter_palette

user_questions_bp = Blueprint('user_questions', __name__)

FREE_GLOBAL_LIMIT = 3
UNLIMITED_GLOBAL_TIER = 1
COLOR_OVERRIDE_TIER = 2


def allowed_displays(template):
    answer_type = template.answer_type
    default = (answer_type.default_display_option if answer_type else None) or 'graph'
    allowed = answer_type.allowed_display_options if answer_type else None
    return allowed if allowed else [default]


def check_display_override(template, value):
    """Returns an error message, or None if the override is acceptable."""
    if not value:
        return None
    if not isinstance(value, str) or value not in allowed_displays(template):
        return 'display_option_override is not allowed for this question'
    if value not in DISPLAY_OPTIONS:
        return 'display_option_override must be one of graph, list, grid, count'
    return None


def is_global_for(template, user_id):
    return template.created_by is None or template.created_by != user_id


def active_global_count(user_id):
    selections = (UserQuestion.query
                  .filter_by(user_id=user_id, is_active=True)
                  .all())
    return sum(1 for s in selections if s.template is None or is_global_for(s.template, user_id))


# GET THE CALLER'S ACTIVE QUESTIONS
@user_questions_bp.route('', methods=['GET'])
@require_auth
def get_user_questions():
    selections = (UserQuestion.query
                  .filter_by(user_id=request.user_id, is_active=True)
                  .order_by(UserQuestion.sort_order.asc())
                  .all())
    return jsonify({
        'message': 'Questions retrieved successfully',
        'data': [s.to_dict() for s in selections]
    })


# SELECT A QUESTION
@user_questions_bp.route('', methods=['POST'])
@require_auth
def add_user_question():
    data = request.get_json(silent=True) or {}
    template_id = data.get('template_id')
    if not template_id:
        return jsonify({'message': 'template_id is required'}), 400

    template = db.session.get(QuestionTemplate, template_id)
    if template is None:
        return jsonify({'message': 'Template not found'}), 404

    tier = get_account_tier(request.user_id)

    if 'color_palette' in data and tier < COLOR_OVERRIDE_TIER:
        return jsonify({'message': 'Upgrade to use color overrides.', 'errorCode': 'tier'}), 403

    existing = UserQuestion.query.filter_by(
        user_id=request.user_id, template_id=template_id).first()

    if is_global_for(template, request.user_id) and tier < UNLIMITED_GLOBAL_TIER and existing is None:
        if active_global_count(request.user_id) >= FREE_GLOBAL_LIMIT:
            return jsonify({'message': f'Upgrade to select more than {FREE_GLOBAL_LIMIT} global questions.', 'errorCode': 'tier'}), 403

    override = data.get('display_option_override')
    error = check_display_override(template, override)
    if error:
        return jsonify({'message': error}), 400

    get_or_create_profile(request.user_id)
    if existing is None:
        existing = UserQuestion(user_id=request.user_id,
                                template_id=template_id)
        db.session.add(existing)

    existing.custom_label = data.get('custom_label')
    existing.sort_order = data.get('sort_order', 0)
    existing.is_active = True
    existing.display_option_override = override or None
    existing.color_palette = filter_palette(data.get('color_palette'))
    db.session.commit()

    return jsonify({'message': 'Question added', 'data': existing.to_dict()})


# UPDATE A SELECTED QUESTION
@user_questions_bp.route('', methods=['PUT'])
@require_auth
def update_user_question():
    data = request.get_json(silent=True) or {}
    selection_id = data.get('id')
    template_id = data.get('template_id')

    selection = None
    if selection_id:
        selection = UserQuestion.query.filter_by(
            id=selection_id, user_id=request.user_id).first()
        if selection is None:
            return jsonify({'message': 'Question not found'}), 404
        template_id = template_id or selection.template_id
    elif template_id:
        selection = UserQuestion.query.filter_by(
            user_id=request.user_id, template_id=template_id).first()

    if not template_id:
        return jsonify({'message': 'template_id is required'}), 400

    template = db.session.get(QuestionTemplate, template_id)
    if template is None:
        return jsonify({'message': 'Template not found'}), 404

    updates = {}
    for field in ('custom_label', 'sort_order', 'is_active'):
        if field in data:
            updates[field] = data[field]

    if 'display_option_override' in data:
        override = data['display_option_override']
        error = check_display_override(template, override)
        if error:
            return jsonify({'message': error}), 400
        updates['display_option_override'] = override or None

    if 'color_palette' in data:
        if get_account_tier(request.user_id) < COLOR_OVERRIDE_TIER:
            return jsonify({'message': 'Upgrade to use color overrides.', 'errorCode': 'tier'}), 403
        updates['color_palette'] = filter_palette(data['color_palette'])

    if not updates:
        return jsonify({'message': 'No fields to update'}), 400

    if selection is None:
        get_or_create_profile(request.user_id)
        selection = UserQuestion(user_id=request.user_id,
                                 template_id=template_id)
        db.session.add(selection)

    for field, value in updates.items():
        setattr(selection, field, value)
    db.session.commit()

    return jsonify({'message': 'Question updated', 'data': selection.to_dict()})


# REMOVE A SELECTED QUESTION
@user_questions_bp.route('', methods=['DELETE'])
@require_auth
def delete_user_question():
    selection_id = request.args.get('id', type=int)
    if selection_id is None:
        return jsonify({'message': 'Missing id'}), 400

    UserQuestion.query.filter_by(
        id=selection_id, user_id=request.user_id).delete()
    db.session.commit()

    return jsonify({'message': 'Question removed', 'success': True})
