from flask import Blueprint, request, jsonify
from sqlalchemy import func, or_
from .. import db
from ..models import QuestionTemplate, AnswerType
from ..helpers.utils import require_auth, is_effective_admin, get_account_tier
from ..helpers.validation import DISPLAY_OPTIONS, unique, normalize_display_options
import logging

questions_bp = Blueprint('questions', __name__)
logger = logging.getLogger(__name__)

PERSONAL_TEMPLATE_TIER = 3
PERSONAL_TEMPLATE_LIMIT = 5


def normalize_answer_type_ids(values, default_id):
    if not isinstance(values, list):
        return []
    ids = unique(v for v in values if isinstance(v, int) and not isinstance(v, bool))
    if ids and default_id is not None and default_id not in ids:
        ids.append(default_id)
    return ids


def title_taken(title, owner, exclude_id=None):
    query = QuestionTemplate.query.filter(
        func.lower(QuestionTemplate.title) == title.strip().lower())
    if owner is None:
        query = query.filter(QuestionTemplate.created_by.is_(None))
    else:
        query = query.filter(QuestionTemplate.created_by == owner)
    if exclude_id is not None:
        query = query.filter(QuestionTemplate.id != exclude_id)
    return query.first() is not None


def can_manage(template):
    if is_effective_admin():
        return True
    return template.created_by is not None and template.created_by == request.user_id


# LIST ACTIVE TEMPLATES VISIBLE TO THE CALLER
@questions_bp.route('', methods=['GET'])
@require_auth
def get_templates():
    query = QuestionTemplate.query.filter(
        QuestionTemplate.is_active.is_(True),
        or_(QuestionTemplate.created_by.is_(None),
            QuestionTemplate.created_by == request.user_id))

    category_id = request.args.get('category_id', type=int)
    if category_id is not None:
        query = query.filter(QuestionTemplate.category_id == category_id)

    templates = query.order_by(QuestionTemplate.title.asc()).all()
    return jsonify({
        'message': 'Templates retrieved successfully',
        'data': [t.to_dict() for t in templates]
    })


# CREATE A GLOBAL (ADMIN) OR PERSONAL TEMPLATE
@questions_bp.route('', methods=['POST'])
@require_auth
def create_template():
    data = request.get_json(silent=True) or {}

    if is_effective_admin():
        owner = None
    else:
        tier = get_account_tier(request.user_id)
        if tier < PERSONAL_TEMPLATE_TIER:
            return jsonify({'message': 'Upgrade to create personal questions.', 'errorCode': 'tier'}), 403
        if tier == PERSONAL_TEMPLATE_TIER:
            owned = QuestionTemplate.query.filter_by(
                created_by=request.user_id).count()
            if owned >= PERSONAL_TEMPLATE_LIMIT:
                return jsonify({'message': f'Upgrade to create more than {PERSONAL_TEMPLATE_LIMIT} personal questions.', 'errorCode': 'tier'}), 403
        owner = request.user_id

    title = (data.get('title') or '').strip()
    if not title:
        return jsonify({'message': 'Title is required', 'errorCode': 'title'}), 400

    answer_type_id = data.get('answer_type_id')
    if not answer_type_id:
        return jsonify({'message': 'answer_type_id is required', 'errorCode': 'answerType'}), 400
    if db.session.get(AnswerType, answer_type_id) is None:
        return jsonify({'message': 'Answer type not found', 'errorCode': 'answerType'}), 404

    if title_taken(title, owner):
        return jsonify({'message': 'A question with this title already exists', 'errorCode': 'title'}), 400

    default_display = data.get('default_display_option')
    if default_display not in DISPLAY_OPTIONS:
        default_display = 'graph'

    display_options = normalize_display_options(
        data.get('allowed_display_options')) or [default_display]
    if default_display not in display_options:
        display_options.append(default_display)

    default_colors = data.get('default_colors')
    if not isinstance(default_colors, dict):
        default_colors = {}

    template = QuestionTemplate(
        title=title,
        category_id=data.get('category_id'),
        meta=data.get('meta') or {},
        is_active=data.get('is_active', True),
        answer_type_id=answer_type_id,
        allowed_answer_type_ids=normalize_answer_type_ids(
            data.get('allowed_answer_type_ids'), answer_type_id),
        default_display_option=default_display,
        allowed_display_options=display_options,
        default_colors=default_colors,
        created_by=owner
    )
    db.session.add(template)
    db.session.commit()

    logger.info("Template %s created by %s (%s)", template.id,
                request.auth_user_id, 'global' if owner is None else 'personal')
    return jsonify({'message': 'Template created', 'data': template.to_dict()}), 201


# UPDATE A TEMPLATE
@questions_bp.route('', methods=['PUT'])
@require_auth
def update_template():
    data = request.get_json(silent=True) or {}
    template_id = data.get('id')
    if not template_id:
        return jsonify({'message': 'Template id is required'}), 400

    template = db.session.get(QuestionTemplate, template_id)
    if template is None:
        return jsonify({'message': 'Template not found'}), 404
    if not can_manage(template):
        return jsonify({'message': 'Forbidden'}), 403

    updates = {}
    if 'title' in data:
        title = (data['title'] or '').strip()
        if not title:
            return jsonify({'message': 'Title is required', 'errorCode': 'title'}), 400
        if title_taken(title, template.created_by, exclude_id=template.id):
            return jsonify({'message': 'A question with this title already exists', 'errorCode': 'title'}), 400
        updates['title'] = title
    for field in ('category_id', 'meta', 'is_active', 'answer_type_id'):
        if field in data:
            updates[field] = data[field]

    if 'allowed_answer_type_ids' in data:
        target = updates.get('answer_type_id', template.answer_type_id)
        updates['allowed_answer_type_ids'] = normalize_answer_type_ids(
            data['allowed_answer_type_ids'], target)

    if 'default_display_option' in data:
        if data['default_display_option'] not in DISPLAY_OPTIONS:
            return jsonify({'message': 'default_display_option must be one of graph, list, grid, count'}), 400
        updates['default_display_option'] = data['default_display_option']

    target_default = updates.get(
        'default_display_option', template.default_display_option)
    if 'allowed_display_options' in data:
        options = normalize_display_options(data['allowed_display_options'])
        if target_default and target_default not in options:
            options.append(target_default)
        updates['allowed_display_options'] = options
    elif 'default_display_option' in updates:
        current = list(template.allowed_display_options or [])
        if target_default not in current:
            updates['allowed_display_options'] = current + [target_default]

    if 'default_colors' in data:
        colors = data['default_colors']
        if colors is not None and not isinstance(colors, dict):
            return jsonify({'message': 'default_colors must be an object'}), 400
        updates['default_colors'] = colors or {}

    if not updates:
        return jsonify({'message': 'No fields to update'}), 400

    for field, value in updates.items():
        setattr(template, field, value)
    db.session.commit()

    return jsonify({'message': 'Template updated', 'data': template.to_dict()})


# DELETE A TEMPLATE
@questions_bp.route('', methods=['DELETE'])
@require_auth
def delete_template():
    data = request.get_json(silent=True) or {}
    template_id = data.get('id')
    if not template_id:
        return jsonify({'message': 'Template id is required'}), 400

    template = db.session.get(QuestionTemplate, template_id)
    if template is None:
        return jsonify({'message': 'Template not found'}), 404
    if not can_manage(template):
        return jsonify({'message': 'Forbidden'}), 403

    db.session.delete(template)
    db.session.commit()

    return jsonify({'message': 'Template deleted', 'success': True})
