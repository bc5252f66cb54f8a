from flask import Blueprint, request, jsonify
from datetime import date
from .. import db
from ..models import Answer
from ..helpers.utils import require_auth, get_or_create_profile
import json

answers_bp = Blueprint('answers', __name__)


def parse_date(value):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def answer_columns(answer_type, value):
    """Maps a submitted value onto the type-specific answer column."""
    columns = {'bool_value': None, 'number_value': None,
               'scale_value': None, 'text_value': None}

    if answer_type == 'boolean':
        columns['bool_value'] = bool(value)
    elif answer_type == 'number':
        columns['number_value'] = float(value)
    elif answer_type == 'scale':
        columns['scale_value'] = int(value)
    elif answer_type == 'multi_choice':
        if value is None:
            value = []
        elif not isinstance(value, list):
            value = [value]
        columns['text_value'] = json.dumps([str(v) for v in value])
    else:
        columns['text_value'] = '' if value is None else str(value)

    return columns


# GET ANSWERS, OPTIONALLY BOUNDED BY start/end DATES
@answers_bp.route('', methods=['GET'])
@require_auth
def get_answers():
    query = Answer.query.filter_by(user_id=request.user_id)

    start = request.args.get('start')
    end = request.args.get('end')
    if start:
        if parse_date(start) is None:
            return jsonify({'message': 'start must be a YYYY-MM-DD date', 'errorCode': 'start'}), 400
        query = query.filter(Answer.question_date >= parse_date(start))
    if end:
        if parse_date(end) is None:
            return jsonify({'message': 'end must be a YYYY-MM-DD date', 'errorCode': 'end'}), 400
        query = query.filter(Answer.question_date <= parse_date(end))

    answers = query.order_by(Answer.question_date.desc()).all()
    return jsonify({
        'message': 'Answers retrieved successfully',
        'data': [a.to_dict() for a in answers]
    })


# SAVE A DAY'S ANSWERS
@answers_bp.route('', methods=['POST'])
@require_auth
def save_answers():
    data = request.get_json(silent=True) or {}
    question_date = parse_date(data.get('question_date'))
    if question_date is None:
        return jsonify({'message': 'question_date must be a YYYY-MM-DD date', 'errorCode': 'questionDate'}), 400

    submitted = data.get('answers')
    if not isinstance(submitted, list):
        return jsonify({'message': 'answers must be a list', 'errorCode': 'answers'}), 400

    rows = []
    for item in submitted:
        if not isinstance(item, dict) or not item.get('template_id'):
            return jsonify({'message': 'Each answer needs a template_id', 'errorCode': 'answers'}), 400
        try:
            columns = answer_columns(item.get('type'), item.get('value'))
        except (TypeError, ValueError):
            return jsonify({'message': f"Invalid value for template {item['template_id']}", 'errorCode': 'answers'}), 400
        rows.append((item, columns))

    get_or_create_profile(request.user_id)

    for item, columns in rows:
        answer = Answer.query.filter_by(
            user_id=request.user_id,
            template_id=item['template_id'],
            question_date=question_date).first()
        if answer is None:
            answer = Answer(user_id=request.user_id,
                            template_id=item['template_id'], question_date=question_date)
            db.session.add(answer)

        for field, value in columns.items():
            setattr(answer, field, value)
        answer.answer_type_id = item.get('answer_type_id')
        answer.prompt_snapshot = item.get('prompt_snapshot')
        answer.category_snapshot = item.get('category_snapshot')

    db.session.commit()

    return jsonify({'message': 'Answers saved', 'success': True})
