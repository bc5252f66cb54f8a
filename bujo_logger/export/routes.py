from flask import Blueprint, request, Response, stream_with_context
from ..models import Answer
from ..helpers.utils import require_auth
import csv
import io
import json

export_bp = Blueprint('export', __name__)

CSV_HEADERS = ['date', 'question', 'category', 'type',
               'value', 'prompt_snapshot', 'category_snapshot']


def display_value(answer, answer_type):
    if answer_type == 'multi_choice' and answer.text_value:
        try:
            parsed = json.loads(answer.text_value)
        except ValueError:
            return answer.text_value
        if isinstance(parsed, list):
            return ', '.join(str(v) for v in parsed)
        return answer.text_value

    if answer_type in ('single_choice', 'text'):
        return answer.text_value or ''

    for value in (answer.bool_value, answer.number_value, answer.scale_value, answer.text_value):
        if value is not None:
            return format_scalar(value)
    return ''


def format_scalar(value):
    # true/false and 5 rather than True/False and 5.0
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def csv_row(answer):
    template = answer.template
    answer_type = answer.type_tag
    return [
        answer.question_date.isoformat(),
        template.title if template else '',
        template.category.name if template and template.category else '',
        answer_type,
        display_value(answer, answer_type),
        answer.prompt_snapshot or '',
        answer.category_snapshot or '',
    ]


def generate_csv(answers):
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')

    writer.writerow(CSV_HEADERS)
    for answer in answers:
        writer.writerow(csv_row(answer))
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
    yield buffer.getvalue()


# DOWNLOAD ALL ANSWERS AS CSV
@export_bp.route('', methods=['GET'])
@require_auth
def export_answers():
    answers = (Answer.query
               .filter_by(user_id=request.user_id)
               .order_by(Answer.question_date.desc())
               .all())

    return Response(
        stream_with_context(generate_csv(answers)),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename="answers.csv"'}
    )
