from flask import Blueprint, request, jsonify
from .. import db
from ..models import Profile
from ..helpers.utils import require_auth, get_or_create_profile
from ..helpers.validation import (ValidationError, is_five_minute_increment, normalize_palette,
                                  CHART_STYLES, DATE_FORMATS)
import pytz

profile_bp = Blueprint('profile', __name__)


def validate_profile_updates(data):
    """Checks every supplied field and returns the column updates.

    Raises ValidationError on the first bad field, before anything is written.
    """
    updates = {}

    if 'reminder_time' in data:
        reminder_time = data['reminder_time']
        if reminder_time is not None:
            if not is_five_minute_increment(reminder_time):
                raise ValidationError(
                    'Reminder time must be in 5-minute increments (HH:MM).', 'reminderTime')
            reminder_time = reminder_time[:5]
        updates['reminder_time'] = reminder_time

    if 'timezone' in data:
        tz = data['timezone']
        if tz not in pytz.all_timezones_set:
            raise ValidationError('Invalid time zone', 'timezone')
        updates['timezone'] = tz

    if 'push_opt_in' in data:
        if not isinstance(data['push_opt_in'], bool):
            raise ValidationError(
                'push_opt_in must be a boolean', 'pushOptIn')
        updates['push_opt_in'] = data['push_opt_in']

    if 'account_tier' in data:
        tier = data['account_tier']
        if isinstance(tier, bool) or not isinstance(tier, int) or not 0 <= tier <= 4:
            raise ValidationError(
                'Account tier must be an integer between 0 and 4', 'accountTier')
        updates['account_tier'] = tier

    if 'chart_palette' in data:
        updates['chart_palette'] = normalize_palette(data['chart_palette'])

    if 'chart_style' in data:
        style = data['chart_style']
        if style is not None and style not in CHART_STYLES:
            raise ValidationError(
                'chart_style must be one of gradient, brush, or solid.', 'chartStyle')
        updates['chart_style'] = style

    if 'date_format' in data:
        if data['date_format'] not in DATE_FORMATS:
            raise ValidationError(
                'date_format must be one of mdy, dmy, ymd.', 'dateFormat')
        updates['date_format'] = data['date_format']

    return updates


# GET PROFILE
@profile_bp.route('', methods=['GET'])
@require_auth
def get_profile():
    profile = db.session.get(Profile, request.user_id)
    if not profile:
        return jsonify({'message': 'Profile not found'}), 404

    return jsonify({
        'message': 'Profile retrieved successfully',
        'data': profile.to_dict()
    })


# UPDATE PROFILE, CREATING IT ON FIRST WRITE
@profile_bp.route('', methods=['PUT'])
@require_auth
def update_profile():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'message': 'Request body must be a JSON object'}), 400

    try:
        updates = validate_profile_updates(data)
    except ValidationError as e:
        return jsonify({'message': e.message, 'errorCode': e.error_code}), 400

    profile = get_or_create_profile(request.user_id)
    for field, value in updates.items():
        setattr(profile, field, value)
    db.session.commit()

    return jsonify({
        'message': 'Profile updated successfully',
        'data': profile.to_dict()
    })
