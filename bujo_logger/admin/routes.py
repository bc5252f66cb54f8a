from flask import Blueprint, request, jsonify, current_app
from .. import db
from ..models import Profile, PushSubscription, ThemeDefaults
from ..helpers.utils import require_auth, require_admin, get_or_create_profile, MAX_TIER
from ..helpers.validation import (ValidationError, normalize_palette, merge_palette,
                                  normalize_chart_style, CHART_STYLES, DEFAULT_CHART_STYLE)
import logging

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)

COOKIE_MAX_AGE = 60 * 60 * 24 * 7
SUBSCRIPTION_LIST_LIMIT = 500


def set_admin_cookie(response, name, value):
    response.set_cookie(
        name,
        value,
        max_age=COOKIE_MAX_AGE,
        path='/',
        httponly=True,
        secure=current_app.config.get('SESSION_COOKIE_SECURE', False),
        samesite='Lax'
    )


# START OR STOP VIEWING AS ANOTHER USER
@admin_bp.route('/impersonate', methods=['POST'])
@require_auth
@require_admin
def impersonate():
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    target_user_id = data.get('targetUserId')
    cookie_name = current_app.config['IMPERSONATION_COOKIE']

    if action == 'start' and isinstance(target_user_id, str) and target_user_id:
        if target_user_id == request.auth_user_id:
            return jsonify({'message': 'Cannot impersonate yourself'}), 400

        # users who never saved settings get the default profile
        get_or_create_profile(target_user_id)
        db.session.commit()

        response = jsonify({
            'success': True,
            'message': 'Impersonation started',
            'impersonating': target_user_id
        })
        set_admin_cookie(response, cookie_name, target_user_id)
        response.delete_cookie(current_app.config['VIEW_OVERRIDE_COOKIE'])
        logger.info("Admin %s started impersonating %s",
                    request.auth_user_id, target_user_id)
        return response

    if action == 'stop':
        response = jsonify({'success': True, 'message': 'Impersonation stopped'})
        response.delete_cookie(cookie_name)
        logger.info("Admin %s stopped impersonating", request.auth_user_id)
        return response

    return jsonify({'message': 'Invalid action or missing targetUserId'}), 400


@admin_bp.route('/impersonate', methods=['GET'])
@require_auth
@require_admin
def impersonation_status():
    target_user_id = request.cookies.get(
        current_app.config['IMPERSONATION_COOKIE'])
    if not target_user_id:
        return jsonify({'isImpersonating': False})

    profile = db.session.get(Profile, target_user_id)
    return jsonify({
        'isImpersonating': True,
        'impersonatedUser': profile.to_dict() if profile else None
    })


# SWITCH BETWEEN ADMIN AND USER VIEW
@admin_bp.route('/toggle-view', methods=['POST'])
@require_auth
@require_admin
def toggle_view():
    cookie_name = current_app.config['VIEW_OVERRIDE_COOKIE']
    current = request.cookies.get(cookie_name)
    new_mode = 'admin' if current == 'user' else 'user'

    response = jsonify({
        'success': True,
        'viewMode': new_mode,
        'message': f'Switched to {new_mode} view'
    })
    set_admin_cookie(response, cookie_name, new_mode)
    return response


@admin_bp.route('/toggle-view', methods=['GET'])
@require_auth
@require_admin
def view_mode():
    current = request.cookies.get(
        current_app.config['VIEW_OVERRIDE_COOKIE']) or 'admin'
    return jsonify({'viewMode': current, 'isAdmin': current == 'admin'})


# LIST USERS
@admin_bp.route('/users', methods=['GET'])
@require_auth
@require_admin
def list_users():
    profiles = Profile.query.order_by(Profile.created_at.desc()).all()
    return jsonify({
        'message': 'Users retrieved successfully',
        'data': [p.to_dict() for p in profiles]
    })


# GRANT/REVOKE ADMIN OR SET ACCOUNT TIER
@admin_bp.route('/users', methods=['PUT'])
@require_auth
@require_admin
def update_user():
    data = request.get_json(silent=True) or {}
    user_id = data.get('user_id')
    if not user_id or not isinstance(user_id, str):
        return jsonify({'message': 'user_id is required'}), 400

    if 'is_admin' not in data and 'account_tier' not in data:
        return jsonify({'message': 'No fields to update'}), 400

    if 'is_admin' in data:
        if not isinstance(data['is_admin'], bool):
            return jsonify({'message': 'is_admin must be boolean'}), 400
        if not data['is_admin'] and user_id == request.auth_user_id:
            return jsonify({'message': 'You cannot remove your own admin access.'}), 400

    if 'account_tier' in data:
        tier = data['account_tier']
        if isinstance(tier, bool) or not isinstance(tier, int) or not 0 <= tier <= MAX_TIER:
            return jsonify({'message': 'account_tier must be an integer between 0 and 4'}), 400

    profile = db.session.get(Profile, user_id)
    if profile is None:
        return jsonify({'message': 'User not found.'}), 404

    if 'is_admin' in data:
        profile.is_admin = data['is_admin']
    if 'account_tier' in data:
        profile.account_tier = data['account_tier']
    db.session.commit()

    logger.info("Admin %s updated user %s (is_admin=%s, account_tier=%s)",
                request.auth_user_id, user_id, profile.is_admin, profile.account_tier)
    return jsonify({'success': True, 'profile': profile.to_dict()})


# INSPECT PUSH SUBSCRIPTIONS
@admin_bp.route('/push-subscriptions', methods=['GET'])
@require_auth
@require_admin
def list_push_subscriptions():
    subscriptions = (PushSubscription.query
                     .order_by(PushSubscription.created_at.desc())
                     .limit(SUBSCRIPTION_LIST_LIMIT)
                     .all())

    return jsonify({
        'message': 'Subscriptions retrieved successfully',
        'data': [{
            'id': s.id,
            'user_id': s.user_id,
            'endpoint': s.endpoint,
            'ua': s.ua,
            'created_at': s.created_at.isoformat() if s.created_at else None,
            'profiles': {
                'timezone': s.profile.timezone,
                'reminder_time': s.profile.reminder_time,
                'push_opt_in': s.profile.push_opt_in
            } if s.profile else None
        } for s in subscriptions]
    })


@admin_bp.route('/push-subscriptions', methods=['DELETE'])
@require_auth
@require_admin
def delete_push_subscription():
    data = request.get_json(silent=True) or {}
    subscription_id = data.get('id')
    if not subscription_id:
        return jsonify({'message': 'Subscription id is required'}), 400

    PushSubscription.query.filter_by(id=subscription_id).delete()
    db.session.commit()

    return jsonify({'success': True})


def current_theme_defaults():
    row = db.session.get(ThemeDefaults, 1)
    return {
        'chart_palette': merge_palette(row.chart_palette if row else None),
        'chart_style': normalize_chart_style(row.chart_style if row else None)
    }


# GLOBAL CHART THEME
@admin_bp.route('/theme-defaults', methods=['GET'])
@require_auth
@require_admin
def get_theme_defaults():
    return jsonify(current_theme_defaults())


@admin_bp.route('/theme-defaults', methods=['PUT'])
@require_auth
@require_admin
def update_theme_defaults():
    data = request.get_json(silent=True) or {}
    existing = current_theme_defaults()

    palette = existing['chart_palette']
    if 'chart_palette' in data:
        try:
            palette = merge_palette(normalize_palette(data['chart_palette']))
        except ValidationError as e:
            return jsonify({'message': e.message}), 400

    style = existing['chart_style']
    if 'chart_style' in data:
        style = data['chart_style']
        if style is None:
            style = DEFAULT_CHART_STYLE
        elif style not in CHART_STYLES:
            return jsonify({'message': 'chart_style must be one of gradient, brush, or solid.'}), 400

    row = db.session.get(ThemeDefaults, 1)
    if row is None:
        row = ThemeDefaults(id=1)
        db.session.add(row)
    row.chart_palette = palette
    row.chart_style = style
    db.session.commit()

    return jsonify({'success': True, 'chart_palette': palette, 'chart_style': style})
