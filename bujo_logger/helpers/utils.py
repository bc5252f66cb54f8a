import jwt
import logging
from flask import request, jsonify, current_app
from functools import wraps
from .. import db
from ..models import Profile
import pytz

logger = logging.getLogger(__name__)

MAX_TIER = 4


def decode_token(token):
    try:
        payload = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=[
                             'HS256'], options={'verify_aud': False})
    except jwt.InvalidTokenError:
        return None
    return payload.get('sub')


def bearer_token():
    header = request.headers.get('Authorization', None)
    if header and header.startswith("Bearer "):
        return header.split(" ", 1)[1]
    return None


def resolve_effective_user(auth_user_id):
    """Returns (user_id, impersonating) for the caller.

    An admin carrying the impersonation cookie acts as the target user.
    """
    target = request.cookies.get(current_app.config['IMPERSONATION_COOKIE'])
    if target and target != auth_user_id:
        caller = db.session.get(Profile, auth_user_id)
        if caller and caller.is_admin:
            return target, True
    return auth_user_id, False


def require_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({'message': 'Missing or invalid token'}), 401

        user_id = decode_token(token)
        if not user_id:
            return jsonify({'message': 'Invalid or expired token'}), 401

        request.auth_user_id = user_id
        request.user_id, request.impersonating = resolve_effective_user(
            user_id)
        return f(*args, **kwargs)
    return decorated


def is_admin(user_id):
    profile = db.session.get(Profile, user_id)
    return bool(profile and profile.is_admin)


def require_admin(f):
    """Must be stacked under require_auth. Checks the real caller, never the impersonated user."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not is_admin(request.auth_user_id):
            return jsonify({'message': 'Forbidden', 'errorCode': 'admin'}), 403
        return f(*args, **kwargs)
    return decorated


def is_effective_admin():
    if request.impersonating:
        return False
    if request.cookies.get(current_app.config['VIEW_OVERRIDE_COOKIE']) == 'user':
        return False
    return is_admin(request.auth_user_id)


def get_account_tier(user_id):
    if is_effective_admin():
        return MAX_TIER

    profile = db.session.get(Profile, user_id)
    if profile is None:
        return 0
    if profile.is_admin:
        return MAX_TIER
    return profile.account_tier or 0


def get_or_create_profile(user_id):
    profile = db.session.get(Profile, user_id)
    if profile is None:
        profile = Profile(user_id=user_id)
        db.session.add(profile)
    return profile


def convert_utc_to_local(utc_dt, timezone_str):
    if timezone_str not in pytz.all_timezones_set:
        raise ValueError(f"Invalid timezone: {timezone_str}")

    local_tz = pytz.timezone(timezone_str)
    utc_dt = utc_dt.replace(tzinfo=pytz.utc)
    local_dt = utc_dt.astimezone(local_tz)
    return local_dt
