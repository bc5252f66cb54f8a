from flask import Blueprint, request, jsonify
from .. import db
from ..models import PushSubscription
from ..helpers.utils import require_auth, get_or_create_profile

push_bp = Blueprint('push', __name__)


# REGISTER A BROWSER PUSH SUBSCRIPTION
@push_bp.route('', methods=['POST'])
@require_auth
def subscribe():
    data = request.get_json(silent=True) or {}
    endpoint = data.get('endpoint')
    p256dh = data.get('p256dh')
    auth = data.get('auth')

    if not endpoint or not p256dh or not auth:
        return jsonify({'message': 'endpoint, p256dh and auth are required', 'errorCode': 'subscription'}), 400

    get_or_create_profile(request.user_id)

    subscription = PushSubscription.query.filter_by(endpoint=endpoint).first()
    if subscription is None:
        subscription = PushSubscription(endpoint=endpoint)
        db.session.add(subscription)

    subscription.user_id = request.user_id
    subscription.p256dh = p256dh
    subscription.auth = auth
    subscription.ua = data.get('ua')
    db.session.commit()

    return jsonify({'message': 'Subscription saved', 'success': True})


# REMOVE A BROWSER PUSH SUBSCRIPTION
@push_bp.route('', methods=['DELETE'])
@require_auth
def unsubscribe():
    data = request.get_json(silent=True) or {}
    endpoint = data.get('endpoint')
    if not endpoint:
        return jsonify({'message': 'endpoint is required', 'errorCode': 'subscription'}), 400

    deleted = PushSubscription.query.filter_by(
        endpoint=endpoint, user_id=request.user_id).delete()
    db.session.commit()

    if not deleted:
        return jsonify({'message': 'Subscription not found'}), 404
    return jsonify({'message': 'Subscription removed', 'success': True})
