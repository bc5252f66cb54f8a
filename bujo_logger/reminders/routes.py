from flask import Blueprint, request, jsonify, current_app
from .. import db
from .dispatcher import dispatch_reminders, build_push_sender
import hmac
import logging

cron_bp = Blueprint('cron', __name__)
logger = logging.getLogger(__name__)


def cron_authorized():
    secret = current_app.config.get('CRON_SECRET')
    if not secret:
        return False
    header = request.headers.get('Authorization', '')
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


# SEND DUE REMINDERS, CALLED BY THE EXTERNAL SCHEDULER
@cron_bp.route('', methods=['POST'])
def run_reminders():
    if not cron_authorized():
        return jsonify({'message': 'Unauthorized'}), 401

    public_key = current_app.config.get('VAPID_PUBLIC_KEY')
    private_key = current_app.config.get('VAPID_PRIVATE_KEY')
    if not public_key or not private_key:
        logger.error("Reminder run aborted: VAPID key pair is not configured")
        return jsonify({'message': 'Missing VAPID keys'}), 500

    sender = build_push_sender(
        private_key, current_app.config['VAPID_SUBJECT'])
    summary = dispatch_reminders(db.session, sender)
    return jsonify(summary)
