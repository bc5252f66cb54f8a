"""Reminder dispatch: decides which push subscriptions are due and sends them.

Runs once per external scheduler tick. Subscriptions are handled one at a time
and a failed delivery never aborts the rest of the batch. Overlapping runs are
not coordinated, so two ticks inside the same window can both send.
"""
import json
import logging
from datetime import datetime, timezone

from pywebpush import webpush

from ..models import Profile, PushSubscription
from ..helpers.utils import convert_utc_to_local

logger = logging.getLogger(__name__)

DUE_WINDOW_MINUTES = 5
GONE_STATUS_CODES = (400, 404, 410)

REMINDER_PAYLOAD = {
    'title': 'Time to log your day',
    'body': 'Tap to answer today’s questions.',
    'data': {'url': '/journal'},
}


def parse_reminder_time(value):
    """'HH:MM' (optionally ':SS') -> (hour, minute), or None if unusable."""
    if not value or not isinstance(value, str):
        return None
    parts = value.split(':')
    if len(parts) < 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def is_due(local_hour, local_minute, reminder_hour, reminder_minute):
    diff = (local_hour * 60 + local_minute) - \
        (reminder_hour * 60 + reminder_minute)
    return 0 <= diff < DUE_WINDOW_MINUTES


def is_subscription_due(profile, now_utc):
    reminder = parse_reminder_time(profile.reminder_time)
    if reminder is None:
        return False

    tz = profile.timezone or 'UTC'
    try:
        local = convert_utc_to_local(now_utc, tz)
    except ValueError:
        logger.warning("Skipping reminder for %s: unknown timezone %r",
                       profile.user_id, tz)
        return False

    return is_due(local.hour, local.minute, *reminder)


def find_due_subscriptions(session, now_utc):
    rows = (session.query(PushSubscription, Profile)
            .join(Profile, PushSubscription.user_id == Profile.user_id)
            .filter(Profile.push_opt_in.is_(True))
            .all())
    return [sub for sub, profile in rows if is_subscription_due(profile, now_utc)]


def error_status_code(exc):
    response = getattr(exc, 'response', None)
    status_code = getattr(response, 'status_code', None)
    if status_code is None:
        status_code = getattr(exc, 'status_code', None)
    return status_code


def build_push_sender(vapid_private_key, vapid_subject):
    def send(subscription, payload):
        webpush(
            subscription_info=subscription.subscription_info(),
            data=json.dumps(payload),
            vapid_private_key=vapid_private_key,
            vapid_claims={'sub': vapid_subject},
        )
    return send


def dispatch_reminders(session, send, now_utc=None):
    """Sends reminders for every due subscription.

    `send(subscription, payload)` delivers one message and raises on failure.
    Returns {'sent': int, 'results': [...]} for whoever triggered the run.
    """
    if now_utc is None:
        now_utc = datetime.now(timezone.utc)

    due = find_due_subscriptions(session, now_utc)
    results = []
    removed = 0

    for subscription in due:
        endpoint = subscription.endpoint
        try:
            send(subscription, REMINDER_PAYLOAD)
        except Exception as e:
            status_code = error_status_code(e)
            should_remove = status_code in GONE_STATUS_CODES
            if should_remove:
                session.query(PushSubscription).filter_by(
                    endpoint=endpoint).delete(synchronize_session=False)
                removed += 1

            logger.warning("Push to %s failed (status %s, removed=%s): %s",
                           endpoint, status_code, should_remove, e)
            result = {'endpoint': endpoint,
                      'status': 'error', 'message': str(e)}
            if should_remove:
                result['removed'] = True
            if status_code is not None:
                result['statusCode'] = status_code
            results.append(result)
            continue

        results.append({'endpoint': endpoint, 'status': 'sent'})

    if removed:
        session.commit()

    sent = sum(1 for r in results if r['status'] == 'sent')
    logger.info("Reminder run: %d due, %d sent, %d removed",
                len(due), sent, removed)
    return {'sent': sent, 'results': results}
