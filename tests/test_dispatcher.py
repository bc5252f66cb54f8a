"""Tests for the reminder due-time computation and dispatch"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from bujo_logger import db
from bujo_logger.models import PushSubscription
from bujo_logger.reminders.dispatcher import (
    REMINDER_PAYLOAD,
    build_push_sender,
    dispatch_reminders,
    find_due_subscriptions,
    is_due,
    parse_reminder_time,
)

# 2024-06-03 is inside US daylight saving time: New York is UTC-4
NY_14_32 = datetime(2024, 6, 3, 18, 32, tzinfo=timezone.utc)
NY_14_36 = datetime(2024, 6, 3, 18, 36, tzinfo=timezone.utc)


class PushFailure(Exception):
    def __init__(self, status_code):
        super().__init__(f'push service returned {status_code}')
        self.response = MagicMock(status_code=status_code)


def add_subscription(user_id, endpoint):
    subscription = PushSubscription(
        user_id=user_id, endpoint=endpoint, p256dh='p256dh-key', auth='auth-key')
    db.session.add(subscription)
    db.session.commit()
    return subscription


class RecordingSender:
    def __init__(self, failures=None):
        self.failures = failures or {}
        self.sent = []

    def __call__(self, subscription, payload):
        if subscription.endpoint in self.failures:
            raise self.failures[subscription.endpoint]
        self.sent.append((subscription.endpoint, payload))


class TestIsDue:
    """The due window starts at the reminder time and lasts five minutes"""

    @pytest.mark.parametrize('local, expected', [
        ((9, 0), True),
        ((9, 4), True),
        ((9, 5), False),
        ((8, 59), False),
        ((21, 0), False),
    ])
    def test_window_around_nine(self, local, expected):
        assert is_due(local[0], local[1], 9, 0) is expected

    def test_window_within_the_hour(self):
        assert is_due(14, 32, 14, 30) is True
        assert is_due(14, 35, 14, 30) is False

    def test_no_wraparound_past_midnight(self):
        assert is_due(0, 2, 23, 58) is False


class TestParseReminderTime:

    def test_parses_hours_and_minutes(self):
        assert parse_reminder_time('07:45') == (7, 45)

    def test_ignores_seconds(self):
        assert parse_reminder_time('07:45:00') == (7, 45)

    @pytest.mark.parametrize('value', [None, '', 'soon', 'ab:cd', '0930'])
    def test_unusable_values(self, value):
        assert parse_reminder_time(value) is None


class TestFindDueSubscriptions:

    def test_opted_out_profiles_are_never_due(self, make_profile):
        make_profile('opted-in', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        make_profile('opted-out', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=False)
        add_subscription('opted-in', 'https://push.example/in')
        add_subscription('opted-out', 'https://push.example/out')

        due = find_due_subscriptions(db.session, NY_14_32)

        assert [s.endpoint for s in due] == ['https://push.example/in']

    def test_missing_timezone_defaults_to_utc(self, make_profile):
        profile = make_profile('utc-user', reminder_time='18:30', push_opt_in=True)
        profile.timezone = None
        db.session.commit()
        add_subscription('utc-user', 'https://push.example/utc')

        due = find_due_subscriptions(db.session, NY_14_32)

        assert len(due) == 1

    def test_unknown_timezone_is_skipped(self, make_profile):
        make_profile('lost', timezone='Mars/Olympus_Mons',
                     reminder_time='18:30', push_opt_in=True)
        add_subscription('lost', 'https://push.example/lost')

        assert find_due_subscriptions(db.session, NY_14_32) == []

    def test_missing_reminder_time_is_skipped(self, make_profile):
        profile = make_profile('no-time', push_opt_in=True)
        profile.reminder_time = None
        db.session.commit()
        add_subscription('no-time', 'https://push.example/none')

        assert find_due_subscriptions(db.session, NY_14_32) == []


class TestDispatchReminders:

    def test_new_york_scenario(self, make_profile):
        make_profile('ny', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        add_subscription('ny', 'https://push.example/ny')
        sender = RecordingSender()

        first = dispatch_reminders(db.session, sender, now_utc=NY_14_32)
        second = dispatch_reminders(db.session, sender, now_utc=NY_14_36)

        assert first == {'sent': 1, 'results': [
            {'endpoint': 'https://push.example/ny', 'status': 'sent'}]}
        assert second == {'sent': 0, 'results': []}
        assert sender.sent == [('https://push.example/ny', REMINDER_PAYLOAD)]

    def test_gone_subscription_is_removed(self, make_profile):
        make_profile('ny', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        add_subscription('ny', 'https://push.example/gone')
        add_subscription('ny', 'https://push.example/ok')
        sender = RecordingSender(
            failures={'https://push.example/gone': PushFailure(410)})

        summary = dispatch_reminders(db.session, sender, now_utc=NY_14_32)

        remaining = [s.endpoint for s in PushSubscription.query.all()]
        assert remaining == ['https://push.example/ok']
        assert summary['sent'] == 1
        failed = [r for r in summary['results'] if r['status'] == 'error'][0]
        assert failed['endpoint'] == 'https://push.example/gone'
        assert failed['removed'] is True
        assert failed['statusCode'] == 410

    @pytest.mark.parametrize('status_code', [400, 404])
    def test_other_permanent_failures_remove(self, make_profile, status_code):
        make_profile('ny', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        add_subscription('ny', 'https://push.example/bad')

        dispatch_reminders(db.session, RecordingSender(
            failures={'https://push.example/bad': PushFailure(status_code)}), now_utc=NY_14_32)

        assert PushSubscription.query.count() == 0

    def test_transient_failure_keeps_subscription(self, make_profile):
        make_profile('ny', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        add_subscription('ny', 'https://push.example/flaky')
        sender = RecordingSender(
            failures={'https://push.example/flaky': PushFailure(500)})

        summary = dispatch_reminders(db.session, sender, now_utc=NY_14_32)

        assert PushSubscription.query.count() == 1
        assert summary['sent'] == 0
        assert summary['results'] == [{
            'endpoint': 'https://push.example/flaky',
            'status': 'error',
            'message': 'push service returned 500',
            'statusCode': 500
        }]

    def test_error_without_status_is_reported(self, make_profile):
        make_profile('ny', timezone='America/New_York',
                     reminder_time='14:30', push_opt_in=True)
        add_subscription('ny', 'https://push.example/offline')
        sender = RecordingSender(
            failures={'https://push.example/offline': ConnectionError('network down')})

        summary = dispatch_reminders(db.session, sender, now_utc=NY_14_32)

        assert summary['results'] == [{
            'endpoint': 'https://push.example/offline',
            'status': 'error',
            'message': 'network down'
        }]
        assert PushSubscription.query.count() == 1

    def test_failure_does_not_abort_batch(self, make_profile):
        make_profile('a', timezone='UTC', reminder_time='18:30', push_opt_in=True)
        make_profile('b', timezone='UTC', reminder_time='18:30', push_opt_in=True)
        add_subscription('a', 'https://push.example/a')
        add_subscription('b', 'https://push.example/b')
        sender = RecordingSender(
            failures={'https://push.example/a': PushFailure(500)})

        summary = dispatch_reminders(db.session, sender, now_utc=NY_14_32)

        assert summary['sent'] == 1
        assert [e for e, _ in sender.sent] == ['https://push.example/b']


class TestPushSender:

    @patch('bujo_logger.reminders.dispatcher.webpush')
    def test_sender_signs_with_vapid(self, mock_webpush, make_profile):
        make_profile('ny')
        subscription = add_subscription('ny', 'https://push.example/ny')

        send = build_push_sender('private-key', 'mailto:ops@example.com')
        send(subscription, REMINDER_PAYLOAD)

        kwargs = mock_webpush.call_args.kwargs
        assert kwargs['subscription_info'] == {
            'endpoint': 'https://push.example/ny',
            'keys': {'p256dh': 'p256dh-key', 'auth': 'auth-key'}
        }
        assert kwargs['vapid_private_key'] == 'private-key'
        assert kwargs['vapid_claims'] == {'sub': 'mailto:ops@example.com'}
        assert '"url": "/journal"' in kwargs['data']
