"""
Pytest configuration and shared fixtures for bujo_logger tests.
"""
import os
import sys
from pathlib import Path

import jwt
import pytest

# Set required environment variables before importing app modules
os.environ.setdefault('SECRET_KEY', 'test_jwt_secret_for_testing')
os.environ.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite://')

# Make the package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))

from bujo_logger import create_app, db  # noqa: E402
from bujo_logger.config import Config  # noqa: E402
from bujo_logger.models import Profile  # noqa: E402


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test_jwt_secret_for_testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    CRON_SECRET = 'cron_secret_for_testing'
    VAPID_PUBLIC_KEY = 'test_vapid_public'
    VAPID_PRIVATE_KEY = 'test_vapid_private'
    VAPID_SUBJECT = 'mailto:test@example.com'
    LOG_LEVEL = 'WARNING'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(user_id):
    return jwt.encode({'sub': user_id, 'aud': 'authenticated'}, TestConfig.SECRET_KEY, algorithm='HS256')


@pytest.fixture
def auth_headers():
    """Factory: auth_headers('user-1') -> Authorization header for that user"""
    def _headers(user_id):
        return {'Authorization': f'Bearer {make_token(user_id)}'}
    return _headers


@pytest.fixture
def make_profile(app):
    """Factory for persisted profiles"""
    def _make(user_id, **fields):
        profile = Profile(user_id=user_id, **fields)
        db.session.add(profile)
        db.session.commit()
        return profile
    return _make
