from dotenv import load_dotenv
import os

load_dotenv()


class Config:
    SECRET_KEY = os.environ['SECRET_KEY']
    SQLALCHEMY_DATABASE_URI = os.environ['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CRON_SECRET = os.environ.get('CRON_SECRET')
    VAPID_PUBLIC_KEY = os.environ.get('VAPID_PUBLIC_KEY')
    VAPID_PRIVATE_KEY = os.environ.get('VAPID_PRIVATE_KEY')
    VAPID_SUBJECT = os.environ.get('VAPID_SUBJECT', 'mailto:admin@example.com')
    REDIS_URL = os.environ.get('REDIS_URL')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '60 per minute')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    IMPERSONATION_COOKIE = 'bulletjournal_impersonated_user_id'
    VIEW_OVERRIDE_COOKIE = 'admin_view_override'
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', '0') == '1'
    DEV_MODE = os.environ.get('DEV_MODE', '0') == '1'
