from flask import Flask, request, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from werkzeug.middleware.proxy_fix import ProxyFix
import logging
import jwt

db = SQLAlchemy()
logger = logging.getLogger(__name__)


def create_app(config_class=None):
    if config_class is None:
        from .config import Config
        config_class = Config

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    CORS(app, supports_credentials=True)
    db.init_app(app)

    def get_user_or_ip():
        token = request.headers.get('Authorization', None)
        if token and token.startswith("Bearer "):
            token = token.split(" ", 1)[1]
            try:
                return jwt.decode(token, app.config['SECRET_KEY'], algorithms=[
                                  'HS256'], options={'verify_aud': False})['sub']
            except (jwt.InvalidTokenError, KeyError):
                pass
        return get_remote_address()

    limiter_options = {
        "key_func": get_user_or_ip,
        "strategy": "fixed-window",
        "headers_enabled": True,
        "default_limits": [app.config.get('RATELIMIT_DEFAULT', '60 per minute')],
        "app": app
    }

    redis_url = app.config.get('REDIS_URL')
    if redis_url:
        limiter_options["strategy"] = "moving-window"
        limiter_options["storage_uri"] = redis_url

    limiter = Limiter(**limiter_options)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit_exceeded(e):
        return jsonify({
            'message': 'Rate limit exceeded',
            'error': 'too_many_requests',
            'status_code': 429
        }), 429

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        logger.warning("Integrity error: %s", e.orig)
        return jsonify({'message': str(e.orig), 'errorCode': 'integrity'}), 400

    with app.app_context():
        from .reminders.routes import cron_bp
        from .profile.routes import profile_bp
        from .push.routes import push_bp
        from .answers.routes import answers_bp
        from .export.routes import export_bp
        from .questions.routes import questions_bp
        from .user_questions.routes import user_questions_bp
        from .answer_types.routes import answer_types_bp
        from .categories.routes import categories_bp
        from .admin.routes import admin_bp

        limiter.exempt(cron_bp)

        app.register_blueprint(cron_bp, url_prefix='/api/v1/cron')
        app.register_blueprint(profile_bp, url_prefix='/api/v1/profile')
        app.register_blueprint(push_bp, url_prefix='/api/v1/push')
        app.register_blueprint(answers_bp, url_prefix='/api/v1/answers')
        app.register_blueprint(export_bp, url_prefix='/api/v1/export')
        app.register_blueprint(
            questions_bp, url_prefix='/api/v1/question-templates')
        app.register_blueprint(user_questions_bp,
                               url_prefix='/api/v1/user-questions')
        app.register_blueprint(answer_types_bp,
                               url_prefix='/api/v1/answer-types')
        app.register_blueprint(categories_bp, url_prefix='/api/v1/categories')
        app.register_blueprint(admin_bp, url_prefix='/api/v1/admin')

        from . import models
        db.create_all()

        @app.route('/api/v1/')
        @limiter.exempt
        def server():
            return jsonify({'message': 'server running', 'dev_mode': app.config.get('DEV_MODE', False)})

    return app
