from . import db
from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    return value.isoformat() if value is not None else None


class Profile(db.Model):
    __tablename__ = 'profiles'

    user_id = db.Column(db.String(64), primary_key=True)
    timezone = db.Column(db.String(64), default='UTC')
    reminder_time = db.Column(db.String(5), default='09:00')
    push_opt_in = db.Column(db.Boolean, default=False)
    account_tier = db.Column(db.Integer, nullable=False, default=0)
    is_admin = db.Column(db.Boolean, default=False)
    chart_palette = db.Column(db.JSON, nullable=True)
    chart_style = db.Column(db.String(16), nullable=True)
    date_format = db.Column(db.String(3), default='mdy')
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'timezone': self.timezone,
            'reminder_time': self.reminder_time,
            'push_opt_in': self.push_opt_in,
            'account_tier': self.account_tier,
            'is_admin': self.is_admin,
            'chart_palette': self.chart_palette,
            'chart_style': self.chart_style,
            'date_format': self.date_format,
            'created_at': iso(self.created_at)
        }


class PushSubscription(db.Model):
    __tablename__ = 'push_subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey(
        'profiles.user_id', ondelete='CASCADE'), nullable=False, index=True)
    endpoint = db.Column(db.Text, unique=True, nullable=False)
    p256dh = db.Column(db.Text, nullable=False)
    auth = db.Column(db.Text, nullable=False)
    ua = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    profile = db.relationship('Profile', backref=db.backref(
        'push_subscriptions', passive_deletes=True))

    def subscription_info(self):
        return {
            'endpoint': self.endpoint,
            'keys': {'p256dh': self.p256dh, 'auth': self.auth}
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': iso(self.created_at)
        }


class AnswerType(db.Model):
    __tablename__ = 'answer_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(32), nullable=False)
    items = db.Column(db.JSON, nullable=True)
    meta = db.Column(db.JSON, nullable=False, default=dict)
    default_display_option = db.Column(
        db.String(8), nullable=False, default='graph')
    allowed_display_options = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, default=True)
    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'type': self.type,
            'items': self.items,
            'meta': self.meta or {},
            'default_display_option': self.default_display_option,
            'allowed_display_options': self.allowed_display_options or [],
            'is_active': self.is_active
        }


class QuestionTemplate(db.Model):
    __tablename__ = 'question_templates'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey(
        'categories.id', ondelete='SET NULL'), nullable=True)
    answer_type_id = db.Column(db.Integer, db.ForeignKey(
        'answer_types.id', ondelete='SET NULL'), nullable=True)
    meta = db.Column(db.JSON, nullable=False, default=dict)
    is_active = db.Column(db.Boolean, default=True)
    allowed_answer_type_ids = db.Column(db.JSON, nullable=False, default=list)
    default_display_option = db.Column(
        db.String(8), nullable=False, default='graph')
    allowed_display_options = db.Column(
        db.JSON, nullable=False, default=lambda: ['graph'])
    default_colors = db.Column(db.JSON, nullable=False, default=dict)
    # None for global templates, a user id for personal ones
    created_by = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    category = db.relationship('Category')
    answer_type = db.relationship('AnswerType')

    @property
    def is_global(self):
        return self.created_by is None

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'category_id': self.category_id,
            'answer_type_id': self.answer_type_id,
            'meta': self.meta or {},
            'is_active': self.is_active,
            'allowed_answer_type_ids': self.allowed_answer_type_ids or [],
            'default_display_option': self.default_display_option,
            'allowed_display_options': self.allowed_display_options or [],
            'default_colors': self.default_colors or {},
            'created_by': self.created_by,
            'categories': {'name': self.category.name} if self.category else None,
            'answer_types': self.answer_type.to_dict() if self.answer_type else None
        }


class UserQuestion(db.Model):
    __tablename__ = 'user_questions'
    __table_args__ = (db.UniqueConstraint(
        'user_id', 'template_id', name='uq_user_questions_user_template'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey(
        'profiles.user_id', ondelete='CASCADE'), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey(
        'question_templates.id', ondelete='CASCADE'), nullable=False)
    sort_order = db.Column(db.Integer, default=0)
    custom_label = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    display_option_override = db.Column(db.String(8), nullable=True)
    color_palette = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    template = db.relationship('QuestionTemplate', backref=db.backref(
        'user_questions', cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'template_id': self.template_id,
            'sort_order': self.sort_order,
            'custom_label': self.custom_label,
            'is_active': self.is_active,
            'display_option_override': self.display_option_override,
            'color_palette': self.color_palette,
            'template': self.template.to_dict() if self.template else None
        }


class Answer(db.Model):
    __tablename__ = 'answers'
    __table_args__ = (db.UniqueConstraint(
        'user_id', 'template_id', 'question_date', name='uq_answers_user_template_date'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey(
        'profiles.user_id', ondelete='CASCADE'), nullable=False, index=True)
    template_id = db.Column(db.Integer, db.ForeignKey(
        'question_templates.id', ondelete='SET NULL'), nullable=True)
    answer_type_id = db.Column(db.Integer, db.ForeignKey(
        'answer_types.id', ondelete='SET NULL'), nullable=True)
    question_date = db.Column(db.Date, nullable=False)
    bool_value = db.Column(db.Boolean, nullable=True)
    number_value = db.Column(db.Float, nullable=True)
    scale_value = db.Column(db.Integer, nullable=True)
    text_value = db.Column(db.Text, nullable=True)
    prompt_snapshot = db.Column(db.Text, nullable=True)
    category_snapshot = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    template = db.relationship('QuestionTemplate')
    answer_type = db.relationship('AnswerType')

    @property
    def type_tag(self):
        if self.answer_type is not None:
            return self.answer_type.type
        if self.template is not None and self.template.answer_type is not None:
            return self.template.answer_type.type
        return ''

    def to_dict(self):
        template = self.template
        return {
            'id': self.id,
            'template_id': self.template_id,
            'answer_type_id': self.answer_type_id,
            'question_date': self.question_date.isoformat(),
            'bool_value': self.bool_value,
            'number_value': self.number_value,
            'scale_value': self.scale_value,
            'text_value': self.text_value,
            'prompt_snapshot': self.prompt_snapshot,
            'category_snapshot': self.category_snapshot,
            'type': self.type_tag,
            'question_templates': {
                'title': template.title,
                'category_id': template.category_id,
                'categories': {'name': template.category.name} if template.category else None
            } if template else None
        }


class ThemeDefaults(db.Model):
    __tablename__ = 'theme_defaults'

    id = db.Column(db.Integer, primary_key=True)
    chart_palette = db.Column(db.JSON, nullable=True)
    chart_style = db.Column(db.String(16), nullable=True)
