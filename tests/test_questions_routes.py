"""Tests for question templates and per-user question selections"""
import pytest

from bujo_logger import db
from bujo_logger.models import AnswerType, QuestionTemplate, UserQuestion

TEMPLATES_URL = '/api/v1/question-templates'
USER_QUESTIONS_URL = '/api/v1/user-questions'


@pytest.fixture
def scale_type(app):
    answer_type = AnswerType(name='Scale 1-5', type='scale', default_display_option='graph',
                             allowed_display_options=['graph', 'grid'])
    db.session.add(answer_type)
    db.session.commit()
    return answer_type


@pytest.fixture
def global_templates(scale_type):
    templates = [QuestionTemplate(title=f'Question {i}', answer_type_id=scale_type.id)
                 for i in range(5)]
    db.session.add_all(templates)
    db.session.commit()
    return templates


def new_template(title, answer_type):
    return {'title': title, 'answer_type_id': answer_type.id}


class TestCreateTemplate:

    def test_admin_creates_global_template(self, client, auth_headers, make_profile, scale_type):
        make_profile('admin', is_admin=True)

        response = client.post(TEMPLATES_URL, headers=auth_headers('admin'),
                               json=new_template('Energy', scale_type))

        assert response.status_code == 201
        assert response.get_json()['data']['created_by'] is None

    def test_free_tier_cannot_create(self, client, auth_headers, make_profile, scale_type):
        make_profile('user-1', account_tier=2)

        response = client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                               json=new_template('Energy', scale_type))

        assert response.status_code == 403
        assert response.get_json()['errorCode'] == 'tier'

    def test_tier_three_is_capped_at_five(self, client, auth_headers, make_profile, scale_type):
        make_profile('user-1', account_tier=3)

        statuses = [
            client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                        json=new_template(f'Mine {i}', scale_type)).status_code
            for i in range(6)
        ]

        assert statuses == [201] * 5 + [403]
        assert QuestionTemplate.query.filter_by(created_by='user-1').count() == 5

    def test_tier_four_is_unlimited(self, client, auth_headers, make_profile, scale_type):
        make_profile('user-1', account_tier=4)

        for i in range(6):
            response = client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                                   json=new_template(f'Mine {i}', scale_type))
            assert response.status_code == 201

    def test_duplicate_title_ignores_case(self, client, auth_headers, make_profile, scale_type):
        make_profile('user-1', account_tier=3)
        client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                    json=new_template('Water', scale_type))

        response = client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                               json=new_template('  WATER ', scale_type))

        assert response.status_code == 400

    def test_unknown_answer_type(self, client, auth_headers, make_profile):
        make_profile('admin', is_admin=True)
        response = client.post(TEMPLATES_URL, headers=auth_headers('admin'),
                               json={'title': 'Energy', 'answer_type_id': 999})
        assert response.status_code == 404

    def test_display_options_include_default(self, client, auth_headers, make_profile, scale_type):
        make_profile('admin', is_admin=True)

        response = client.post(TEMPLATES_URL, headers=auth_headers('admin'), json={
            **new_template('Energy', scale_type),
            'default_display_option': 'count',
            'allowed_display_options': ['graph', 'pie']
        })

        data = response.get_json()['data']
        assert data['default_display_option'] == 'count'
        assert data['allowed_display_options'] == ['graph', 'count']


class TestListAndManageTemplates:

    def test_personal_templates_are_private(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=3)
        client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                    json=new_template('Mine', global_templates[0].answer_type))

        own = client.get(TEMPLATES_URL, headers=auth_headers('user-1')).get_json()['data']
        other = client.get(TEMPLATES_URL, headers=auth_headers('user-2')).get_json()['data']

        assert len(own) == 6
        assert len(other) == 5
        assert 'Mine' not in [t['title'] for t in other]

    def test_only_owner_deletes(self, client, auth_headers, make_profile, scale_type):
        make_profile('user-1', account_tier=3)
        created = client.post(TEMPLATES_URL, headers=auth_headers('user-1'),
                              json=new_template('Mine', scale_type)).get_json()['data']

        forbidden = client.delete(TEMPLATES_URL, headers=auth_headers('user-2'),
                                  json={'id': created['id']})
        allowed = client.delete(TEMPLATES_URL, headers=auth_headers('user-1'),
                                json={'id': created['id']})

        assert forbidden.status_code == 403
        assert allowed.status_code == 200
        assert db.session.get(QuestionTemplate, created['id']) is None

    def test_user_cannot_edit_global(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=4)
        response = client.put(TEMPLATES_URL, headers=auth_headers('user-1'), json={
            'id': global_templates[0].id, 'title': 'Renamed'
        })
        assert response.status_code == 403


class TestSelectQuestions:

    def select(self, client, auth_headers, template, **extra):
        return client.post(USER_QUESTIONS_URL, headers=auth_headers('user-1'),
                           json={'template_id': template.id, **extra})

    def test_free_tier_limited_to_three_globals(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=0)

        statuses = [self.select(client, auth_headers, t).status_code
                    for t in global_templates[:4]]

        assert statuses == [200, 200, 200, 403]

    def test_reselecting_does_not_count_twice(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=0)
        for template in global_templates[:3]:
            self.select(client, auth_headers, template)

        response = self.select(client, auth_headers, global_templates[0], custom_label='Renamed')

        assert response.status_code == 200
        assert UserQuestion.query.filter_by(user_id='user-1').count() == 3

    def test_tier_one_is_unlimited(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=1)
        for template in global_templates:
            assert self.select(client, auth_headers, template).status_code == 200

    def test_color_override_needs_tier_two(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=1)

        response = self.select(client, auth_headers, global_templates[0],
                               color_palette={'accent': '#123456'})

        assert response.status_code == 403

    def test_color_override_is_filtered(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=2)

        response = self.select(client, auth_headers, global_templates[0],
                               color_palette={'accent': '#123456', 'glow': '#fff'})

        assert response.get_json()['data']['color_palette'] == {'accent': '#123456'}

    def test_display_override_must_be_allowed(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=1)

        rejected = self.select(client, auth_headers, global_templates[0],
                               display_option_override='count')
        accepted = self.select(client, auth_headers, global_templates[1],
                               display_option_override='grid')

        assert rejected.status_code == 400
        assert accepted.get_json()['data']['display_option_override'] == 'grid'

    def test_list_update_and_remove(self, client, auth_headers, make_profile, global_templates):
        make_profile('user-1', account_tier=1)
        selected = self.select(client, auth_headers, global_templates[0]).get_json()['data']

        client.put(USER_QUESTIONS_URL, headers=auth_headers('user-1'),
                   json={'id': selected['id'], 'custom_label': 'Mood today'})
        listed = client.get(USER_QUESTIONS_URL, headers=auth_headers('user-1')).get_json()['data']
        removed = client.delete(f"{USER_QUESTIONS_URL}?id={selected['id']}",
                                headers=auth_headers('user-1'))

        assert listed[0]['custom_label'] == 'Mood today'
        assert listed[0]['template']['title'] == 'Question 0'
        assert removed.status_code == 200
        assert UserQuestion.query.count() == 0
