"""
Tests for the Flask routes
"""

from unittest.mock import Mock

import pytest

from tests.conftest import auth_header

LAT = 40.7128
LNG = -74.0060
CARDIO_ANSWERS = [1, 2, 1, 3, 1]


@pytest.mark.integration
class TestPublicRoutes:

    def test_health_check(self, app_client):
        response = app_client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_unknown_route(self, app_client):
        response = app_client.get('/nowhere')

        assert response.status_code == 404
        assert response.get_json()['error_code'] == 'NOT_FOUND'

    def test_protected_route_requires_token(self, app_client):
        response = app_client.get('/quests')

        assert response.status_code == 401
        assert response.get_json()['error_code'] == 'AUTH_ERROR'

    def test_login_requires_token(self, app_client, mocker):
        create_token = mocker.patch('firebase_admin.auth.create_custom_token')
        response = app_client.post('/auth/login', json={'email': 'victim@example.com'})

        assert response.status_code == 401
        assert response.get_json()['error_code'] == 'AUTH_ERROR'
        create_token.assert_not_called()

    def test_login_uses_caller_identity(self, app_client, make_user, mocker):
        make_user('alice', xp=40)
        mocker.patch('firebase_admin.auth.get_user', return_value=Mock(uid='alice', email='alice@example.com'))
        mocker.patch('firebase_admin.auth.create_custom_token', return_value=b'alice-token')

        response = app_client.post(
            '/auth/login', json={'email': 'victim@example.com'}, headers=auth_header('alice')
        )

        body = response.get_json()
        assert response.status_code == 200
        assert body['user_id'] == 'alice'
        assert body['custom_token'] == 'alice-token'
        assert body['profile']['xp'] == 40

    def test_signup_requires_fields(self, app_client):
        response = app_client.post('/auth/signup', json={'email': 'a@example.com'})

        assert response.status_code == 400
        assert 'password' in response.get_json()['error']


@pytest.mark.integration
class TestUserRoutes:

    def test_owner_sees_full_profile(self, app_client, make_user):
        make_user('alice')
        response = app_client.get('/user/alice', headers=auth_header('alice'))

        assert response.status_code == 200
        assert 'preferences' in response.get_json()

    def test_others_see_public_profile(self, app_client, make_user):
        make_user('alice')
        make_user('bob')
        response = app_client.get('/user/alice', headers=auth_header('bob'))

        assert response.status_code == 200
        assert 'preferences' not in response.get_json()

    def test_cannot_update_other_profile(self, app_client, make_user):
        make_user('alice')
        response = app_client.put('/user/alice', json={'display_name': 'Eve'}, headers=auth_header('bob'))

        assert response.status_code == 403

    def test_update_own_profile(self, app_client, fake_db, make_user):
        make_user('alice')
        response = app_client.put(
            '/user/alice', json={'preferences': {'theme': 'dark'}}, headers=auth_header('alice')
        )

        assert response.status_code == 200
        assert fake_db.docs('users')['alice']['preferences']['theme'] == 'dark'


@pytest.mark.integration
class TestMapRoutes:

    def test_admin_places_territory_and_player_captures(self, app_client, make_user):
        """Test the admin, map and capture routes together"""
        make_user('alice')

        forbidden = app_client.post(
            '/admin/territory', json={'title': 'Park', 'location': {'lat': LAT, 'lng': LNG}},
            headers=auth_header('alice'),
        )
        assert forbidden.status_code == 403

        created = app_client.post(
            '/admin/territory', json={'title': 'Park', 'location': {'lat': LAT, 'lng': LNG}},
            headers=auth_header('admin-1'),
        )
        assert created.status_code == 201
        territory_id = created.get_json()['id']

        nearby = app_client.get(f'/map/assets?lat={LAT}&lng={LNG}', headers=auth_header('alice'))
        assert nearby.get_json()['count'] == 1

        captured = app_client.post(
            f'/map/territory/{territory_id}/capture',
            json={'location': {'latitude': LAT, 'longitude': LNG}},
            headers=auth_header('alice'),
        )
        body = captured.get_json()
        assert captured.status_code == 200
        assert body['reward']['xp_gained'] == 100
        assert body['achievements_unlocked'] == ['first_territory']

    def test_capture_out_of_range(self, app_client, make_user, services):
        make_user('alice')
        territory_id = services.asset.create_territory(LAT, LNG, 'Park')

        response = app_client.post(
            f'/map/territory/{territory_id}/capture',
            json={'location': {'lat': LAT + 0.01, 'lng': LNG}},
            headers=auth_header('alice'),
        )

        assert response.status_code == 422
        assert response.get_json()['error_code'] == 'OUT_OF_RANGE'
        assert response.get_json()['distance'] > 1000

    def test_map_assets_requires_coordinates(self, app_client):
        response = app_client.get('/map/assets?lat=40.7', headers=auth_header('alice'))
        assert response.status_code == 400

    def test_seed_blocked_outside_development(self, app_client):
        response = app_client.post('/admin/seed', headers=auth_header('admin-1'))
        assert response.status_code == 403

    def test_seed_in_development(self, app_client, mocker):
        import main
        mocker.patch.object(main.config, 'ENVIRONMENT', 'development')

        response = app_client.post(
            '/admin/seed', json={'location': {'lat': LAT, 'lng': LNG}}, headers=auth_header('admin-1')
        )

        assert response.status_code == 200
        assert response.get_json()['seeded'] == {
            'achievements': 13, 'team_challenges': 3, 'knowledge_orbs': 5,
        }


@pytest.mark.integration
class TestQuestRoutes:

    def test_quest_flow(self, app_client, make_user):
        """Test start, answer and complete over HTTP"""
        make_user('alice')
        headers = auth_header('alice')

        quests = app_client.get('/quests', headers=headers).get_json()['quests']
        assert len(quests) == 6

        started = app_client.post('/quest/health_cardio_basics/start', headers=headers)
        assert started.status_code == 201
        session_id = started.get_json()['id']

        for index, option in enumerate(CARDIO_ANSWERS):
            answered = app_client.post(
                f'/quest/session/{session_id}/answer',
                json={'question_index': index, 'option_index': option},
                headers=headers,
            )
            assert answered.status_code == 200

        completed = app_client.post(f'/quest/session/{session_id}/complete', headers=headers)
        assert completed.status_code == 200
        assert completed.get_json()['result']['score'] == 100

        again = app_client.post(f'/quest/session/{session_id}/complete', headers=headers)
        assert again.status_code == 409
        assert again.get_json()['error_code'] == 'INVALID_STATE'

        attempts = app_client.get('/quest/attempts', headers=headers).get_json()['attempts']
        assert len(attempts) == 1

    def test_locked_quest(self, app_client, make_user):
        make_user('alice')
        response = app_client.post('/quest/wealth_ulip_myths/start', headers=auth_header('alice'))
        assert response.status_code == 409

    def test_answer_requires_integers(self, app_client, make_user):
        make_user('alice')
        headers = auth_header('alice')
        session_id = app_client.post('/quest/health_cardio_basics/start', headers=headers).get_json()['id']

        response = app_client.post(
            f'/quest/session/{session_id}/answer',
            json={'question_index': 'first', 'option_index': 1},
            headers=headers,
        )
        assert response.status_code == 400

    def test_invalid_quest_type(self, app_client, make_user):
        make_user('alice')
        response = app_client.get('/quests?type=astrology', headers=auth_header('alice'))
        assert response.status_code == 400


@pytest.mark.integration
class TestActivityRoutes:

    def test_activity_flow(self, app_client, clock, make_user):
        make_user('walker')
        headers = auth_header('walker')

        started = app_client.post(
            '/activity/start',
            json={'session_type': 'WALK', 'location': {'lat': LAT, 'lng': LNG}},
            headers=headers,
        )
        assert started.status_code == 201
        session_id = started.get_json()['id']

        clock.advance(minutes=5)
        sample = app_client.post(
            f'/activity/{session_id}/location',
            json={'location': {'lat': LAT + 0.005, 'lng': LNG}, 'speed': 1.8},
            headers=headers,
        )
        assert sample.status_code == 200
        assert sample.get_json()['distance_added'] > 500

        current = app_client.get('/activity/current', headers=headers).get_json()
        assert current['session']['id'] == session_id

        ended = app_client.post(f'/activity/{session_id}/end', headers=headers)
        assert ended.status_code == 200
        assert 'first_steps' in ended.get_json()['achievements_unlocked']

        history = app_client.get('/activity/history?limit=5', headers=headers).get_json()
        assert len(history['sessions']) == 1

        summary = app_client.get('/activity/summary', headers=headers).get_json()
        assert summary['totals']['steps'] > 0

    def test_history_limit_validation(self, app_client):
        response = app_client.get('/activity/history?limit=0', headers=auth_header('walker'))
        assert response.status_code == 400


@pytest.mark.integration
class TestSocialRoutes:

    def test_post_like_and_comment(self, app_client, make_user):
        make_user('alice')
        make_user('bob')

        created = app_client.post('/social/posts', json={'content': 'Morning run!'}, headers=auth_header('alice'))
        assert created.status_code == 201
        post_id = created.get_json()['id']

        liked = app_client.post(f'/social/post/{post_id}/like', headers=auth_header('bob'))
        assert liked.get_json()['liked'] is True

        commented = app_client.post(
            f'/social/post/{post_id}/comments', json={'content': 'Nice pace'}, headers=auth_header('bob')
        )
        assert commented.status_code == 201

        comments = app_client.get(f'/social/post/{post_id}/comments', headers=auth_header('alice')).get_json()
        assert [c['content'] for c in comments['comments']] == ['Nice pace']

        denied = app_client.delete(f'/social/post/{post_id}', headers=auth_header('bob'))
        assert denied.status_code == 403

    @pytest.mark.parametrize('post_type', ['quiz_completion', 'territory_claim', 'achievement'])
    def test_users_cannot_create_system_posts(self, app_client, fake_db, make_user, post_type):
        make_user('alice')

        response = app_client.post(
            '/social/posts',
            json={'content': 'Scored 100%!', 'type': post_type},
            headers=auth_header('alice')
        )

        assert response.status_code == 400
        assert response.get_json()['error_code'] == 'VALIDATION_ERROR'
        assert fake_db.docs('posts') == {}

    def test_user_can_post_milestone(self, app_client, make_user):
        make_user('alice')

        response = app_client.post(
            '/social/posts',
            json={'content': 'First 10k!', 'type': 'milestone'},
            headers=auth_header('alice')
        )

        assert response.status_code == 201
        assert response.get_json()['type'] == 'milestone'

    def test_follow_and_friends_leaderboard(self, app_client, make_user):
        make_user('alice', wellness_capital=10)
        make_user('bob', wellness_capital=50)
        make_user('carol', wellness_capital=90)

        app_client.post('/social/follow/bob', headers=auth_header('alice'))
        board = app_client.get('/leaderboard?scope=friends', headers=auth_header('alice')).get_json()

        assert [e['user_id'] for e in board['entries']] == ['bob', 'alice']
        assert board['current_user']['rank'] == 2


@pytest.mark.integration
class TestChallengeRoutes:

    def test_join_challenge(self, app_client, services, make_user):
        make_user('alice')
        challenge_ids = services.challenge.seed_challenges()

        joined = app_client.post(f'/challenge/{challenge_ids[0]}/join', headers=auth_header('alice'))
        assert joined.status_code == 200
        assert joined.get_json()['joined'] is True

        listing = app_client.get('/challenges', headers=auth_header('alice')).get_json()
        assert listing['joined_count'] == 1

    def test_achievements_listing(self, app_client, make_user):
        make_user('alice', statistics={'total_steps': 150})

        checked = app_client.post('/achievements/check', headers=auth_header('alice')).get_json()
        assert [a['id'] for a in checked['newly_unlocked']] == ['first_steps']

        listing = app_client.get('/achievements', headers=auth_header('alice')).get_json()
        assert listing['unlocked_count'] == 1
