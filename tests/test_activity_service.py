"""
Tests for activity sessions, GPS tracking and claimed territories
"""

from datetime import timedelta

import pytest

from engine import progression
from utils.error_handler import AuthorizationError, ConflictError, NotFoundError, ValidationError

BASE_LAT = 40.0
BASE_LNG = -74.0


def square_loop(side=0.001, steps_per_side=4):
    """Walk the edge of a square and come back to the start"""
    step = side / steps_per_side
    points = []
    for i in range(steps_per_side):
        points.append((BASE_LAT, BASE_LNG + i * step))
    for i in range(steps_per_side):
        points.append((BASE_LAT + i * step, BASE_LNG + side))
    for i in range(steps_per_side):
        points.append((BASE_LAT + side, BASE_LNG + side - i * step))
    for i in range(steps_per_side):
        points.append((BASE_LAT + side - i * step, BASE_LNG))
    points.append((BASE_LAT, BASE_LNG))
    return points


@pytest.fixture
def walker(make_user):
    return make_user('walker', 'Walker')


@pytest.fixture
def session_id(services, walker):
    return services.activity.start_session(walker, 'walk', BASE_LAT, BASE_LNG)['id']


def walk(services, clock, user_id, session_id, points, seconds=10):
    results = []
    for lat, lng in points:
        clock.advance(seconds=seconds)
        results.append(services.activity.record_location(user_id, session_id, {'lat': lat, 'lng': lng}))
    return results


class TestActivitySessions:

    def test_start_session(self, services, walker):
        session = services.activity.start_session(walker, 'run', BASE_LAT, BASE_LNG)

        assert session['session_type'] == 'RUN'
        assert session['is_active'] is True
        assert session['start_location']['lat'] == BASE_LAT
        assert 'tracker' not in session
        assert 'location_history' not in session

    def test_one_active_session_per_user(self, services, walker, session_id):
        with pytest.raises(ConflictError):
            services.activity.start_session(walker, 'walk')

    def test_invalid_session_type(self, services, walker):
        with pytest.raises(ValidationError):
            services.activity.start_session(walker, 'swim')

    def test_record_location_updates_metrics(self, services, clock, walker, session_id):
        result = walk(services, clock, walker, session_id, [(BASE_LAT + 0.001, BASE_LNG)], seconds=60)[0]

        assert result['distance_added'] == pytest.approx(111.19, rel=1e-3)
        assert result['metrics']['total_duration'] == 60.0
        assert result['path_points'] == 2
        assert result['territory_claimed'] is None

    def test_record_location_with_timestamp(self, services, clock, walker, session_id):
        at = (clock() + timedelta(seconds=30)).isoformat()
        result = services.activity.record_location(
            walker, session_id, {'lat': BASE_LAT + 0.001, 'lng': BASE_LNG, 'timestamp': at, 'speed': 3.7}
        )
        assert result['metrics']['total_duration'] == 30.0
        assert result['metrics']['max_speed'] == 3.7

    def test_closed_loop_claims_territory(self, services, fake_db, clock, walker, session_id):
        """Test walking a loop claims a territory and rewards its area"""
        results = walk(services, clock, walker, session_id, square_loop()[1:])

        assert all(r['territory_claimed'] is None for r in results[:-1])
        claim = results[-1]['territory_claimed']
        territory = claim['territory']
        assert territory['user_id'] == walker
        assert territory['session_id'] == session_id
        assert territory['reward'] == progression.territory_reward(territory['area_m2'])
        assert claim['reward']['xp_gained'] == territory['reward']
        assert results[-1]['achievements_unlocked'] == ['first_territory']

        session = fake_db.docs('game_sessions')[session_id]
        assert session['territories_captured'] == [territory['id']]
        assert session['points_earned'] == territory['reward']

        owned = services.territory.get_user_territories(walker)
        assert owned['count'] == 1
        assert owned['total_area_m2'] == territory['area_m2']

    def test_location_history_is_capped(self, services, fake_db, clock, walker, session_id, monkeypatch):
        monkeypatch.setattr('services.activity_service.MAX_LOCATION_HISTORY', 3)
        walk(services, clock, walker, session_id, [(BASE_LAT + i * 0.0001, BASE_LNG) for i in range(1, 6)])

        history = fake_db.docs('game_sessions')[session_id]['location_history']
        assert len(history) == 3
        assert history[-1]['lat'] == pytest.approx(BASE_LAT + 0.0005)

    def test_end_session_records_totals(self, services, fake_db, clock, walker, session_id):
        """Test ending a session credits statistics and checks achievements"""
        walk(services, clock, walker, session_id, square_loop()[1:])

        ended = services.activity.end_session(walker, session_id)

        assert ended['is_active'] is False
        assert ended['end_location']['lat'] == BASE_LAT
        assert ended['step_count'] > 100
        assert ended['current_streak'] == 1
        assert ended['achievements_unlocked'] == ['first_steps']

        stats = fake_db.docs('users')[walker]['statistics']
        assert stats['total_steps'] == ended['step_count']
        assert stats['total_time_active'] == 160.0
        assert stats['territories_captured'] == 1

        assert services.activity.get_current_session(walker) is None
        history = services.activity.get_user_sessions(walker)
        assert [s['id'] for s in history] == [session_id]

    def test_ended_session_rejects_samples(self, services, walker, session_id):
        services.activity.end_session(walker, session_id)

        with pytest.raises(ConflictError):
            services.activity.record_location(walker, session_id, {'lat': BASE_LAT, 'lng': BASE_LNG})
        with pytest.raises(ConflictError):
            services.activity.end_session(walker, session_id)

    def test_session_belongs_to_owner(self, services, make_user, session_id):
        make_user('mallory')
        with pytest.raises(AuthorizationError):
            services.activity.record_location('mallory', session_id, {'lat': BASE_LAT, 'lng': BASE_LNG})

    def test_missing_session(self, services, walker):
        with pytest.raises(NotFoundError):
            services.activity.end_session(walker, 'nope')

    def test_current_session(self, services, walker, session_id):
        assert services.activity.get_current_session(walker)['id'] == session_id


class TestActivitySummary:

    def test_summary_counts_today(self, services, clock, walker, session_id):
        walk(services, clock, walker, session_id, [(BASE_LAT + 0.01, BASE_LNG)], seconds=600)
        services.activity.end_session(walker, session_id)

        summary = services.activity.get_activity_summary(walker)

        assert summary['date'] == '2024-06-03'
        assert summary['totals']['distance_km'] == pytest.approx(1.11, abs=0.01)
        assert summary['totals']['weekly_active_minutes'] == 10.0
        assert summary['progress']['distance'] == pytest.approx(22.2, abs=0.2)
        assert summary['current_streak'] == 1

    def test_summary_skips_earlier_weeks(self, services, clock, walker, session_id):
        walk(services, clock, walker, session_id, [(BASE_LAT + 0.01, BASE_LNG)])
        services.activity.end_session(walker, session_id)

        clock.advance(days=8)
        summary = services.activity.get_activity_summary(walker)

        assert summary['totals']['steps'] == 0
        assert summary['totals']['weekly_active_minutes'] == 0.0


class TestClaimedTerritories:

    def test_territories_near(self, services, clock, walker, session_id):
        walk(services, clock, walker, session_id, square_loop()[1:])

        near = services.territory.get_territories_near(BASE_LAT, BASE_LNG, radius=500)
        far = services.territory.get_territories_near(BASE_LAT + 1, BASE_LNG, radius=500)

        assert len(near) == 1
        assert near[0]['distance'] < 100
        assert far == []

    def test_get_missing_territory(self, services):
        with pytest.raises(NotFoundError):
            services.territory.get_territory('nope')
