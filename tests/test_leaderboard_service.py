"""
Tests for leaderboards and rank movement
"""

import pytest

from utils.error_handler import ValidationError


@pytest.fixture
def players(make_user):
    make_user('alice', 'Alice', xp=500, wellness_capital=300, level=1)
    make_user('bob', 'Bob', xp=1500, wellness_capital=200, level=2)
    make_user('carol', 'Carol', xp=50, wellness_capital=900, level=1, max_streak=4)
    return ['alice', 'bob', 'carol']


class TestLeaderboard:

    def test_global_wellness_capital(self, services, players):
        board = services.leaderboard.get_leaderboard(current_user_id='alice')

        assert [e['user_id'] for e in board['entries']] == ['carol', 'alice', 'bob']
        assert [e['rank'] for e in board['entries']] == [1, 2, 3]
        assert board['current_user']['rank'] == 2
        assert board['current_user']['is_current_user'] is True
        assert board['total_entries'] == 3

    def test_xp_metric(self, services, players):
        board = services.leaderboard.get_leaderboard(metric='xp')
        assert board['entries'][0]['user_id'] == 'bob'
        assert board['entries'][0]['score'] == 1500

    def test_limit_keeps_current_user(self, services, players):
        board = services.leaderboard.get_leaderboard(limit=1, current_user_id='bob')

        assert len(board['entries']) == 1
        assert board['current_user']['rank'] == 3

    def test_friends_scope(self, services, players):
        services.social.toggle_follow('alice', 'bob')

        board = services.leaderboard.get_leaderboard(scope='friends', current_user_id='alice')

        assert [e['user_id'] for e in board['entries']] == ['alice', 'bob']

    def test_periodic_board_uses_reward_ledger(self, services, clock, players):
        """Test only rewards inside the window count"""
        services.user.award('bob', xp=10, wellness_capital=40, source='quest')
        clock.advance(days=2)
        services.user.award('alice', xp=10, wellness_capital=25, source='quest')

        daily = services.leaderboard.get_leaderboard(period='daily')
        weekly = services.leaderboard.get_leaderboard(period='weekly')

        assert [(e['user_id'], e['score']) for e in daily['entries']] == [
            ('alice', 25), ('bob', 0), ('carol', 0)
        ]
        assert weekly['entries'][0]['user_id'] == 'bob'

    def test_rank_change_against_snapshot(self, services, players):
        services.leaderboard.archive_leaderboard(period='all', metric='wellness_capital')
        services.user.award('bob', wellness_capital=1000, source='quest')

        board = services.leaderboard.get_leaderboard(period='all')
        changes = {e['user_id']: e['change'] for e in board['entries']}

        assert changes == {'bob': 2, 'carol': -1, 'alice': -1}

    def test_no_snapshot_means_no_change(self, services, players):
        board = services.leaderboard.get_leaderboard()
        assert all(e['change'] == 0 for e in board['entries'])

    @pytest.mark.parametrize('kwargs', [
        {'scope': 'planet'},
        {'period': 'yearly'},
        {'metric': 'steps'},
        {'scope': 'friends'},
    ])
    def test_invalid_arguments(self, services, kwargs):
        with pytest.raises(ValidationError):
            services.leaderboard.get_leaderboard(**kwargs)

    def test_stats(self, services, players):
        stats = services.leaderboard.get_leaderboard_stats()

        assert stats['total_users'] == 3
        assert stats['active_users'] == 3
        assert stats['top_performer']['user_id'] == 'carol'
        assert stats['total_xp_earned'] == 2050
        assert stats['longest_streak'] == 4
