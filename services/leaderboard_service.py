"""
Leaderboard Service for WellQuest
Handles global and friends leaderboards over XP or Wellness Capital, with
rank movement against the last archived snapshot
"""

from datetime import datetime, timedelta, timezone
import logging

from utils.error_handler import WellQuestError, ValidationError, DatabaseError

logger = logging.getLogger(__name__)

SCOPES = ('global', 'friends')
PERIODS = ('all', 'daily', 'weekly', 'monthly')
METRICS = ('wellness_capital', 'xp')
DEFAULT_LIMIT = 50


class LeaderboardService:
    def __init__(self, db, clock=None):
        self.db = db
        self.users_ref = db.collection('users')
        self.rewards_ref = db.collection('rewards')
        self.leaderboards_ref = db.collection('leaderboards')
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_leaderboard(self, scope='global', period='all', metric='wellness_capital',
                        limit=DEFAULT_LIMIT, current_user_id=None):
        """
        Get leaderboard data based on scope, time period and metric
        """
        try:
            if scope not in SCOPES:
                raise ValidationError("Invalid leaderboard scope", field='scope')
            if period not in PERIODS:
                raise ValidationError("Invalid leaderboard period", field='period')
            if metric not in METRICS:
                raise ValidationError("Invalid leaderboard metric", field='metric')
            if scope == 'friends' and not current_user_id:
                raise ValidationError("Friends leaderboard needs a current user")

            users = self._candidate_users(scope, current_user_id)
            scores = self._scores(users, period, metric)
            ranking = self._rank(scores)
            previous = {
                uid: position
                for position, uid in enumerate(self._rank(self._snapshot_scores(period, metric, users)), 1)
            }

            entries = []
            current_user = None
            for rank, user_id in enumerate(ranking, 1):
                user_data = users[user_id]
                entry = {
                    'rank': rank,
                    'user_id': user_id,
                    'display_name': user_data.get('display_name', 'Explorer'),
                    'avatar': user_data.get('avatar', ''),
                    'level': user_data.get('level', 1),
                    'score': scores[user_id],
                    'current_streak': user_data.get('current_streak', 0),
                    # Positive when the user climbed since the snapshot
                    'change': previous[user_id] - rank if user_id in previous else 0,
                    'is_current_user': user_id == current_user_id,
                }
                if rank <= limit:
                    entries.append(entry)
                if user_id == current_user_id:
                    current_user = entry

            return {
                'scope': scope,
                'period': period,
                'metric': metric,
                'entries': entries,
                'current_user': current_user,
                'total_entries': len(ranking),
                'updated_at': self.clock(),
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting leaderboard: {str(e)}")
            raise DatabaseError(f"Failed to get leaderboard: {str(e)}")

    def archive_leaderboard(self, period='weekly', metric='wellness_capital'):
        """
        Store current scores as the baseline for rank movement (scheduled task)
        """
        try:
            if period not in PERIODS or metric not in METRICS:
                raise ValidationError("Invalid leaderboard period or metric")

            users = self._candidate_users('global', None)
            scores = self._scores(users, period, metric)
            now = self.clock()

            self.leaderboards_ref.document(f'{period}_{metric}').set({
                'period': period,
                'metric': metric,
                'scores': scores,
                'archived_at': now,
            })

            logger.info(f"Archived {period} {metric} leaderboard with {len(scores)} entries")
            return {'period': period, 'metric': metric, 'entries': len(scores), 'archived_at': now}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error archiving leaderboard: {str(e)}")
            raise DatabaseError(f"Failed to archive leaderboard: {str(e)}")

    def get_leaderboard_stats(self):
        """
        Get overall leaderboard statistics
        """
        try:
            users = self._candidate_users('global', None)
            user_count = len(users)

            total_xp = sum(u.get('xp', 0) for u in users.values())
            total_wc = sum(u.get('wellness_capital', 0) for u in users.values())
            total_level = sum(u.get('level', 1) for u in users.values())

            top_performer = None
            if users:
                top_id = max(users, key=lambda uid: users[uid].get('wellness_capital', 0))
                top = users[top_id]
                top_performer = {
                    'user_id': top_id,
                    'display_name': top.get('display_name', 'Explorer'),
                    'wellness_capital': top.get('wellness_capital', 0),
                    'level': top.get('level', 1),
                }

            return {
                'total_users': user_count,
                'active_users': len([u for u in users.values() if u.get('xp', 0) > 0]),
                'top_performer': top_performer,
                'average_xp': round(total_xp / user_count, 2) if user_count else 0,
                'average_level': round(total_level / user_count, 2) if user_count else 0,
                'total_xp_earned': total_xp,
                'total_wellness_capital': total_wc,
                'longest_streak': max((u.get('max_streak', 0) for u in users.values()), default=0),
            }

        except Exception as e:
            logger.error(f"Error getting leaderboard stats: {str(e)}")
            raise DatabaseError(f"Failed to get leaderboard stats: {str(e)}")

    def _candidate_users(self, scope, current_user_id):
        if scope == 'global':
            return {doc.id: doc.to_dict() for doc in self.users_ref.stream()}

        # Friends board: the current user plus everyone they follow
        users = {}
        current_doc = self.users_ref.document(current_user_id).get()
        if not current_doc.exists:
            return users
        current = current_doc.to_dict()
        users[current_user_id] = current
        for friend_id in current.get('following', []):
            friend_doc = self.users_ref.document(friend_id).get()
            if friend_doc.exists:
                users[friend_id] = friend_doc.to_dict()
        return users

    def _scores(self, users, period, metric):
        if period == 'all':
            return {uid: data.get(metric, 0) for uid, data in users.items()}

        scores = {uid: 0 for uid in users}
        ledger = self.rewards_ref.where('created_at', '>=', self._get_time_filter(period)).stream()
        for reward_doc in ledger:
            reward = reward_doc.to_dict()
            if reward.get('user_id') in scores:
                scores[reward['user_id']] += reward.get(metric, 0)
        return scores

    def _snapshot_scores(self, period, metric, users):
        snapshot_doc = self.leaderboards_ref.document(f'{period}_{metric}').get()
        if not snapshot_doc.exists:
            return {}
        scores = snapshot_doc.to_dict().get('scores', {})
        return {uid: score for uid, score in scores.items() if uid in users}

    def _rank(self, scores):
        # Ties keep a stable order by user id
        return sorted(scores, key=lambda uid: (-scores[uid], uid))

    def _get_time_filter(self, period):
        """
        Get datetime filter for period-based queries
        """
        now = self.clock()

        if period == 'weekly':
            return now - timedelta(days=7)
        elif period == 'monthly':
            return now - timedelta(days=30)
        elif period == 'daily':
            return now - timedelta(days=1)
        return datetime.min.replace(tzinfo=timezone.utc)
