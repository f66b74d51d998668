"""
User Service for WellQuest
Handles user profiles, XP and Wellness Capital rewards, level progression
and daily streaks
"""

from datetime import datetime, timezone
import logging

import pytz
from firebase_admin import firestore

from engine import progression
from utils.error_handler import (
    WellQuestError, ValidationError, NotFoundError, DatabaseError
)

logger = logging.getLogger(__name__)

THEMES = ('light', 'dark', 'system')
PREFERENCE_FIELDS = (
    'notifications', 'location_sharing', 'activity_tracking',
    'sound', 'vibration', 'theme', 'timezone'
)
# Activity totals recorded at the end of a session
ACTIVITY_STAT_FIELDS = {
    'distance_m': 'total_distance_walked',
    'duration_s': 'total_time_active',
    'steps': 'total_steps',
    'calories': 'total_calories',
}


def default_preferences():
    return {
        'notifications': True,
        'location_sharing': True,
        'activity_tracking': True,
        'sound': True,
        'vibration': True,
        'theme': 'system',
        'timezone': 'UTC',
    }


def default_statistics():
    return {
        'total_distance_walked': 0,
        'total_time_active': 0,
        'total_steps': 0,
        'total_calories': 0,
        'territories_captured': 0,
        'knowledge_orbs_collected': 0,
        'quests_completed': 0,
        'points_earned': 0,
        'posts_created': 0,
        'likes_received': 0,
    }


def build_user_profile(uid, email, display_name, avatar='', is_anonymous=False, now=None):
    """
    Fresh profile document for users/{uid}
    """
    now = now or datetime.now(timezone.utc)
    return {
        'id': uid,
        'display_name': display_name,
        'email': email or '',
        'avatar': avatar or '',
        'is_anonymous': is_anonymous,
        'xp': 0,
        'level': 1,
        'wellness_capital': 0,
        'total_points': 0,
        'current_streak': 0,
        'max_streak': 0,
        'last_active_at': None,
        'achievements': [],
        'following': [],
        'followers': [],
        'preferences': default_preferences(),
        'statistics': default_statistics(),
        'created_at': now,
        'updated_at': now,
    }


class UserService:
    def __init__(self, db, clock=None):
        self.db = db
        self.users_ref = db.collection('users')
        self.rewards_ref = db.collection('rewards')
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_user(self, user_id):
        """
        Raw profile document, NotFoundError when missing
        """
        user_doc = self.users_ref.document(user_id).get()
        if not user_doc.exists:
            raise NotFoundError("User not found")
        return user_doc.to_dict()

    def get_user_profile(self, user_id):
        """
        Get complete user profile with level progress
        """
        try:
            user_data = self.get_user(user_id)
            created_at = user_data.get('created_at') or self.clock()

            return {
                **user_data,
                'level_progress': progression.level_progress(user_data.get('xp', 0)),
                'account_age_days': (self.clock() - created_at).days,
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting user profile: {str(e)}")
            raise DatabaseError(f"Failed to get user profile: {str(e)}")

    def get_public_profile(self, user_id):
        """
        Profile fields other players may see
        """
        try:
            user_data = self.get_user(user_id)
            stats = user_data.get('statistics', {})

            return {
                'id': user_id,
                'display_name': user_data.get('display_name', 'Explorer'),
                'avatar': user_data.get('avatar', ''),
                'level': user_data.get('level', 1),
                'xp': user_data.get('xp', 0),
                'wellness_capital': user_data.get('wellness_capital', 0),
                'current_streak': user_data.get('current_streak', 0),
                'achievements': len(user_data.get('achievements', [])),
                'followers': len(user_data.get('followers', [])),
                'following': len(user_data.get('following', [])),
                'statistics': {
                    'territories_captured': stats.get('territories_captured', 0),
                    'knowledge_orbs_collected': stats.get('knowledge_orbs_collected', 0),
                    'quests_completed': stats.get('quests_completed', 0),
                    'total_distance_walked': stats.get('total_distance_walked', 0),
                },
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting public profile: {str(e)}")
            raise DatabaseError(f"Failed to get public profile: {str(e)}")

    def update_user_profile(self, user_id, update_data):
        """
        Update user profile information
        """
        try:
            self.get_user(user_id)

            filtered_data = {}
            if 'display_name' in update_data:
                name = str(update_data['display_name'] or '').strip()
                if not name:
                    raise ValidationError("Display name cannot be empty", field='display_name')
                filtered_data['display_name'] = name[:50]
            if 'avatar' in update_data:
                filtered_data['avatar'] = str(update_data['avatar'] or '')

            preferences = update_data.get('preferences')
            if preferences is not None:
                if not isinstance(preferences, dict):
                    raise ValidationError("Preferences must be an object", field='preferences')
                filtered_data.update(self._validate_preferences(preferences))

            if not filtered_data:
                raise ValidationError("No valid fields to update")

            filtered_data['updated_at'] = self.clock()
            self.users_ref.document(user_id).update(filtered_data)

            logger.info(f"Updated profile for user: {user_id}")

            return {
                'success': True,
                'updated_fields': [k for k in filtered_data if k != 'updated_at'],
                'message': 'Profile updated successfully'
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error updating user profile: {str(e)}")
            raise DatabaseError(f"Failed to update profile: {str(e)}")

    def award(self, user_id, xp=0, wellness_capital=0, source='activity', stats=None, reference=None):
        """
        Credit XP and Wellness Capital, recompute level and streak, bump
        statistics counters and record the reward in the ledger
        """
        try:
            user_data = self.get_user(user_id)
            now = self.clock()

            xp = max(0, int(xp))
            wellness_capital = max(0, int(wellness_capital))

            old_level = user_data.get('level', 1)
            new_xp = user_data.get('xp', 0) + xp
            new_level = progression.level_for_xp(new_xp)
            new_wc = user_data.get('wellness_capital', 0) + wellness_capital

            streak = progression.update_streak(
                user_data.get('current_streak', 0),
                user_data.get('max_streak', 0),
                user_data.get('last_active_at'),
                now,
                user_data.get('preferences', {}).get('timezone'),
            )

            update_data = {
                'xp': new_xp,
                'level': new_level,
                'wellness_capital': new_wc,
                'total_points': user_data.get('total_points', 0) + xp,
                'current_streak': streak['current_streak'],
                'max_streak': streak['max_streak'],
                'last_active_at': now,
                'updated_at': now,
            }
            if xp:
                update_data['statistics.points_earned'] = firestore.Increment(xp)
            for field, amount in (stats or {}).items():
                if amount:
                    update_data[f'statistics.{field}'] = firestore.Increment(amount)

            self.users_ref.document(user_id).update(update_data)

            if xp or wellness_capital:
                self.rewards_ref.add({
                    'user_id': user_id,
                    'xp': xp,
                    'wellness_capital': wellness_capital,
                    'source': source,
                    'reference': reference,
                    'created_at': now,
                })

            level_up = new_level > old_level
            if level_up:
                logger.info(f"User {user_id} leveled up from {old_level} to {new_level}")

            return {
                'xp_gained': xp,
                'wellness_capital_gained': wellness_capital,
                'new_xp': new_xp,
                'new_level': new_level,
                'wellness_capital': new_wc,
                'level_up': level_up,
                'current_streak': streak['current_streak'],
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error awarding user {user_id}: {str(e)}")
            raise DatabaseError(f"Failed to award rewards: {str(e)}")

    def record_activity_totals(self, user_id, totals):
        """
        Add an ended session's distance, time, steps and calories to the
        user's lifetime statistics
        """
        stats = {
            stat: totals.get(key, 0)
            for key, stat in ACTIVITY_STAT_FIELDS.items()
        }
        return self.award(user_id, source='activity', stats=stats)

    def _validate_preferences(self, preferences):
        update = {}
        for key, value in preferences.items():
            if key not in PREFERENCE_FIELDS:
                continue
            if key == 'theme':
                if value not in THEMES:
                    raise ValidationError(f"Theme must be one of: {', '.join(THEMES)}", field='theme')
            elif key == 'timezone':
                if value not in pytz.all_timezones_set:
                    raise ValidationError(f"Unknown timezone: {value}", field='timezone')
            elif not isinstance(value, bool):
                raise ValidationError(f"Preference '{key}' must be true or false", field=key)
            update[f'preferences.{key}'] = value
        return update
