"""
Achievement Service for WellQuest
Handles achievement definitions, progress tracking and awarding
"""

from datetime import datetime, timezone
import logging

from firebase_admin import firestore

from data.seed_data import ACHIEVEMENTS
from utils.error_handler import WellQuestError, DatabaseError

logger = logging.getLogger(__name__)

REQUIREMENT_TYPES = (
    'STEPS', 'DISTANCE', 'CALORIES', 'ACTIVE_TIME', 'TERRITORIES',
    'KNOWLEDGE_ORBS', 'QUESTS', 'STREAK', 'POSTS', 'LIKES'
)


def requirement_progress(requirement_type, user_data):
    """
    Current value a user has toward a requirement type
    """
    stats = user_data.get('statistics', {})

    if requirement_type == 'STEPS':
        return stats.get('total_steps', 0)
    elif requirement_type == 'DISTANCE':
        # Kilometres
        return round(stats.get('total_distance_walked', 0) / 1000, 2)
    elif requirement_type == 'CALORIES':
        return stats.get('total_calories', 0)
    elif requirement_type == 'ACTIVE_TIME':
        # Minutes
        return int(stats.get('total_time_active', 0) // 60)
    elif requirement_type == 'TERRITORIES':
        return stats.get('territories_captured', 0)
    elif requirement_type == 'KNOWLEDGE_ORBS':
        return stats.get('knowledge_orbs_collected', 0)
    elif requirement_type == 'QUESTS':
        return stats.get('quests_completed', 0)
    elif requirement_type == 'STREAK':
        return max(user_data.get('current_streak', 0), user_data.get('max_streak', 0))
    elif requirement_type == 'POSTS':
        return stats.get('posts_created', 0)
    elif requirement_type == 'LIKES':
        return stats.get('likes_received', 0)
    return 0


class AchievementService:
    def __init__(self, db, user_service, clock=None):
        self.db = db
        self.achievements_ref = db.collection('achievements')
        self.user_achievements_ref = db.collection('user_achievements')
        self.user_service = user_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_all_achievements(self):
        """
        Achievement definitions; the built-in set until the collection is seeded
        """
        try:
            achievements = []
            for achievement_doc in self.achievements_ref.stream():
                achievement = achievement_doc.to_dict()
                achievement['id'] = achievement_doc.id
                achievements.append(achievement)

            if not achievements:
                achievements = [dict(a) for a in ACHIEVEMENTS]

            achievements.sort(key=lambda a: (a['requirements']['type'], a['requirements']['target']))
            return achievements

        except Exception as e:
            logger.error(f"Error getting achievements: {str(e)}")
            raise DatabaseError(f"Failed to get achievements: {str(e)}")

    def get_user_achievements(self, user_id):
        """
        Every achievement with the user's progress toward it
        """
        try:
            user_data = self.user_service.get_user(user_id)
            earned = self._get_earned(user_id)

            achievements = []
            for achievement in self.get_all_achievements():
                requirement = achievement['requirements']
                progress = requirement_progress(requirement['type'], user_data)
                achievements.append({
                    **achievement,
                    'progress': min(progress, requirement['target']),
                    'max_progress': requirement['target'],
                    'is_unlocked': achievement['id'] in earned,
                    'unlocked_at': earned.get(achievement['id']),
                })

            unlocked = [a for a in achievements if a['is_unlocked']]
            return {
                'achievements': achievements,
                'unlocked_count': len(unlocked),
                'total_count': len(achievements),
                'points_earned': sum(a.get('points', 0) for a in unlocked),
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting user achievements: {str(e)}")
            raise DatabaseError(f"Failed to get user achievements: {str(e)}")

    def check_and_award(self, user_id):
        """
        Award every achievement the user now meets but has not earned yet
        """
        try:
            user_data = self.user_service.get_user(user_id)
            earned = self._get_earned(user_id)

            newly_unlocked = []
            for achievement in self.get_all_achievements():
                if achievement['id'] in earned:
                    continue
                requirement = achievement['requirements']
                if requirement_progress(requirement['type'], user_data) >= requirement['target']:
                    self._award(user_id, achievement)
                    newly_unlocked.append(achievement)

            if newly_unlocked:
                logger.info(f"Awarded {len(newly_unlocked)} achievements to user {user_id}")
            return newly_unlocked

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error checking achievements: {str(e)}")
            raise DatabaseError(f"Failed to check achievements: {str(e)}")

    def seed_achievements(self):
        """
        Write the built-in achievement definitions
        """
        try:
            for achievement in ACHIEVEMENTS:
                data = {k: v for k, v in achievement.items() if k != 'id'}
                data['created_at'] = self.clock()
                self.achievements_ref.document(achievement['id']).set(data)

            logger.info(f"Seeded {len(ACHIEVEMENTS)} achievements")
            return len(ACHIEVEMENTS)

        except Exception as e:
            logger.error(f"Error seeding achievements: {str(e)}")
            raise DatabaseError(f"Failed to seed achievements: {str(e)}")

    def _get_earned(self, user_id):
        earned = {}
        for doc in self.user_achievements_ref.where('user_id', '==', user_id).stream():
            data = doc.to_dict()
            earned[data['achievement_id']] = data.get('unlocked_at')
        return earned

    def _award(self, user_id, achievement):
        now = self.clock()
        # One record per user and achievement
        self.user_achievements_ref.document(f"{user_id}_{achievement['id']}").set({
            'user_id': user_id,
            'achievement_id': achievement['id'],
            'unlocked_at': now,
        })
        self.user_service.users_ref.document(user_id).update({
            'achievements': firestore.ArrayUnion([achievement['id']]),
            'updated_at': now,
        })

        points = achievement.get('points', 0)
        if points:
            self.user_service.award(
                user_id,
                xp=points,
                wellness_capital=points,
                source='achievement',
                reference=achievement['id'],
            )
        logger.info(f"Awarded achievement {achievement['id']} to user {user_id}")
