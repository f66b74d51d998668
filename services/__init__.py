"""
Service wiring for WellQuest
"""

from services.user_service import UserService
from services.auth_service import AuthService
from services.achievement_service import AchievementService
from services.challenge_service import ChallengeService
from services.social_service import SocialService
from services.territory_service import TerritoryService
from services.asset_service import AssetService
from services.quest_service import QuestService
from services.activity_service import ActivityService
from services.leaderboard_service import LeaderboardService


class ServiceRegistry:
    """Builds every service against one Firestore client"""

    def __init__(self, db, clock=None):
        self.db = db
        self.user = UserService(db, clock)
        self.auth = AuthService(db, clock)
        self.achievement = AchievementService(db, self.user, clock)
        self.challenge = ChallengeService(db, self.user, clock)
        self.social = SocialService(db, self.user, clock)
        self.territory = TerritoryService(db, self.user, clock)
        self.asset = AssetService(db, self.user, clock)
        self.quest = QuestService(
            db, self.user, self.asset, self.social, self.achievement, self.challenge, clock
        )
        self.activity = ActivityService(
            db, self.user, self.territory, self.achievement, self.challenge, clock
        )
        self.leaderboard = LeaderboardService(db, clock)
