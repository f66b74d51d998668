"""
Territory Service for WellQuest
Stores territories claimed by walking closed paths and credits their rewards
"""

from datetime import datetime, timezone
import logging

from engine import geometry, progression
from utils.error_handler import WellQuestError, ValidationError, NotFoundError, DatabaseError

logger = logging.getLogger(__name__)

DEFAULT_NEAR_RADIUS = 1000


class TerritoryService:
    def __init__(self, db, user_service, clock=None):
        self.db = db
        self.territories_ref = db.collection('territories')
        self.user_service = user_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def save_claimed_territory(self, user_id, territory, session_id=None):
        """
        Persist a ClaimedTerritory and credit its area reward as XP and WC
        """
        try:
            user = self.user_service.get_user(user_id)
            reward_points = progression.territory_reward(territory.area_m2)

            territory_data = {
                **territory.to_dict(),
                'user_id': user_id,
                'owner_display_name': user.get('display_name', 'Explorer'),
                'session_id': session_id,
                'reward': reward_points,
            }
            self.territories_ref.document(territory.id).set(territory_data)

            reward = self.user_service.award(
                user_id,
                xp=reward_points,
                wellness_capital=reward_points,
                source='territory_claim',
                stats={'territories_captured': 1},
                reference=territory.id,
            )

            logger.info(
                f"User {user_id} claimed territory {territory.id}: "
                f"{territory_data['area_m2']} m2, {reward_points} XP"
            )
            return {'territory': territory_data, 'reward': reward}

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error saving claimed territory: {str(e)}")
            raise DatabaseError(f"Failed to save territory: {str(e)}")

    def get_territory(self, territory_id):
        territory_doc = self.territories_ref.document(territory_id).get()
        if not territory_doc.exists:
            raise NotFoundError("Territory not found")
        return territory_doc.to_dict()

    def get_user_territories(self, user_id):
        """
        A user's claimed territories, newest first, with totals
        """
        try:
            territories = [
                doc.to_dict()
                for doc in self.territories_ref.where('user_id', '==', user_id).stream()
            ]
            territories.sort(key=lambda t: t['claimed_at'], reverse=True)

            return {
                'territories': territories,
                'count': len(territories),
                'total_area_m2': round(sum(t.get('area_m2', 0) for t in territories), 2),
            }

        except Exception as e:
            logger.error(f"Error getting user territories: {str(e)}")
            raise DatabaseError(f"Failed to get user territories: {str(e)}")

    def get_territories_near(self, latitude, longitude, radius=DEFAULT_NEAR_RADIUS):
        """
        Claimed territories whose centroid lies within radius metres
        """
        try:
            center = geometry.validate_coordinates(latitude, longitude)
            radius = float(radius)
            if radius <= 0:
                raise ValidationError("Radius must be positive", field='radius')

            min_lat, max_lat, _, _ = geometry.bounding_box(center[0], center[1], radius)
            territories_query = (
                self.territories_ref
                .where('center.lat', '>=', min_lat)
                .where('center.lat', '<=', max_lat)
            )

            territories = []
            for doc in territories_query.stream():
                territory = doc.to_dict()
                centroid = (territory['center']['lat'], territory['center']['lng'])
                distance = geometry.haversine_distance(center, centroid)
                if distance <= radius:
                    territory['distance'] = round(distance, 1)
                    territories.append(territory)

            territories.sort(key=lambda t: t['distance'])
            return territories

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error getting nearby territories: {str(e)}")
            raise DatabaseError(f"Failed to get nearby territories: {str(e)}")
