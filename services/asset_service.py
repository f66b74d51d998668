"""
Wellness Asset Service for WellQuest
Handles map territories and knowledge orbs: nearby search, capture,
contests and orb activation
"""

from datetime import datetime, timedelta, timezone
import logging

from firebase_admin import firestore

from data import quest_data
from data.seed_data import ORB_TEMPLATES
from engine import geometry
from utils.error_handler import (
    WellQuestError, ValidationError, NotFoundError, ConflictError,
    OutOfRangeError, DatabaseError, parse_timestamp
)

logger = logging.getLogger(__name__)

TERRITORY = 'TERRITORY'
KNOWLEDGE_ORB = 'KNOWLEDGE_ORB'
ASSET_TYPES = (TERRITORY, KNOWLEDGE_ORB)

DEFAULT_SEARCH_RADIUS = 1000
MAX_NEARBY_ASSETS = 50
TERRITORY_RADIUS = 50
TERRITORY_POINTS = 100
ORB_RADIUS = 30
ORB_POINTS = 50
CONTEST_DURATION = timedelta(minutes=5)


class AssetService:
    def __init__(self, db, user_service, clock=None):
        self.db = db
        self.assets_ref = db.collection('wellness_assets')
        self.user_service = user_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_nearby_assets(self, latitude, longitude, radius=DEFAULT_SEARCH_RADIUS, asset_type=None):
        """
        Active assets within radius metres, nearest first
        """
        try:
            center = geometry.validate_coordinates(latitude, longitude)
            radius = float(radius)
            if radius <= 0:
                raise ValidationError("Radius must be positive", field='radius')
            if asset_type and asset_type not in ASSET_TYPES:
                raise ValidationError(f"Asset type must be one of: {', '.join(ASSET_TYPES)}", field='type')

            # Firestore has no radius queries, narrow by latitude band first
            min_lat, max_lat, _, _ = geometry.bounding_box(center[0], center[1], radius)
            assets_query = (
                self.assets_ref
                .where('latitude', '>=', min_lat)
                .where('latitude', '<=', max_lat)
                .where('is_active', '==', True)
            )

            assets = []
            for asset_doc in assets_query.stream():
                asset = asset_doc.to_dict()
                asset['id'] = asset_doc.id
                if asset_type and asset.get('type') != asset_type:
                    continue

                distance = geometry.haversine_distance(center, (asset['latitude'], asset['longitude']))
                if distance <= radius:
                    asset['distance'] = round(distance, 1)
                    assets.append(asset)

            assets.sort(key=lambda a: a['distance'])
            return assets[:MAX_NEARBY_ASSETS]

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error fetching nearby assets: {str(e)}")
            raise DatabaseError(f"Failed to fetch nearby assets: {str(e)}")

    def get_asset(self, asset_id, asset_type=None):
        asset_doc = self.assets_ref.document(asset_id).get()
        if not asset_doc.exists:
            raise NotFoundError("Asset not found")

        asset = asset_doc.to_dict()
        asset['id'] = asset_doc.id
        if asset_type and asset.get('type') != asset_type:
            kind = 'Territory' if asset_type == TERRITORY else 'Knowledge orb'
            raise NotFoundError(f"{kind} not found")
        return asset

    def create_territory(self, latitude, longitude, title, description='',
                         radius=TERRITORY_RADIUS, points=TERRITORY_POINTS):
        """
        Place a capturable territory on the map (admin)
        """
        try:
            lat, lng = geometry.validate_coordinates(latitude, longitude)
            if not title:
                raise ValidationError("Title is required", field='title')
            now = self.clock()

            territory_data = {
                'type': TERRITORY,
                'latitude': lat,
                'longitude': lng,
                'radius': float(radius),
                'title': title,
                'description': description,
                'points': int(points),
                'created_at': now,
                'last_updated_at': now,
                'is_active': True,
                'owner_id': None,
                'owner_display_name': None,
                'captured_at': None,
                'is_contested': False,
                'contest_start_time': None,
                'contest_end_time': None,
                'contest_participants': [],
            }

            _, doc_ref = self.assets_ref.add(territory_data)
            logger.info(f"Created territory {doc_ref.id} at ({lat}, {lng})")
            return doc_ref.id

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error creating territory: {str(e)}")
            raise DatabaseError(f"Failed to create territory: {str(e)}")

    def create_knowledge_orb(self, latitude, longitude, title, category, difficulty='easy',
                             description='', radius=ORB_RADIUS, points=ORB_POINTS,
                             expires_at=None, max_collections=None, is_active=True):
        """
        Place a knowledge orb on the map (admin)
        """
        try:
            lat, lng = geometry.validate_coordinates(latitude, longitude)
            if not title:
                raise ValidationError("Title is required", field='title')
            category = (category or '').lower()
            if category not in quest_data.QUEST_TYPES:
                raise ValidationError(
                    f"Category must be one of: {', '.join(quest_data.QUEST_TYPES)}", field='category'
                )
            difficulty = (difficulty or 'easy').lower()
            if difficulty not in quest_data.DIFFICULTIES:
                raise ValidationError(
                    f"Difficulty must be one of: {', '.join(quest_data.DIFFICULTIES)}", field='difficulty'
                )
            if max_collections is not None and int(max_collections) < 1:
                raise ValidationError("Max collections must be at least 1", field='max_collections')
            now = self.clock()

            orb_data = {
                'type': KNOWLEDGE_ORB,
                'latitude': lat,
                'longitude': lng,
                'radius': float(radius),
                'title': title,
                'description': description or f"{difficulty} {category} quest",
                'difficulty': difficulty,
                'category': category,
                'points': int(points),
                'created_at': now,
                'last_updated_at': now,
                'is_active': bool(is_active),
                'expires_at': parse_timestamp(expires_at),
                'max_collections': int(max_collections) if max_collections is not None else None,
                'collected_by': [],
            }

            _, doc_ref = self.assets_ref.add(orb_data)
            logger.info(f"Created knowledge orb {doc_ref.id} ({category}) at ({lat}, {lng})")
            return doc_ref.id

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error creating knowledge orb: {str(e)}")
            raise DatabaseError(f"Failed to create knowledge orb: {str(e)}")

    def capture_territory(self, asset_id, user_id, latitude, longitude):
        """
        Take ownership of a territory the player is standing in
        """
        try:
            territory = self.get_asset(asset_id, TERRITORY)
            now = self.clock()
            self._require_in_range(territory, latitude, longitude)

            if not territory.get('is_active', True):
                raise ConflictError("Territory is not active")
            if territory.get('owner_id') == user_id:
                raise ConflictError("You already own this territory")
            if self._contest_running(territory, now) and user_id not in territory.get('contest_participants', []):
                raise ConflictError("Territory is being contested, join the contest to capture it")

            user = self.user_service.get_user(user_id)
            previous_owner = territory.get('owner_id')

            self.assets_ref.document(asset_id).update({
                'owner_id': user_id,
                'owner_display_name': user.get('display_name'),
                'captured_at': now,
                'last_updated_at': now,
                'is_contested': False,
                'contest_start_time': None,
                'contest_end_time': None,
                'contest_participants': [],
            })

            points = territory.get('points', TERRITORY_POINTS)
            reward = self.user_service.award(
                user_id,
                xp=points,
                wellness_capital=points,
                source='territory_capture',
                stats={'territories_captured': 1},
                reference=asset_id,
            )

            logger.info(f"User {user_id} captured territory {asset_id} from {previous_owner}")

            return {
                'success': True,
                'territory_id': asset_id,
                'previous_owner_id': previous_owner,
                'reward': reward,
            }

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error capturing territory: {str(e)}")
            raise DatabaseError(f"Failed to capture territory: {str(e)}")

    def contest_territory(self, asset_id, user_id, latitude, longitude):
        """
        Open a five minute contest on an owned territory, or join the running one
        """
        try:
            territory = self.get_asset(asset_id, TERRITORY)
            now = self.clock()
            self._require_in_range(territory, latitude, longitude)

            owner_id = territory.get('owner_id')
            if not owner_id:
                raise ConflictError("Unclaimed territories can be captured directly")
            if owner_id == user_id:
                raise ConflictError("You cannot contest your own territory")

            territory_ref = self.assets_ref.document(asset_id)

            if self._contest_running(territory, now):
                participants = territory.get('contest_participants', [])
                if user_id not in participants:
                    territory_ref.update({
                        'contest_participants': firestore.ArrayUnion([user_id]),
                        'last_updated_at': now,
                    })
                    participants = participants + [user_id]
                return {
                    'success': True,
                    'territory_id': asset_id,
                    'joined': True,
                    'contest_end_time': territory['contest_end_time'],
                    'contest_participants': participants,
                }

            end_time = now + CONTEST_DURATION
            territory_ref.update({
                'is_contested': True,
                'contest_start_time': now,
                'contest_end_time': end_time,
                'contest_participants': [user_id],
                'last_updated_at': now,
            })

            logger.info(f"User {user_id} opened a contest on territory {asset_id}")

            return {
                'success': True,
                'territory_id': asset_id,
                'joined': False,
                'contest_end_time': end_time,
                'contest_participants': [user_id],
            }

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error contesting territory: {str(e)}")
            raise DatabaseError(f"Failed to contest territory: {str(e)}")

    def activate_orb(self, orb_id, user_id, latitude, longitude, user_level=1):
        """
        Check a player may open this orb and pick the quest it launches
        """
        try:
            orb = self.get_asset(orb_id, KNOWLEDGE_ORB)
            now = self.clock()

            if not orb.get('is_active', True):
                raise ConflictError("Knowledge orb is not active")
            expires_at = orb.get('expires_at')
            if expires_at and expires_at <= now:
                raise ConflictError("Knowledge orb has expired")
            self._require_in_range(orb, latitude, longitude)

            collected_by = orb.get('collected_by', [])
            if user_id in collected_by:
                raise ConflictError("You already collected this knowledge orb")
            max_collections = orb.get('max_collections')
            if max_collections and len(collected_by) >= max_collections:
                raise ConflictError("Knowledge orb has no collections left")

            quest = (
                quest_data.get_random_quest(orb.get('category'), user_level)
                or quest_data.get_random_quest(None, user_level)
            )
            if quest is None:
                raise NotFoundError("No quest available for your level")

            logger.info(f"User {user_id} activated orb {orb_id}, quest {quest['id']}")
            return {'orb': orb, 'quest': quest}

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error activating knowledge orb: {str(e)}")
            raise DatabaseError(f"Failed to activate knowledge orb: {str(e)}")

    def collect_knowledge_orb(self, orb_id, user_id):
        """
        Mark the orb as collected by the player; exhausted orbs are deactivated
        """
        try:
            orb = self.get_asset(orb_id, KNOWLEDGE_ORB)
            collected_by = orb.get('collected_by', [])
            if user_id in collected_by:
                return False
            max_collections = orb.get('max_collections')
            if max_collections and len(collected_by) >= max_collections:
                logger.info(f"Knowledge orb {orb_id} was exhausted before user {user_id} finished")
                return False

            update = {
                'collected_by': firestore.ArrayUnion([user_id]),
                'last_updated_at': self.clock(),
            }
            if max_collections and len(collected_by) + 1 >= max_collections:
                update['is_active'] = False

            self.assets_ref.document(orb_id).update(update)
            logger.info(f"User {user_id} collected knowledge orb {orb_id}")
            return True

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error collecting knowledge orb: {str(e)}")
            raise DatabaseError(f"Failed to collect knowledge orb: {str(e)}")

    def seed_orbs_around(self, latitude, longitude):
        """
        Scatter the sample orbs around a point (development)
        """
        lat, lng = geometry.validate_coordinates(latitude, longitude)
        orb_ids = []
        for lat_offset, lng_offset, template in ORB_TEMPLATES:
            orb_ids.append(self.create_knowledge_orb(
                lat + lat_offset,
                lng + lng_offset,
                template['name'],
                template['category'],
                difficulty=template['difficulty'],
                description=template['description'],
                points=template['points'],
                is_active=template['is_active'],
            ))
        logger.info(f"Seeded {len(orb_ids)} knowledge orbs around ({lat}, {lng})")
        return orb_ids

    def _require_in_range(self, asset, latitude, longitude):
        point = geometry.validate_coordinates(latitude, longitude)
        distance = geometry.haversine_distance(point, (asset['latitude'], asset['longitude']))
        if distance > asset.get('radius', 0):
            raise OutOfRangeError(
                f"Move within {asset.get('radius', 0):.0f} m to interact ({distance:.0f} m away)",
                distance=distance,
            )
        return distance

    def _contest_running(self, territory, now):
        end_time = territory.get('contest_end_time')
        return bool(territory.get('is_contested')) and end_time is not None and end_time > now
