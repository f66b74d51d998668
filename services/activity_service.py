"""
Activity Service for WellQuest
Handles game sessions: GPS samples, distance/steps/calories, goal progress
and territory claims from walked paths
"""

from datetime import datetime, timedelta, timezone
import logging

from engine import activity, geometry, progression
from engine.activity import ActivityMetrics
from engine.path_tracker import PathTracker
from utils.error_handler import (
    WellQuestError, ValidationError, AuthorizationError, NotFoundError,
    ConflictError, DatabaseError, parse_timestamp
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
# Firestore documents are capped at 1 MiB
MAX_LOCATION_HISTORY = 2000


def _location_entry(lat, lng, at, speed=None, accuracy=None):
    return {
        'lat': lat,
        'lng': lng,
        'timestamp': at,
        'speed': speed,
        'accuracy': accuracy,
    }


class ActivityService:
    def __init__(self, db, user_service, territory_service, achievement_service,
                 challenge_service, clock=None):
        self.db = db
        self.sessions_ref = db.collection('game_sessions')
        self.user_service = user_service
        self.territory_service = territory_service
        self.achievement_service = achievement_service
        self.challenge_service = challenge_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def start_session(self, user_id, session_type='GENERAL', latitude=None, longitude=None):
        """
        Start an activity session; a user runs one at a time
        """
        try:
            session_type = (session_type or 'GENERAL').upper()
            if session_type not in activity.SESSION_TYPES:
                raise ValidationError(
                    f"Session type must be one of: {', '.join(activity.SESSION_TYPES)}", field='session_type'
                )
            self.user_service.get_user(user_id)
            if self._find_active(user_id) is not None:
                raise ConflictError("An activity session is already running")

            now = self.clock()
            metrics = ActivityMetrics(session_type, started_at=now)
            tracker = PathTracker()
            tracker.start()

            start_location = None
            history = []
            if latitude is not None and longitude is not None:
                lat, lng = geometry.validate_coordinates(latitude, longitude)
                metrics.add_sample(lat, lng, now)
                tracker.add_point(lat, lng, now)
                start_location = _location_entry(lat, lng, now)
                history.append(start_location)

            session_data = {
                'user_id': user_id,
                'session_type': session_type,
                'start_time': now,
                'end_time': None,
                'is_active': True,
                'start_location': start_location,
                'end_location': None,
                'location_history': history,
                'metrics': metrics.to_dict(),
                'tracker': tracker.to_dict(),
                'territories_captured': [],
                'points_earned': 0,
                **metrics.summary(),
            }

            _, doc_ref = self.sessions_ref.add(session_data)
            logger.info(f"User {user_id} started {session_type} session {doc_ref.id}")
            return {'id': doc_ref.id, **self._public(session_data)}

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error starting session: {str(e)}")
            raise DatabaseError(f"Failed to start session: {str(e)}")

    def record_location(self, user_id, session_id, point):
        """
        Feed one GPS sample into a running session. Closing a path claims a
        territory and credits its reward.
        """
        try:
            session = self._get_owned(user_id, session_id)
            if not session.get('is_active'):
                raise ConflictError("Activity session has ended")

            lat, lng = geometry.validate_coordinates(point.get('lat'), point.get('lng'))
            at = parse_timestamp(point.get('timestamp')) or self.clock()
            speed = point.get('speed')

            metrics = ActivityMetrics.from_dict(session['metrics'])
            tracker = PathTracker.from_dict(session.get('tracker'))

            added = metrics.add_sample(lat, lng, at, speed)
            claimed = tracker.add_point(lat, lng, at)

            history = session.get('location_history', [])
            history.append(_location_entry(lat, lng, at, speed, point.get('accuracy')))
            history = history[-MAX_LOCATION_HISTORY:]

            update = {
                'location_history': history,
                'metrics': metrics.to_dict(),
                'tracker': tracker.to_dict(),
                **metrics.summary(),
            }

            claim = None
            if claimed is not None:
                claim = self.territory_service.save_claimed_territory(user_id, claimed, session_id)
                update['territories_captured'] = session.get('territories_captured', []) + [claimed.id]
                update['points_earned'] = session.get('points_earned', 0) + claim['territory']['reward']
                self.challenge_service.record_contribution(user_id, 'territories', 1)

            self.sessions_ref.document(session_id).update(update)

            result = {
                'session_id': session_id,
                'distance_added': round(added, 2),
                'metrics': metrics.summary(),
                'path_points': len(tracker.path),
                'territory_claimed': claim,
            }
            if claim:
                result['achievements_unlocked'] = [
                    a['id'] for a in self.achievement_service.check_and_award(user_id)
                ]
            return result

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error recording location: {str(e)}")
            raise DatabaseError(f"Failed to record location: {str(e)}")

    def end_session(self, user_id, session_id):
        """
        Finalise a session and add its totals to the user's statistics
        """
        try:
            session = self._get_owned(user_id, session_id)
            if not session.get('is_active'):
                raise ConflictError("Activity session has already ended")

            now = self.clock()
            metrics = ActivityMetrics.from_dict(session['metrics'])
            tracker = PathTracker.from_dict(session.get('tracker'))
            tracker.stop()
            summary = metrics.summary()

            history = session.get('location_history', [])
            update = {
                'is_active': False,
                'end_time': now,
                'end_location': history[-1] if history else None,
                'tracker': tracker.to_dict(),
                **summary,
            }
            self.sessions_ref.document(session_id).update(update)

            reward = self.user_service.record_activity_totals(user_id, {
                'distance_m': summary['total_distance'],
                'duration_s': summary['total_duration'],
                'steps': summary['step_count'],
                'calories': summary['calories_burned'],
            })
            completed_challenges = self.challenge_service.record_contribution(
                user_id, 'steps', summary['step_count']
            )
            achievements = self.achievement_service.check_and_award(user_id)

            logger.info(
                f"User {user_id} ended session {session_id}: "
                f"{summary['total_distance']} m, {summary['step_count']} steps"
            )

            session.update(update)
            return {
                'id': session_id,
                **self._public(session),
                'current_streak': reward['current_streak'],
                'achievements_unlocked': [a['id'] for a in achievements],
                'challenges_completed': completed_challenges,
            }

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error ending session: {str(e)}")
            raise DatabaseError(f"Failed to end session: {str(e)}")

    def get_current_session(self, user_id):
        try:
            found = self._find_active(user_id)
            if found is None:
                return None
            session_id, session = found
            return {'id': session_id, **self._public(session)}

        except Exception as e:
            logger.error(f"Error getting current session: {str(e)}")
            raise DatabaseError(f"Failed to get current session: {str(e)}")

    def get_user_sessions(self, user_id, limit=DEFAULT_HISTORY_LIMIT):
        """
        Ended sessions, newest first
        """
        try:
            sessions = []
            ended = (
                self.sessions_ref
                .where('user_id', '==', user_id)
                .where('is_active', '==', False)
                .stream()
            )
            for doc in ended:
                sessions.append({'id': doc.id, **self._public(doc.to_dict())})

            sessions.sort(key=lambda s: s['end_time'], reverse=True)
            return sessions[:int(limit)]

        except Exception as e:
            logger.error(f"Error getting user sessions: {str(e)}")
            raise DatabaseError(f"Failed to get user sessions: {str(e)}")

    def get_activity_summary(self, user_id):
        """
        Today's totals and this week's active minutes against the daily goals
        """
        try:
            user = self.user_service.get_user(user_id)
            tz_name = user.get('preferences', {}).get('timezone')
            now = self.clock()
            today = progression.local_date(now, tz_name)
            week_start = today - timedelta(days=today.weekday())

            totals = {'steps': 0, 'distance_km': 0.0, 'calories': 0, 'weekly_active_minutes': 0.0}
            sessions = self.sessions_ref.where('user_id', '==', user_id).stream()
            for doc in sessions:
                session = doc.to_dict()
                day = progression.local_date(session['start_time'], tz_name)
                if day < week_start:
                    continue
                totals['weekly_active_minutes'] += session.get('total_duration', 0) / 60
                if day == today:
                    totals['steps'] += session.get('step_count', 0)
                    totals['distance_km'] += session.get('total_distance', 0) / 1000
                    totals['calories'] += session.get('calories_burned', 0)

            totals['distance_km'] = round(totals['distance_km'], 2)
            totals['weekly_active_minutes'] = round(totals['weekly_active_minutes'], 1)

            return {
                'date': today.isoformat(),
                'totals': totals,
                'goals': dict(activity.DEFAULT_GOALS),
                'progress': activity.goal_progress(totals),
                'current_streak': user.get('current_streak', 0),
            }

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error getting activity summary: {str(e)}")
            raise DatabaseError(f"Failed to get activity summary: {str(e)}")

    def _find_active(self, user_id):
        active = (
            self.sessions_ref
            .where('user_id', '==', user_id)
            .where('is_active', '==', True)
            .limit(1)
            .stream()
        )
        for doc in active:
            return doc.id, doc.to_dict()
        return None

    def _get_owned(self, user_id, session_id):
        session_doc = self.sessions_ref.document(session_id).get()
        if not session_doc.exists:
            raise NotFoundError("Activity session not found")
        session = session_doc.to_dict()
        if session.get('user_id') != user_id:
            raise AuthorizationError("This activity session belongs to another user")
        return session

    def _public(self, session):
        # Internal tracker state stays server side
        return {k: v for k, v in session.items() if k not in ('metrics', 'tracker', 'location_history')}
