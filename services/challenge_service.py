"""
Team Challenge Service for WellQuest
Handles team challenges, joining, shared progress and reward distribution
"""

from datetime import datetime, timedelta, timezone
import logging

from firebase_admin import firestore

from data.seed_data import CHALLENGE_TEMPLATES
from utils.error_handler import (
    WellQuestError, ValidationError, NotFoundError, ConflictError, DatabaseError
)

logger = logging.getLogger(__name__)

CHALLENGE_TYPES = ('steps', 'quests', 'territories', 'mixed')
CONTRIBUTION_KINDS = ('steps', 'quests', 'territories')


def challenge_status(challenge, now):
    """
    upcoming before the start date, completed once ended or the target is
    reached, active otherwise
    """
    progress = challenge.get('progress', {})
    if progress.get('current', 0) >= progress.get('target', 0) > 0:
        return 'completed'
    if now < challenge['start_date']:
        return 'upcoming'
    if now >= challenge['end_date']:
        return 'completed'
    return 'active'


class ChallengeService:
    def __init__(self, db, user_service, clock=None):
        self.db = db
        self.challenges_ref = db.collection('team_challenges')
        self.user_service = user_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_challenges(self, user_id):
        """
        All team challenges with status, joined flag and time remaining
        """
        try:
            now = self.clock()
            challenges = []
            for challenge_doc in self.challenges_ref.stream():
                challenge = challenge_doc.to_dict()
                challenge['id'] = challenge_doc.id
                challenges.append(self._decorate(challenge, user_id, now))

            challenges.sort(key=lambda c: c['start_date'])
            return {
                'challenges': challenges,
                'joined_count': len([c for c in challenges if c['joined']]),
                'active_count': len([c for c in challenges if c['status'] == 'active']),
                'total_count': len(challenges),
            }

        except Exception as e:
            logger.error(f"Error getting challenges: {str(e)}")
            raise DatabaseError(f"Failed to get challenges: {str(e)}")

    def get_challenge(self, challenge_id):
        challenge_doc = self.challenges_ref.document(challenge_id).get()
        if not challenge_doc.exists:
            raise NotFoundError("Challenge not found")
        challenge = challenge_doc.to_dict()
        challenge['id'] = challenge_doc.id
        return challenge

    def join_challenge(self, user_id, challenge_id):
        """
        Add the user to a team challenge that is not over or full
        """
        try:
            challenge = self.get_challenge(challenge_id)
            now = self.clock()
            participants = challenge.get('participants', [])

            if challenge_status(challenge, now) == 'completed':
                raise ConflictError("Challenge is already completed")
            if user_id in participants:
                raise ConflictError("You already joined this challenge")
            if len(participants) >= challenge.get('max_participants', 0):
                raise ConflictError("Challenge is full")

            self.challenges_ref.document(challenge_id).update({
                'participants': firestore.ArrayUnion([user_id]),
                'updated_at': now,
            })

            logger.info(f"User {user_id} joined challenge {challenge_id}")

            challenge['participants'] = participants + [user_id]
            return self._decorate(challenge, user_id, now)

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error joining challenge: {str(e)}")
            raise DatabaseError(f"Failed to join challenge: {str(e)}")

    def record_contribution(self, user_id, kind, amount):
        """
        Add progress to the user's active challenges of a matching type.
        Returns the ids of challenges this contribution completed.
        """
        try:
            if kind not in CONTRIBUTION_KINDS:
                raise ValidationError(f"Unknown contribution kind: {kind}")
            if not amount or amount <= 0:
                return []

            now = self.clock()
            completed = []
            joined = self.challenges_ref.where('participants', 'array_contains', user_id).stream()

            for challenge_doc in joined:
                challenge = challenge_doc.to_dict()
                if challenge.get('type') not in (kind, 'mixed'):
                    continue
                if challenge_status(challenge, now) != 'active':
                    continue

                progress = challenge.get('progress', {})
                current = progress.get('current', 0) + amount
                update = {
                    'progress.current': current,
                    'updated_at': now,
                }

                reached = current >= progress.get('target', 0)
                if reached and not challenge.get('rewarded', False):
                    update['rewarded'] = True
                    update['completed_at'] = now

                self.challenges_ref.document(challenge_doc.id).update(update)

                if 'rewarded' in update:
                    self._reward_participants(challenge_doc.id, challenge)
                    completed.append(challenge_doc.id)

            return completed

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error recording challenge contribution: {str(e)}")
            raise DatabaseError(f"Failed to record contribution: {str(e)}")

    def create_challenge(self, title, description, challenge_type, target, start_date, end_date,
                         max_participants=5, rewards=None):
        """
        Create a team challenge (admin)
        """
        try:
            if challenge_type not in CHALLENGE_TYPES:
                raise ValidationError(f"Challenge type must be one of: {', '.join(CHALLENGE_TYPES)}")
            if end_date <= start_date:
                raise ValidationError("Challenge must end after it starts")
            if int(target) <= 0 or int(max_participants) <= 0:
                raise ValidationError("Target and max participants must be positive")

            now = self.clock()
            challenge_data = {
                'title': title,
                'description': description,
                'type': challenge_type,
                'start_date': start_date,
                'end_date': end_date,
                'participants': [],
                'max_participants': int(max_participants),
                'rewards': rewards or {'xp': 0, 'wellness_capital': 0},
                'progress': {'current': 0, 'target': int(target)},
                'rewarded': False,
                'created_at': now,
                'updated_at': now,
            }

            _, doc_ref = self.challenges_ref.add(challenge_data)
            logger.info(f"Created team challenge: {title}")
            return doc_ref.id

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error creating challenge: {str(e)}")
            raise DatabaseError(f"Failed to create challenge: {str(e)}")

    def seed_challenges(self):
        """
        Seed the sample team challenges, starting relative to today
        """
        now = self.clock()
        challenge_ids = []
        for start_offset, duration, template in CHALLENGE_TEMPLATES:
            start_date = now + timedelta(days=start_offset)
            challenge_ids.append(self.create_challenge(
                template['title'],
                template['description'],
                template['type'],
                template['target'],
                start_date,
                start_date + timedelta(days=duration),
                max_participants=template['max_participants'],
                rewards=dict(template['rewards']),
            ))
        logger.info(f"Seeded {len(challenge_ids)} team challenges")
        return challenge_ids

    def _reward_participants(self, challenge_id, challenge):
        rewards = challenge.get('rewards', {})
        for participant in challenge.get('participants', []):
            try:
                self.user_service.award(
                    participant,
                    xp=rewards.get('xp', 0),
                    wellness_capital=rewards.get('wellness_capital', 0),
                    source='team_challenge',
                    reference=challenge_id,
                )
            except NotFoundError:
                logger.warning(f"Skipping reward for missing participant {participant}")
        logger.info(f"Team challenge {challenge_id} completed, rewarded {len(challenge.get('participants', []))} participants")

    def _decorate(self, challenge, user_id, now):
        status = challenge_status(challenge, now)
        if status == 'upcoming':
            remaining = challenge['start_date'] - now
        elif status == 'active':
            remaining = challenge['end_date'] - now
        else:
            remaining = timedelta(0)

        participants = challenge.get('participants', [])
        return {
            **challenge,
            'status': status,
            'joined': user_id in participants,
            'participant_count': len(participants),
            'time_remaining': int(remaining.total_seconds()),
        }
