"""
Knowledge Quest Service for WellQuest
Handles the quest catalogue, timed quest sessions, grading and rewards
"""

from datetime import datetime, timezone
import logging

from data import quest_data
from engine.quest_session import QuestSession, COMPLETED, IN_PROGRESS
from utils.error_handler import (
    WellQuestError, AuthorizationError, NotFoundError, ConflictError, DatabaseError
)

logger = logging.getLogger(__name__)


def sanitize_quest(quest, user_level=None):
    """
    Quest without correct answers or explanations
    """
    sanitized = {k: v for k, v in quest.items() if k != 'questions'}
    sanitized['question_count'] = len(quest['questions'])
    sanitized['questions'] = [
        {
            'id': q['id'],
            'text': q['text'],
            'options': q['options'],
            'points': q['points'],
        }
        for q in quest['questions']
    ]
    if user_level is not None:
        sanitized['locked'] = quest['prerequisite_level'] > user_level
    return sanitized


class QuestService:
    def __init__(self, db, user_service, asset_service, social_service,
                 achievement_service, challenge_service, clock=None):
        self.db = db
        self.sessions_ref = db.collection('quest_sessions')
        self.attempts_ref = db.collection('quest_attempts')
        self.user_service = user_service
        self.asset_service = asset_service
        self.social_service = social_service
        self.achievement_service = achievement_service
        self.challenge_service = challenge_service
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def list_quests(self, user_level, quest_type=None):
        """
        Catalogue with a locked flag for quests above the user's level
        """
        quests = quest_data.get_quests_by_type(quest_type) if quest_type else quest_data.get_all_quests()
        return [sanitize_quest(q, user_level) for q in quests]

    def get_quest(self, quest_id):
        quest = quest_data.get_quest_by_id(quest_id)
        if quest is None:
            raise NotFoundError("Quest not found")
        return sanitize_quest(quest)

    def start_quest(self, user_id, quest_id, user_level=None, orb_id=None):
        """
        Open a quest session and start its timer
        """
        try:
            quest = quest_data.get_quest_by_id(quest_id)
            if quest is None:
                raise NotFoundError("Quest not found")
            if user_level is None:
                user_level = self.user_service.get_user(user_id).get('level', 1)
            if quest['prerequisite_level'] > user_level:
                raise ConflictError(f"Reach level {quest['prerequisite_level']} to unlock this quest")

            now = self.clock()
            session = QuestSession(quest, user_level=user_level)
            session.start(now)

            _, doc_ref = self.sessions_ref.add({
                **session.to_dict(),
                'user_id': user_id,
                'orb_id': orb_id,
                'created_at': now,
                'updated_at': now,
            })

            logger.info(f"User {user_id} started quest {quest_id} (session {doc_ref.id})")
            return self._view(doc_ref.id, session, orb_id, now)

        except WellQuestError:
            raise
        except Exception as e:
            logger.error(f"Error starting quest: {str(e)}")
            raise DatabaseError(f"Failed to start quest: {str(e)}")

    def start_orb_quest(self, user_id, orb_id, latitude, longitude):
        """
        Activate a knowledge orb in range and start the quest it opens
        """
        user_level = self.user_service.get_user(user_id).get('level', 1)
        if self._has_open_orb_session(user_id, orb_id):
            raise ConflictError("You already have a quest running for this knowledge orb")
        activation = self.asset_service.activate_orb(orb_id, user_id, latitude, longitude, user_level)
        session = self.start_quest(user_id, activation['quest']['id'], user_level, orb_id=orb_id)
        session['orb'] = {
            'id': orb_id,
            'title': activation['orb'].get('title'),
            'category': activation['orb'].get('category'),
            'points': activation['orb'].get('points'),
        }
        return session

    def get_session(self, user_id, session_id):
        """
        Session state with live time remaining; an elapsed timer is applied first
        """
        session, data, outcome = self._load(user_id, session_id)
        view = self._view(session_id, session, data.get('orb_id'), self.clock())
        if outcome:
            view['completion'] = outcome
        return view

    def answer_question(self, user_id, session_id, question_index, option_index):
        try:
            session, data, _ = self._load(user_id, session_id)
            now = self.clock()
            session.select_answer(int(question_index), int(option_index), now)

            self.sessions_ref.document(session_id).update({
                'answers': session.answers,
                'updated_at': now,
            })
            return self._view(session_id, session, data.get('orb_id'), now)

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error answering question: {str(e)}")
            raise DatabaseError(f"Failed to answer question: {str(e)}")

    def complete_quest(self, user_id, session_id):
        """
        Grade the session and credit its rewards
        """
        try:
            session, data, outcome = self._load(user_id, session_id)
            if outcome:
                # The timer ran out and graded the session on load
                return outcome

            now = self.clock()
            session.complete(now)
            return self._finish(user_id, session_id, session, data.get('orb_id'), now)

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error completing quest: {str(e)}")
            raise DatabaseError(f"Failed to complete quest: {str(e)}")

    def abandon_quest(self, user_id, session_id):
        try:
            session, data, _ = self._load(user_id, session_id)
            now = self.clock()
            session.abandon(now)
            self._save(session_id, session, now)

            logger.info(f"User {user_id} abandoned quest session {session_id}")
            return self._view(session_id, session, data.get('orb_id'), now)

        except (WellQuestError, ValueError):
            raise
        except Exception as e:
            logger.error(f"Error abandoning quest: {str(e)}")
            raise DatabaseError(f"Failed to abandon quest: {str(e)}")

    def get_user_attempts(self, user_id, quest_id=None):
        """
        Completed quest attempts, newest first
        """
        try:
            attempts_query = self.attempts_ref.where('user_id', '==', user_id)
            if quest_id:
                attempts_query = attempts_query.where('quest_id', '==', quest_id)

            attempts = []
            for doc in attempts_query.stream():
                attempt = doc.to_dict()
                attempt['id'] = doc.id
                attempts.append(attempt)

            attempts.sort(key=lambda a: a['completed_at'], reverse=True)
            return attempts

        except Exception as e:
            logger.error(f"Error getting quest attempts: {str(e)}")
            raise DatabaseError(f"Failed to get quest attempts: {str(e)}")

    def _has_open_orb_session(self, user_id, orb_id):
        try:
            open_sessions = (
                self.sessions_ref
                .where('user_id', '==', user_id)
                .where('orb_id', '==', orb_id)
                .where('state', '==', IN_PROGRESS)
            )
            now = self.clock()
            for session_doc in open_sessions.stream():
                deadline = session_doc.to_dict().get('deadline')
                if deadline and deadline > now:
                    return True
            return False

        except Exception as e:
            logger.error(f"Error checking open orb sessions: {str(e)}")
            raise DatabaseError(f"Failed to check quest sessions: {str(e)}")

    def _load(self, user_id, session_id):
        session_doc = self.sessions_ref.document(session_id).get()
        if not session_doc.exists:
            raise NotFoundError("Quest session not found")

        data = session_doc.to_dict()
        if data.get('user_id') != user_id:
            raise AuthorizationError("This quest session belongs to another user")

        quest = quest_data.get_quest_by_id(data['quest_id'])
        if quest is None:
            raise NotFoundError("Quest not found")

        session = QuestSession.from_dict(quest, data)
        now = self.clock()
        outcome = None
        if session.check_timeout(now):
            if session.state == COMPLETED:
                outcome = self._finish(user_id, session_id, session, data.get('orb_id'), now)
            else:
                self._save(session_id, session, now)
                logger.info(f"Quest session {session_id} expired without answers")
        return session, data, outcome

    def _save(self, session_id, session, now):
        self.sessions_ref.document(session_id).update({
            **session.to_dict(),
            'updated_at': now,
        })

    def _finish(self, user_id, session_id, session, orb_id, now):
        """
        Persist a graded session, credit XP and WC, collect the orb and
        announce the result
        """
        self._save(session_id, session, now)
        result = session.result
        quest = session.quest
        earned = result['earned_points']

        # Another session may have taken the orb first
        orb_collected = bool(orb_id) and self.asset_service.collect_knowledge_orb(orb_id, user_id)

        stats = {'quests_completed': 1}
        if orb_collected:
            stats['knowledge_orbs_collected'] = 1

        reward = self.user_service.award(
            user_id,
            xp=earned,
            wellness_capital=earned,
            source='quest',
            stats=stats,
            reference=session_id,
        )

        self.attempts_ref.add({
            'user_id': user_id,
            'quest_id': quest['id'],
            'quest_title': quest['title'],
            'quest_type': quest['type'],
            'session_id': session_id,
            'orb_id': orb_id,
            'score': result['score'],
            'correct_answers': result['correct_answers'],
            'total_questions': result['total_questions'],
            'earned_points': earned,
            'time_remaining': result['time_remaining'],
            'badge': result['badge'],
            'completed_at': now,
        })

        self.social_service.create_post(
            user_id,
            f"Completed \"{quest['title']}\" with a score of {result['score']}% "
            f"and earned {earned} XP!",
            post_type='quiz_completion',
            quest_title=quest['title'],
            score=result['score'],
            xp_earned=earned,
        )

        completed_challenges = self.challenge_service.record_contribution(user_id, 'quests', 1)
        achievements = self.achievement_service.check_and_award(user_id)

        logger.info(
            f"User {user_id} completed quest {quest['id']}: "
            f"score {result['score']}%, {earned} XP"
        )

        return {
            'session_id': session_id,
            'quest_id': quest['id'],
            'state': session.state,
            'result': result,
            'reward': reward,
            'orb_collected': orb_collected,
            'achievements_unlocked': [a['id'] for a in achievements],
            'challenges_completed': completed_challenges,
        }

    def _view(self, session_id, session, orb_id, now):
        return {
            'id': session_id,
            'quest': sanitize_quest(session.quest),
            'orb_id': orb_id,
            'state': session.state,
            'answers': session.answers,
            'answered_count': session.answered_count,
            'started_at': session.started_at,
            'deadline': session.deadline,
            'time_remaining': session.time_remaining(now),
            'is_active': session.state == IN_PROGRESS,
            'result': session.result,
        }
