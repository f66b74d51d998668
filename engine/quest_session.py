"""
Timed knowledge quest state machine and scoring.

A session moves PREVIEW -> IN_PROGRESS -> COMPLETED. A session whose timer
runs out auto-completes when the player answered at least one question and
otherwise EXPIRES without reward. Players may ABANDON before completion.
"""
import math
from datetime import timedelta

PREVIEW = 'PREVIEW'
IN_PROGRESS = 'IN_PROGRESS'
COMPLETED = 'COMPLETED'
EXPIRED = 'EXPIRED'
ABANDONED = 'ABANDONED'

TERMINAL_STATES = (COMPLETED, EXPIRED, ABANDONED)

MAX_TIME_BONUS = 50
LEVEL_BONUS_PER_LEVEL = 5
DIFFICULTY_MULTIPLIERS = {
    'easy': 1,
    'medium': 1.5,
    'hard': 2,
}

SCORE_BADGES = [
    (90, 'Master'),
    (80, 'Expert'),
    (70, 'Proficient'),
    (60, 'Competent'),
]


class QuestStateError(ValueError):
    """Raised when an operation is not allowed in the current state."""


def score_badge(score) -> str:
    for threshold, badge in SCORE_BADGES:
        if score >= threshold:
            return badge
    return 'Learner'


def score_outcome(score) -> str:
    if score >= 80:
        return 'celebrate'
    if score >= 60:
        return 'pass'
    return 'study'


def calculate_reward(base_points, time_remaining, time_limit, difficulty, user_level) -> dict:
    """
    Points for a finished quest: correct-answer points plus time and level
    bonuses, scaled by difficulty
    """
    time_bonus = math.floor((time_remaining / time_limit) * MAX_TIME_BONUS) if time_limit else 0
    level_bonus = math.floor(user_level * LEVEL_BONUS_PER_LEVEL)
    multiplier = DIFFICULTY_MULTIPLIERS.get(difficulty, 1)

    return {
        'base_points': base_points,
        'time_bonus': time_bonus,
        'level_bonus': level_bonus,
        'difficulty_multiplier': multiplier,
        'earned_points': math.floor((base_points + time_bonus + level_bonus) * multiplier),
    }


class QuestSession:
    """One player's run through one quest."""

    def __init__(self, quest, user_level=1, state=PREVIEW, started_at=None,
                 deadline=None, answers=None, completed_at=None, result=None):
        if not quest.get('questions'):
            raise ValueError('Quest has no questions')

        self.quest = quest
        self.user_level = max(1, int(user_level))
        self.state = state
        self.started_at = started_at
        self.deadline = deadline
        self.answers = list(answers) if answers is not None else [None] * len(quest['questions'])
        self.completed_at = completed_at
        self.result = result

    @property
    def time_limit(self) -> int:
        return int(self.quest['time_limit'])

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.answers if a is not None)

    def start(self, now):
        if self.state != PREVIEW:
            raise QuestStateError(f'Cannot start a quest that is {self.state}')

        self.state = IN_PROGRESS
        self.started_at = now
        self.deadline = now + timedelta(seconds=self.time_limit)

    def time_remaining(self, now) -> int:
        if self.state == PREVIEW:
            return self.time_limit
        if self.state != IN_PROGRESS:
            return 0
        return max(0, math.floor((self.deadline - now).total_seconds()))

    def check_timeout(self, now) -> bool:
        """
        Apply the timer; returns True if the session changed state
        """
        if self.state != IN_PROGRESS or now < self.deadline:
            return False

        if self.answered_count > 0:
            self._grade(now, time_remaining=0)
        else:
            self.state = EXPIRED
            self.completed_at = now
        return True

    def select_answer(self, question_index, option_index, now):
        self.check_timeout(now)
        if self.state != IN_PROGRESS:
            raise QuestStateError(f'Cannot answer a quest that is {self.state}')

        questions = self.quest['questions']
        if not 0 <= question_index < len(questions):
            raise QuestStateError(f'Question index out of range: {question_index}')
        if not 0 <= option_index < len(questions[question_index]['options']):
            raise QuestStateError(f'Option index out of range: {option_index}')

        self.answers[question_index] = option_index

    def complete(self, now) -> dict:
        if self.check_timeout(now):
            if self.state == EXPIRED:
                raise QuestStateError('Quest time ran out before any answer was given')
            return self.result

        if self.state != IN_PROGRESS:
            raise QuestStateError(f'Cannot complete a quest that is {self.state}')
        if self.answered_count == 0:
            raise QuestStateError('Answer at least one question before completing')

        return self._grade(now, time_remaining=self.time_remaining(now))

    def abandon(self, now=None):
        if self.is_terminal:
            raise QuestStateError(f'Cannot abandon a quest that is {self.state}')
        self.state = ABANDONED
        self.completed_at = now

    def _grade(self, now, time_remaining) -> dict:
        questions = self.quest['questions']
        correct_answers = 0
        base_points = 0
        question_results = []

        for index, question in enumerate(questions):
            selected = self.answers[index]
            is_correct = selected is not None and selected == question['correct_answer']
            if is_correct:
                correct_answers += 1
                base_points += question['points']

            question_results.append({
                'question_id': question['id'],
                'selected': selected,
                'correct_answer': question['correct_answer'],
                'is_correct': is_correct,
                'explanation': question.get('explanation', ''),
                'points_earned': question['points'] if is_correct else 0,
            })

        score = math.floor(correct_answers / len(questions) * 100)
        reward = calculate_reward(
            base_points,
            time_remaining,
            self.time_limit,
            self.quest.get('difficulty', 'easy'),
            self.user_level,
        )

        self.state = COMPLETED
        self.completed_at = now
        self.result = {
            'correct_answers': correct_answers,
            'total_questions': len(questions),
            'score': score,
            'time_remaining': time_remaining,
            'badge': score_badge(score),
            'outcome': score_outcome(score),
            'question_results': question_results,
            **reward,
        }
        return self.result

    def to_dict(self) -> dict:
        return {
            'quest_id': self.quest['id'],
            'user_level': self.user_level,
            'state': self.state,
            'started_at': self.started_at,
            'deadline': self.deadline,
            'answers': self.answers,
            'completed_at': self.completed_at,
            'result': self.result,
        }

    @classmethod
    def from_dict(cls, quest, data):
        return cls(
            quest,
            user_level=data.get('user_level', 1),
            state=data.get('state', PREVIEW),
            started_at=data.get('started_at'),
            deadline=data.get('deadline'),
            answers=data.get('answers'),
            completed_at=data.get('completed_at'),
            result=data.get('result'),
        )
