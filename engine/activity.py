"""
Activity metrics estimated from GPS samples: distance, steps, calories, pace
"""
from datetime import datetime, timezone

from engine import geometry

AVERAGE_STRIDE_M = 0.75
# Moves shorter than this are GPS noise
MIN_MOVEMENT_M = 3

CALORIES_PER_KM = {
    'WALK': 50,
    'RUN': 80,
    'BIKE': 40,
    'GENERAL': 60,
}
DEFAULT_CALORIES_PER_KM = 60
SESSION_TYPES = tuple(CALORIES_PER_KM)

DEFAULT_GOALS = {
    'daily_steps': 10000,
    'daily_distance_km': 5.0,
    'daily_calories': 400,
    'weekly_active_minutes': 150,
}


def estimate_steps(distance_m) -> int:
    return round(distance_m / AVERAGE_STRIDE_M)


def estimate_calories(distance_m, session_type='GENERAL') -> int:
    rate = CALORIES_PER_KM.get(session_type, DEFAULT_CALORIES_PER_KM)
    return round(distance_m / 1000 * rate)


def goal_progress(totals, goals=None):
    """
    Percent progress (0-100) toward each goal.

    totals uses the keys steps, distance_km, calories and
    weekly_active_minutes.
    """
    goals = goals or DEFAULT_GOALS

    def pct(value, target):
        if not target:
            return 0.0
        return round(min(100.0, value / target * 100), 1)

    return {
        'steps': pct(totals.get('steps', 0), goals['daily_steps']),
        'distance': pct(totals.get('distance_km', 0), goals['daily_distance_km']),
        'calories': pct(totals.get('calories', 0), goals['daily_calories']),
        'active_time': pct(totals.get('weekly_active_minutes', 0), goals['weekly_active_minutes']),
    }


class ActivityMetrics:
    """Running totals for one activity session."""

    def __init__(self, session_type='GENERAL', started_at=None, last_at=None,
                 last_point=None, distance_m=0.0, max_speed=0.0, sample_count=0):
        if session_type not in CALORIES_PER_KM:
            raise ValueError(f'Unknown session type: {session_type}')

        self.session_type = session_type
        self.started_at = started_at or datetime.now(timezone.utc)
        self.last_at = last_at or self.started_at
        self.last_point = tuple(last_point) if last_point else None
        self.distance_m = distance_m
        self.max_speed = max_speed
        self.sample_count = sample_count

    def add_sample(self, latitude, longitude, at=None, speed=None) -> float:
        """
        Feed one GPS sample; returns the distance it added in metres
        """
        point = geometry.validate_coordinates(latitude, longitude)
        at = at or datetime.now(timezone.utc)

        self.sample_count += 1
        if at > self.last_at:
            self.last_at = at
        if speed is not None and speed > self.max_speed:
            self.max_speed = float(speed)

        if self.last_point is None:
            self.last_point = point
            return 0.0

        moved = geometry.haversine_distance(self.last_point, point)
        if moved < MIN_MOVEMENT_M:
            return 0.0

        self.distance_m += moved
        self.last_point = point
        return moved

    @property
    def duration_s(self) -> float:
        return max(0.0, (self.last_at - self.started_at).total_seconds())

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000

    @property
    def steps(self) -> int:
        return estimate_steps(self.distance_m)

    @property
    def calories(self) -> int:
        return estimate_calories(self.distance_m, self.session_type)

    @property
    def average_speed(self) -> float:
        """Metres per second over the whole session."""
        if self.duration_s <= 0:
            return 0.0
        return self.distance_m / self.duration_s

    @property
    def pace(self) -> float:
        """Minutes per kilometre."""
        if self.distance_km <= 0:
            return 0.0
        return (self.duration_s / 60) / self.distance_km

    def summary(self) -> dict:
        return {
            'total_distance': round(self.distance_m, 2),
            'total_duration': round(self.duration_s, 1),
            'average_speed': round(self.average_speed, 3),
            'max_speed': round(self.max_speed, 3),
            'calories_burned': self.calories,
            'step_count': self.steps,
            'pace': round(self.pace, 2),
        }

    def to_dict(self) -> dict:
        return {
            'session_type': self.session_type,
            'started_at': self.started_at,
            'last_at': self.last_at,
            'last_point': {'lat': self.last_point[0], 'lng': self.last_point[1]} if self.last_point else None,
            'distance_m': self.distance_m,
            'max_speed': self.max_speed,
            'sample_count': self.sample_count,
        }

    @classmethod
    def from_dict(cls, data):
        last_point = data.get('last_point')
        return cls(
            session_type=data.get('session_type', 'GENERAL'),
            started_at=data.get('started_at'),
            last_at=data.get('last_at'),
            last_point=(last_point['lat'], last_point['lng']) if last_point else None,
            distance_m=data.get('distance_m', 0.0),
            max_speed=data.get('max_speed', 0.0),
            sample_count=data.get('sample_count', 0),
        )
