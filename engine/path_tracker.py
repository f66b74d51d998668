"""
Territory capture path tracking.

While an activity is running every GPS sample is appended to the current
path. A path is complete once it holds PATH_COMPLETE_POINTS samples, or
once the walker returns close to where the path started. Complete paths
with enough samples become claimed territories.
"""
import uuid
from datetime import datetime, timezone

from engine import geometry

PATH_COMPLETE_POINTS = 50
MIN_TERRITORY_POINTS = 10
LOOP_CLOSE_DISTANCE_M = 20
# A returning path only closes a loop when it encloses at least this much
MIN_LOOP_AREA_M2 = 100


class ClaimedTerritory:
    """A closed GPS path turned into a polygon."""

    def __init__(self, boundary, claimed_at=None, territory_id=None):
        if len(boundary) < 3:
            raise ValueError('A territory needs at least 3 boundary points')

        self.id = territory_id or f'territory-{uuid.uuid4().hex[:12]}'
        self.boundary = [(float(lat), float(lng)) for lat, lng in boundary]
        self.area = geometry.polygon_area(self.boundary)
        self.area_m2 = geometry.polygon_area_m2(self.boundary)
        self.center = geometry.centroid(self.boundary)
        self.claimed_at = claimed_at or datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        # Firestore rejects nested arrays, so boundary points are maps
        return {
            'id': self.id,
            'boundary': [{'lat': lat, 'lng': lng} for lat, lng in self.boundary],
            'area': self.area,
            'area_m2': round(self.area_m2, 2),
            'center': {'lat': self.center[0], 'lng': self.center[1]},
            'claimed_at': self.claimed_at,
        }


class PathTracker:
    """
    Accumulates samples into the current path while active.

    add_point() returns a ClaimedTerritory when the sample completes a
    qualifying path, otherwise None.
    """

    def __init__(self, active=False, path=None):
        self.active = active
        self.path = [tuple(p) for p in (path or [])]

    def start(self):
        self.active = True
        self.path = []

    def stop(self):
        self.active = False
        self.path = []

    def add_point(self, latitude, longitude, at=None):
        if not self.active:
            return None

        point = geometry.validate_coordinates(latitude, longitude)
        self.path.append(point)

        if not self._is_complete():
            return None

        completed = self.path
        # The next path starts where this one ended
        self.path = [point]

        if len(completed) < MIN_TERRITORY_POINTS:
            return None
        return ClaimedTerritory(completed, claimed_at=at)

    def _is_complete(self) -> bool:
        if len(self.path) >= PATH_COMPLETE_POINTS:
            return True
        if len(self.path) >= MIN_TERRITORY_POINTS:
            gap = geometry.haversine_distance(self.path[0], self.path[-1])
            if gap <= LOOP_CLOSE_DISTANCE_M:
                return geometry.polygon_area_m2(self.path) >= MIN_LOOP_AREA_M2
        return False

    def to_dict(self) -> dict:
        return {
            'active': self.active,
            'path': [{'lat': lat, 'lng': lng} for lat, lng in self.path],
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        path = [(p['lat'], p['lng']) for p in data.get('path', [])]
        return cls(active=data.get('active', False), path=path)
