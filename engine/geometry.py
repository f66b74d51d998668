"""
Geometry helpers for the WellQuest map
Great-circle distances, geofence checks and territory polygon maths
"""

from math import atan2, cos, pi, radians, sin, sqrt

EARTH_RADIUS_M = 6371000
METERS_PER_DEGREE_LAT = 111000


def validate_coordinates(latitude, longitude):
    """
    Return (lat, lng) as floats or raise ValueError when out of range
    """
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValueError('Latitude and longitude must be numbers')

    if not -90 <= lat <= 90:
        raise ValueError(f'Latitude out of range: {lat}')
    if not -180 <= lng <= 180:
        raise ValueError(f'Longitude out of range: {lng}')
    return lat, lng


def haversine_distance(point_a, point_b) -> float:
    """Return distance in metres between two (lat, lng) points."""
    lat_a, lng_a = point_a[0], point_a[1]
    lat_b, lng_b = point_b[0], point_b[1]

    d_lat = radians(lat_b - lat_a)
    d_lng = radians(lng_b - lng_a)
    lat1 = radians(lat_a)
    lat2 = radians(lat_b)

    a = sin(d_lat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(d_lng / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_within_radius(point, target, radius_m) -> bool:
    return haversine_distance(point, target) <= radius_m


def bounding_box(latitude, longitude, radius_m):
    """
    Return (min_lat, max_lat, min_lng, max_lng) enclosing a circle of radius_m
    """
    lat_delta = radius_m / METERS_PER_DEGREE_LAT
    cos_lat = cos(radians(latitude))
    # Near the poles every longitude is inside the circle
    if cos_lat < 1e-6:
        lng_delta = 180.0
    else:
        lng_delta = min(180.0, radius_m / (METERS_PER_DEGREE_LAT * cos_lat))
    return (
        latitude - lat_delta,
        latitude + lat_delta,
        longitude - lng_delta,
        longitude + lng_delta,
    )


def path_length(points) -> float:
    total = 0.0
    for previous, current in zip(points, points[1:]):
        total += haversine_distance(previous, current)
    return total


def polygon_area(vertices) -> float:
    """
    Shoelace area of a (lat, lng) polygon in squared degrees.

    The polygon is implicitly closed, so the first vertex does not need to
    be repeated at the end.
    """
    if len(vertices) < 3:
        return 0.0

    area = 0.0
    count = len(vertices)
    for i in range(count):
        j = (i + 1) % count
        area += vertices[i][0] * vertices[j][1]
        area -= vertices[j][0] * vertices[i][1]
    return abs(area) / 2


def polygon_area_m2(vertices) -> float:
    """
    Approximate polygon area in square metres.

    Vertices are projected onto a flat plane tangent at their mean latitude
    (equirectangular), which is accurate for walking-sized territories.
    """
    if len(vertices) < 3:
        return 0.0

    mean_lat = sum(v[0] for v in vertices) / len(vertices)
    meters_per_deg = EARTH_RADIUS_M * pi / 180
    x_scale = meters_per_deg * cos(radians(mean_lat))

    projected = [(v[1] * x_scale, v[0] * meters_per_deg) for v in vertices]
    return polygon_area(projected)


def centroid(vertices):
    """
    Vertex average of a polygon, returned as (lat, lng)
    """
    if not vertices:
        raise ValueError('Cannot compute the centroid of an empty polygon')

    lat = sum(v[0] for v in vertices) / len(vertices)
    lng = sum(v[1] for v in vertices) / len(vertices)
    return lat, lng


def point_in_polygon(point, vertices) -> bool:
    """Ray casting test; points on the boundary may fall either way."""
    if len(vertices) < 3:
        return False

    lat, lng = point[0], point[1]
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        lat_i, lng_i = vertices[i][0], vertices[i][1]
        lat_j, lng_j = vertices[j][0], vertices[j][1]
        if (lng_i > lng) != (lng_j > lng):
            crossing = (lat_j - lat_i) * (lng - lng_i) / (lng_j - lng_i) + lat_i
            if lat < crossing:
                inside = not inside
        j = i
    return inside
