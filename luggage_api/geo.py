import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points given in degrees.

    Uses the Haversine formula on a sphere of radius ``EARTH_RADIUS_KM``.
    Coordinates are not validated.
    """
    lat_delta = math.radians(lat2 - lat1)
    lng_delta = math.radians(lng2 - lng1)

    a = (
        math.sin(lat_delta / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(lng_delta / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
