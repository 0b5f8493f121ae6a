# freshcart/core/geo.py
import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in kilometers.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def closest_area(
    lat: float,
    lng: float,
    areas: list[tuple[str, float, float]],
) -> str | None:
    """Name of the closest (name, lat, lng) reference point, if any."""
    if not areas:
        return None
    name, _, _ = min(areas, key=lambda a: haversine_km(lat, lng, a[1], a[2]))
    return name
