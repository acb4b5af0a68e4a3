"""
Location discovery and host-side location management.

Every discovery query only ever returns active locations. Fetching a single
location by id and a host listing their own locations include inactive ones.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from .. import models, schemas
from ..circuit_breaker import commit
from ..clock import as_utc
from ..config import DEFAULT_POPULAR_LIMIT
from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..geo import haversine_km

logger = logging.getLogger(__name__)


def _active_locations(db: Session) -> Query:
    return (
        db.query(models.Location)
        .options(joinedload(models.Location.host))
        .filter(models.Location.is_active.is_(True))
    )


def _within_radius(
    locations: List[models.Location], lat: float, lng: float, radius_km: float
) -> List[models.Location]:
    """Keep locations at most ``radius_km`` away (boundary included), closest first."""
    with_distance = []
    for location in locations:
        distance = haversine_km(lat, lng, location.lat, location.lng)
        if distance <= radius_km:
            with_distance.append((distance, location))
    with_distance.sort(key=lambda pair: pair[0])
    return [location for _, location in with_distance]


def _check_price_range(min_price: Optional[Decimal], max_price: Optional[Decimal]) -> None:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise BadRequestError("min_price must not exceed max_price")


# ----- Reads -----
def get_location(db: Session, location_id: uuid.UUID) -> models.Location:
    location = (
        db.query(models.Location)
        .options(joinedload(models.Location.host))
        .filter(models.Location.id == location_id)
        .first()
    )
    if not location:
        raise NotFoundError("Location not found")
    return location


def list_locations(db: Session, skip: int = 0, limit: int = 20) -> List[models.Location]:
    return _active_locations(db).order_by(models.Location.name).offset(skip).limit(limit).all()


def list_host_locations(db: Session, host_id: uuid.UUID) -> List[models.Location]:
    return (
        db.query(models.Location)
        .options(joinedload(models.Location.host))
        .filter(models.Location.host_id == host_id)
        .order_by(models.Location.name)
        .all()
    )


def find_nearby(db: Session, lat: float, lng: float, radius_km: float) -> List[models.Location]:
    return _within_radius(_active_locations(db).all(), lat, lng, radius_km)


def find_nearby_filtered(
    db: Session,
    lat: float,
    lng: float,
    radius_km: float,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    min_capacity: Optional[int] = None,
) -> List[models.Location]:
    """
    Nearby search intersected with an inclusive price range and a minimum
    capacity. Each bound left as ``None`` is not applied.
    """
    candidates = filter_locations(db, min_price=min_price, max_price=max_price, min_capacity=min_capacity)
    return _within_radius(candidates, lat, lng, radius_km)


def search(db: Session, keyword: str) -> List[models.Location]:
    needle = keyword.lower()
    return (
        _active_locations(db)
        .filter(
            or_(
                func.lower(models.Location.name).contains(needle, autoescape=True),
                func.lower(models.Location.address).contains(needle, autoescape=True),
            )
        )
        .order_by(models.Location.name)
        .all()
    )


def filter_locations(
    db: Session,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    min_capacity: Optional[int] = None,
    city: Optional[str] = None,
) -> List[models.Location]:
    _check_price_range(min_price, max_price)

    query = _active_locations(db)
    if min_price is not None:
        query = query.filter(models.Location.price_per_hour >= min_price)
    if max_price is not None:
        query = query.filter(models.Location.price_per_hour <= max_price)
    if min_capacity is not None:
        query = query.filter(models.Location.capacity >= min_capacity)
    if city:
        query = query.filter(func.lower(models.Location.city) == city.lower())
    return query.order_by(models.Location.name).all()


def filter_by_price_range(db: Session, min_price: Decimal, max_price: Decimal) -> List[models.Location]:
    return filter_locations(db, min_price=min_price, max_price=max_price)


def filter_by_capacity(db: Session, min_capacity: int) -> List[models.Location]:
    return filter_locations(db, min_capacity=min_capacity)


def by_city(db: Session, city: str) -> List[models.Location]:
    return filter_locations(db, city=city)


def popular(db: Session, limit: int = DEFAULT_POPULAR_LIMIT) -> List[models.Location]:
    """Active locations with the most bookings (any status) first."""
    if limit < 1:
        raise BadRequestError("limit must be a positive integer")

    counts = (
        db.query(
            models.Booking.location_id.label("location_id"),
            func.count(models.Booking.id).label("booking_count"),
        )
        .group_by(models.Booking.location_id)
        .subquery()
    )
    return (
        _active_locations(db)
        .outerjoin(counts, counts.c.location_id == models.Location.id)
        .order_by(func.coalesce(counts.c.booking_count, 0).desc(), models.Location.name)
        .limit(limit)
        .all()
    )


def list_cities(db: Session) -> List[str]:
    rows = (
        db.query(models.Location.city)
        .filter(models.Location.is_active.is_(True), models.Location.city.isnot(None))
        .distinct()
        .order_by(models.Location.city)
        .all()
    )
    return [city for (city,) in rows]


def count_overlapping(
    db: Session,
    location_id: uuid.UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[uuid.UUID] = None,
) -> int:
    """
    PENDING and CONFIRMED bookings at the location that overlap ``[start, end]``.

    A booking overlaps unless it ends before ``start`` or begins after ``end``,
    so intervals that only touch at a boundary still count.
    """
    query = db.query(func.count(models.Booking.id)).filter(
        models.Booking.location_id == location_id,
        models.Booking.status.in_(models.ACTIVE_BOOKING_STATUSES),
        models.Booking.end_time >= start,
        models.Booking.start_time <= end,
    )
    if exclude_booking_id is not None:
        query = query.filter(models.Booking.id != exclude_booking_id)
    return query.scalar()


def is_available(
    db: Session,
    location_id: uuid.UUID,
    start: datetime,
    end: datetime,
    required_capacity: int = 1,
    exclude_booking_id: Optional[uuid.UUID] = None,
) -> bool:
    location = db.get(models.Location, location_id)
    if location is None or not location.is_active:
        return False

    occupied = count_overlapping(db, location_id, as_utc(start), as_utc(end), exclude_booking_id)
    return location.capacity - occupied >= required_capacity


# ----- Host mutations -----
def _owned_location(db: Session, location_id: uuid.UUID, host_id: uuid.UUID, action: str) -> models.Location:
    location = get_location(db, location_id)
    if location.host_id != host_id:
        logger.warning("User %s tried to %s location %s owned by %s", host_id, action, location_id, location.host_id)
        raise ForbiddenError(f"You don't have permission to {action} this location")
    return location


def create_location(db: Session, host_id: uuid.UUID, data: schemas.LocationCreate) -> models.Location:
    host = db.get(models.User, host_id)
    if not host:
        raise NotFoundError("Host not found")
    if host.role != models.Role.HOST:
        raise ForbiddenError("User is not a host")

    location = models.Location(
        host_id=host.id,
        name=data.name,
        address=data.address,
        city=data.city,
        lat=data.latitude,
        lng=data.longitude,
        price_per_hour=data.price_per_hour,
        capacity=data.capacity,
        hours=data.hours,
        is_active=True,
    )
    db.add(location)
    commit(db)
    db.refresh(location)
    logger.info("Host %s created location %s", host.id, location.id)
    return location


def update_location(
    db: Session, location_id: uuid.UUID, host_id: uuid.UUID, data: schemas.LocationCreate
) -> models.Location:
    location = _owned_location(db, location_id, host_id, "update")

    location.name = data.name
    location.address = data.address
    location.city = data.city
    location.lat = data.latitude
    location.lng = data.longitude
    location.price_per_hour = data.price_per_hour
    location.capacity = data.capacity
    location.hours = data.hours

    commit(db)
    db.refresh(location)
    return location


def delete_location(db: Session, location_id: uuid.UUID, host_id: uuid.UUID) -> None:
    """
    Hard-delete a location. Locations that still have bookings are kept and
    must be deactivated instead, so booking history never loses its location.
    """
    location = _owned_location(db, location_id, host_id, "delete")

    has_bookings = (
        db.query(models.Booking.id).filter(models.Booking.location_id == location.id).first() is not None
    )
    if has_bookings:
        raise BadRequestError("Location has bookings; deactivate it instead")

    db.delete(location)
    commit(db)
    logger.info("Host %s deleted location %s", host_id, location_id)


def set_location_status(
    db: Session, location_id: uuid.UUID, host_id: uuid.UUID, is_active: bool
) -> models.Location:
    location = _owned_location(db, location_id, host_id, "update")
    location.is_active = is_active
    commit(db)
    db.refresh(location)
    logger.info("Location %s is now %s", location_id, "active" if is_active else "inactive")
    return location
