"""
Mapping of ORM rows to the response models returned by the API.

Callers load the relationships a view needs (``Booking.user``,
``Booking.location``, ``Location.host``) with an explicit join before
handing rows over.
"""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models, schemas
from .geo import haversine_km


def booking_out(booking: models.Booking) -> schemas.BookingOut:
    return schemas.BookingOut(
        id=booking.id,
        user=schemas.UserSummary.model_validate(booking.user),
        location=schemas.LocationSummary.model_validate(booking.location),
        start_time=booking.start_time,
        end_time=booking.end_time,
        price_cents=booking.price_cents,
        status=booking.status,
        number_of_items=booking.number_of_items,
    )


def location_out(
    location: models.Location,
    user_lat: Optional[float] = None,
    user_lng: Optional[float] = None,
) -> schemas.LocationOut:
    """Location view; ``distance_km`` is filled only when both caller coordinates are known."""
    distance = None
    if user_lat is not None and user_lng is not None:
        distance = haversine_km(user_lat, user_lng, location.lat, location.lng)

    host = schemas.UserSummary.model_validate(location.host) if location.host is not None else None

    return schemas.LocationOut(
        id=location.id,
        name=location.name,
        address=location.address,
        city=location.city,
        latitude=location.lat,
        longitude=location.lng,
        price_per_hour=float(location.price_per_hour),
        capacity=location.capacity,
        hours=location.hours,
        is_active=location.is_active,
        distance_km=distance,
        host=host,
    )


def user_out(db: Session, user: models.User) -> schemas.UserOut:
    """User view with booking and location counts; the password hash is never copied."""
    total_bookings = (
        db.query(func.count(models.Booking.id))
        .filter(models.Booking.user_id == user.id)
        .scalar()
    )
    total_locations = 0
    if user.role == models.Role.HOST:
        total_locations = (
            db.query(func.count(models.Location.id))
            .filter(models.Location.host_id == user.id)
            .scalar()
        )

    return schemas.UserOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        created_at=user.created_at,
        updated_at=user.updated_at,
        total_bookings=total_bookings,
        total_locations=total_locations,
    )
