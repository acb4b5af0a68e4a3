import uuid
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import ForbiddenError
from .bookings import booking_query


def list_host_bookings(db: Session, host_id: uuid.UUID) -> List[models.Booking]:
    """Every booking made at any location the host owns."""
    return (
        booking_query(db)
        .join(models.Location, models.Booking.location_id == models.Location.id)
        .filter(models.Location.host_id == host_id)
        .order_by(models.Booking.start_time)
        .all()
    )


def list_location_bookings(db: Session, location_id: uuid.UUID, host_id: uuid.UUID) -> List[models.Booking]:
    """
    Bookings at one location. Ownership is checked against the bookings'
    location; a location without bookings yields an empty list.
    """
    bookings = (
        booking_query(db)
        .filter(models.Booking.location_id == location_id)
        .order_by(models.Booking.start_time)
        .all()
    )
    if bookings and bookings[0].location.host_id != host_id:
        raise ForbiddenError("This location does not belong to you")
    return bookings


def dashboard(db: Session, host_id: uuid.UUID) -> schemas.HostDashboard:
    rows = (
        db.query(models.Booking.status, func.count(models.Booking.id))
        .join(models.Location, models.Booking.location_id == models.Location.id)
        .filter(models.Location.host_id == host_id)
        .group_by(models.Booking.status)
        .all()
    )
    counts = {status: count for status, count in rows}

    return schemas.HostDashboard(
        total_bookings=sum(counts.values()),
        pending_bookings=counts.get(models.BookingStatus.PENDING, 0),
        confirmed_bookings=counts.get(models.BookingStatus.CONFIRMED, 0),
        cancelled_bookings=counts.get(models.BookingStatus.CANCELLED, 0),
        completed_bookings=counts.get(models.BookingStatus.COMPLETED, 0),
    )
