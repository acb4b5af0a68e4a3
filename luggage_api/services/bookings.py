"""
Booking lifecycle: creation, re-timing and the status state machine.

    PENDING   --confirm (host)-->  CONFIRMED --complete (host)--> COMPLETED
    PENDING   --cancel (owner)-->  CANCELLED
    CONFIRMED --cancel (owner)-->  CANCELLED

Only PENDING bookings can be re-timed. The price is recomputed whenever the
interval changes.
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from .. import models
from ..circuit_breaker import commit
from ..clock import as_utc, utcnow
from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..pricing import calculate_price_cents
from . import locations as location_service

logger = logging.getLogger(__name__)

Status = models.BookingStatus


def booking_query(db: Session):
    return db.query(models.Booking).options(
        joinedload(models.Booking.user),
        joinedload(models.Booking.location),
    )


def _load(db: Session, booking_id: uuid.UUID) -> models.Booking:
    booking = booking_query(db).filter(models.Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def _validate_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise BadRequestError("End time must be after start time")


def _validate_future_start(start: datetime) -> None:
    if start <= utcnow():
        raise BadRequestError("Start time must be in the future")


def _ensure_capacity(
    db: Session,
    location_id: uuid.UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[uuid.UUID] = None,
) -> None:
    if not location_service.is_available(db, location_id, start, end, 1, exclude_booking_id):
        raise BadRequestError("Location has no available capacity for the requested time")


def _transition(booking: models.Booking, target: models.BookingStatus, message: str) -> None:
    if not models.can_transition(booking.status, target):
        logger.warning("Booking %s cannot move from %s to %s", booking.id, booking.status.value, target.value)
        raise BadRequestError(message)
    booking.status = target


def _require_customer(booking: models.Booking, user_id: uuid.UUID, action: str) -> None:
    if booking.user_id != user_id:
        raise ForbiddenError(f"You can only {action} your own bookings")


def _require_host(booking: models.Booking, host_id: uuid.UUID, action: str) -> None:
    if booking.location.host_id != host_id:
        raise ForbiddenError(f"Only the location host can {action} bookings")


# ----- Reads -----
def get_booking(db: Session, booking_id: uuid.UUID, viewer: Optional[models.User] = None) -> models.Booking:
    """
    Fetch a booking. When ``viewer`` is given it must be the customer, the
    host of the booking's location or an admin.
    """
    booking = _load(db, booking_id)
    if viewer is not None and viewer.role != models.Role.ADMIN:
        if viewer.id not in (booking.user_id, booking.location.host_id):
            raise ForbiddenError("Not allowed to view this booking")
    return booking


def list_user_bookings(db: Session, user_id: uuid.UUID) -> List[models.Booking]:
    return booking_query(db).filter(models.Booking.user_id == user_id).order_by(models.Booking.start_time).all()


def list_all_bookings(db: Session) -> List[models.Booking]:
    return booking_query(db).order_by(models.Booking.start_time).all()


# ----- Mutations -----
def create_booking(
    db: Session,
    user_id: uuid.UUID,
    location_id: uuid.UUID,
    start: datetime,
    end: datetime,
    number_of_items: Optional[int] = None,
) -> models.Booking:
    user = db.get(models.User, user_id)
    if not user:
        raise NotFoundError("User not found")

    location = db.get(models.Location, location_id)
    if not location:
        raise NotFoundError("Location not found")
    if not location.is_active:
        raise BadRequestError("Location is not active")

    start, end = as_utc(start), as_utc(end)
    _validate_interval(start, end)
    _validate_future_start(start)
    _ensure_capacity(db, location.id, start, end)

    booking = models.Booking(
        user_id=user.id,
        location_id=location.id,
        start_time=start,
        end_time=end,
        price_cents=calculate_price_cents(start, end, location.price_per_hour),
        number_of_items=number_of_items,
        status=Status.PENDING,
    )
    db.add(booking)
    commit(db)
    logger.info("User %s booked location %s (%s cents)", user.id, location.id, booking.price_cents)
    return _load(db, booking.id)


def update_booking(
    db: Session,
    booking_id: uuid.UUID,
    user_id: uuid.UUID,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    number_of_items: Optional[int] = None,
) -> models.Booking:
    booking = _load(db, booking_id)
    _require_customer(booking, user_id, "update")

    if booking.status != Status.PENDING:
        raise BadRequestError("Only pending bookings can be updated")

    new_start = as_utc(start) if start is not None else booking.start_time
    new_end = as_utc(end) if end is not None else booking.end_time
    if start is not None:
        _validate_future_start(new_start)
    _validate_interval(new_start, new_end)

    time_changed = (new_start, new_end) != (booking.start_time, booking.end_time)
    if time_changed:
        _ensure_capacity(db, booking.location_id, new_start, new_end, exclude_booking_id=booking.id)
        booking.start_time = new_start
        booking.end_time = new_end
        booking.price_cents = calculate_price_cents(new_start, new_end, booking.location.price_per_hour)

    if number_of_items is not None:
        booking.number_of_items = number_of_items

    commit(db)
    return _load(db, booking.id)


def cancel_booking(db: Session, booking_id: uuid.UUID, user_id: uuid.UUID) -> models.Booking:
    booking = _load(db, booking_id)
    _require_customer(booking, user_id, "cancel")

    if booking.status == Status.CANCELLED:
        raise BadRequestError("Booking is already cancelled")
    _transition(booking, Status.CANCELLED, "Cannot cancel a completed booking")

    commit(db)
    logger.info("Booking %s cancelled by %s", booking.id, user_id)
    return _load(db, booking.id)


def confirm_booking(db: Session, booking_id: uuid.UUID, host_id: uuid.UUID) -> models.Booking:
    booking = _load(db, booking_id)
    _require_host(booking, host_id, "confirm")
    _transition(booking, Status.CONFIRMED, "Only pending bookings can be confirmed")

    commit(db)
    logger.info("Booking %s confirmed by host %s", booking.id, host_id)
    return _load(db, booking.id)


def complete_booking(db: Session, booking_id: uuid.UUID, host_id: uuid.UUID) -> models.Booking:
    booking = _load(db, booking_id)
    _require_host(booking, host_id, "complete")
    _transition(booking, Status.COMPLETED, "Only confirmed bookings can be completed")

    commit(db)
    logger.info("Booking %s completed by host %s", booking.id, host_id)
    return _load(db, booking.id)
