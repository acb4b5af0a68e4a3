import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..assembly import booking_out
from ..deps import get_current_user, get_db, require_roles
from ..services import bookings as booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/", response_model=schemas.BookingOut, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Book storage at a location for the current user.

    The price is derived from the interval and the location's hourly rate;
    the booking starts out ``PENDING``.

    Raises
    ------
    HTTPException
        - 404 if the location does not exist.
        - 400 if the location is inactive or full for that window, the start
          is not in the future, or the end is not after the start.
    """
    booking = booking_service.create_booking(
        db,
        current_user.id,
        booking_in.location_id,
        booking_in.start_time,
        booking_in.end_time,
        booking_in.number_of_items,
    )
    return booking_out(booking)


@router.get("/", response_model=List[schemas.BookingOut])
def list_bookings(
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles(models.Role.ADMIN)),
):
    """List every booking in the system. *(Admin-only)*"""
    return [booking_out(booking) for booking in booking_service.list_all_bookings(db)]


@router.get("/me", response_model=List[schemas.BookingOut])
def my_bookings(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return [booking_out(booking) for booking in booking_service.list_user_bookings(db, current_user.id)]


@router.get("/{booking_id}", response_model=schemas.BookingOut)
def get_booking(
    booking_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Get a booking. Visible to its customer, the location's host and admins."""
    return booking_out(booking_service.get_booking(db, booking_id, viewer=current_user))


@router.put("/{booking_id}", response_model=schemas.BookingOut)
def update_booking(
    booking_id: uuid.UUID,
    booking_update: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Re-time a pending booking or change its item count.

    Raises
    ------
    HTTPException
        - 403 if the booking belongs to someone else.
        - 400 if the booking is no longer pending or the new window is invalid.
    """
    booking = booking_service.update_booking(
        db,
        booking_id,
        current_user.id,
        start=booking_update.start_time,
        end=booking_update.end_time,
        number_of_items=booking_update.number_of_items,
    )
    return booking_out(booking)


@router.delete("/{booking_id}")
def cancel_booking(
    booking_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Cancel one of your own pending or confirmed bookings.

    The booking is kept with status ``CANCELLED``.
    """
    booking_service.cancel_booking(db, booking_id, current_user.id)
    return {"detail": "Booking cancelled"}


@router.patch("/{booking_id}/confirm", response_model=schemas.BookingOut)
def confirm_booking(
    booking_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Confirm a pending booking. *(Host of the booking's location only)*"""
    return booking_out(booking_service.confirm_booking(db, booking_id, current_user.id))


@router.patch("/{booking_id}/complete", response_model=schemas.BookingOut)
def complete_booking(
    booking_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Mark a confirmed booking as completed. *(Host of the booking's location only)*"""
    return booking_out(booking_service.complete_booking(db, booking_id, current_user.id))
