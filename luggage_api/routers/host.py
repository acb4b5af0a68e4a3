import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..assembly import booking_out
from ..deps import get_db, require_roles
from ..services import hosts as host_service

router = APIRouter(prefix="/host", tags=["host"])

host_only = require_roles(models.Role.HOST)


@router.get("/bookings", response_model=List[schemas.BookingOut])
def host_bookings(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(host_only),
):
    """All bookings across every location the current host owns."""
    return [booking_out(booking) for booking in host_service.list_host_bookings(db, current_user.id)]


@router.get("/locations/{location_id}/bookings", response_model=List[schemas.BookingOut])
def location_bookings(
    location_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(host_only),
):
    """
    Bookings at one of the host's locations.

    Raises
    ------
    HTTPException
        - 403 if the location belongs to another host.
    """
    bookings = host_service.list_location_bookings(db, location_id, current_user.id)
    return [booking_out(booking) for booking in bookings]


@router.get("/dashboard", response_model=schemas.HostDashboard)
def dashboard(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(host_only),
):
    """Booking counts by status across the host's locations."""
    return host_service.dashboard(db, current_user.id)
