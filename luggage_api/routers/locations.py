import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..assembly import location_out
from ..clock import as_utc
from ..config import DEFAULT_POPULAR_LIMIT, DEFAULT_RADIUS_KM
from ..deps import get_current_user, get_db
from ..errors import BadRequestError
from ..services import locations as location_service

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/", response_model=List[schemas.LocationOut])
def list_locations(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """List active storage locations, ordered by name."""
    return [location_out(location) for location in location_service.list_locations(db, skip, limit)]


@router.get("/nearby", response_model=List[schemas.LocationOut])
def find_nearby_locations(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(DEFAULT_RADIUS_KM, gt=0),
    db: Session = Depends(get_db),
):
    """
    Find active locations within ``radius_km`` of the caller, closest first.

    Each result carries its ``distance_km`` from ``(lat, lng)``.
    """
    locations = location_service.find_nearby(db, lat, lng, radius_km)
    return [location_out(location, lat, lng) for location in locations]


@router.get("/nearby/filtered", response_model=List[schemas.LocationOut])
def find_nearby_filtered(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(DEFAULT_RADIUS_KM, gt=0),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_capacity: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Nearby search narrowed by an inclusive price range and a minimum capacity."""
    locations = location_service.find_nearby_filtered(
        db, lat, lng, radius_km, min_price=min_price, max_price=max_price, min_capacity=min_capacity
    )
    return [location_out(location, lat, lng) for location in locations]


@router.get("/search", response_model=List[schemas.LocationOut])
def search_locations(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Case-insensitive keyword search over location names and addresses."""
    return [location_out(location) for location in location_service.search(db, q)]


@router.get("/filter", response_model=List[schemas.LocationOut])
def filter_locations(
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_capacity: Optional[int] = Query(None, ge=1),
    city: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Filter active locations. Every provided criterion must hold; criteria
    left out are not applied.
    """
    locations = location_service.filter_locations(
        db, min_price=min_price, max_price=max_price, min_capacity=min_capacity, city=city
    )
    return [location_out(location) for location in locations]


@router.get("/cities", response_model=List[str])
def list_cities(db: Session = Depends(get_db)):
    """Distinct cities that have at least one active location, sorted."""
    return location_service.list_cities(db)


@router.get("/city/{city}", response_model=List[schemas.LocationOut])
def locations_in_city(city: str, db: Session = Depends(get_db)):
    return [location_out(location) for location in location_service.by_city(db, city)]


@router.get("/popular", response_model=List[schemas.LocationOut])
def popular_locations(limit: int = DEFAULT_POPULAR_LIMIT, db: Session = Depends(get_db)):
    """Active locations with the most bookings first. ``limit`` must be positive."""
    return [location_out(location) for location in location_service.popular(db, limit)]


@router.get("/host/{host_id}", response_model=List[schemas.LocationOut])
def locations_of_host(host_id: uuid.UUID, db: Session = Depends(get_db)):
    return [location_out(location) for location in location_service.list_host_locations(db, host_id)]


@router.post("/", response_model=schemas.LocationOut, status_code=status.HTTP_201_CREATED)
def create_location(
    location_in: schemas.LocationCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Create a new storage location owned by the caller.

    Raises
    ------
    HTTPException
        - 403 if the caller is not a host.
    """
    location = location_service.create_location(db, current_user.id, location_in)
    return location_out(location)


@router.get("/{location_id}", response_model=schemas.LocationOut)
def get_location(location_id: uuid.UUID, db: Session = Depends(get_db)):
    """Fetch one location by id, whether active or not."""
    return location_out(location_service.get_location(db, location_id))


@router.get("/{location_id}/availability", response_model=schemas.AvailabilityResponse)
def check_availability(
    location_id: uuid.UUID,
    start_time: datetime,
    end_time: datetime,
    capacity: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """
    Check whether ``capacity`` slots are free for the whole window.

    Pending and confirmed bookings that overlap the window, boundaries
    included, occupy one slot each. Missing or inactive locations are never
    available.
    """
    start, end = as_utc(start_time), as_utc(end_time)
    if end <= start:
        raise BadRequestError("End time must be after start time")

    available = location_service.is_available(db, location_id, start, end, capacity)
    return schemas.AvailabilityResponse(
        location_id=location_id,
        start_time=start,
        end_time=end,
        required_capacity=capacity,
        available=available,
    )


@router.put("/{location_id}", response_model=schemas.LocationOut)
def update_location(
    location_id: uuid.UUID,
    location_in: schemas.LocationCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Replace a location's details. *(Owning host only)*"""
    return location_out(location_service.update_location(db, location_id, current_user.id, location_in))


@router.patch("/{location_id}/status", response_model=schemas.LocationOut)
def set_location_status(
    location_id: uuid.UUID,
    payload: schemas.LocationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Activate or deactivate a location. *(Owning host only)*"""
    location = location_service.set_location_status(db, location_id, current_user.id, payload.is_active)
    return location_out(location)


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(
    location_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Delete a location. *(Owning host only)*

    Raises
    ------
    HTTPException
        - 400 while the location still has bookings; deactivate it instead.
        - 403 if the caller does not own the location.
    """
    location_service.delete_location(db, location_id, current_user.id)
