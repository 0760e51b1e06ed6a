# Overview: Service-layer operations for storage locations.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import StorageLocation
from ..models.locations import LOCATION_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import atomic


LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "description", "is_active"},
    required_on_create={"name"},
    enums={"type": LOCATION_TYPES},
)


def get_location(location_id: int) -> StorageLocation:
    location = db.session.get(StorageLocation, location_id)
    if not location:
        raise NotFoundError(f"Storage location {location_id} not found")
    return location


def get_active_location(location_id: int) -> StorageLocation:
    """Locations that receive new stock or tasks must be active."""
    location = get_location(location_id)
    if not location.is_active:
        raise ConflictError(f"Storage location {location.name} is inactive")
    return location


def list_locations(*, include_inactive: bool = False) -> list[StorageLocation]:
    q = db.session.query(StorageLocation)
    if not include_inactive:
        q = q.filter(StorageLocation.is_active.is_(True))
    return q.order_by(StorageLocation.name.asc()).all()


def create_location(payload: dict) -> StorageLocation:
    patch = validate_payload(model=StorageLocation, payload=payload, policy=LOCATION_POLICY, partial=False)

    if db.session.query(StorageLocation).filter_by(name=patch["name"]).first():
        raise ConflictError(f"Storage location '{patch['name']}' already exists")

    location = StorageLocation(**patch)
    try:
        with atomic():
            db.session.add(location)
    except IntegrityError:
        raise ConflictError(f"Storage location '{patch['name']}' already exists")
    return location


def update_location(location_id: int, payload: dict) -> StorageLocation:
    location = get_location(location_id)
    patch = validate_payload(model=StorageLocation, payload=payload, policy=LOCATION_POLICY, partial=True)

    if "name" in patch and patch["name"] != location.name:
        if db.session.query(StorageLocation).filter_by(name=patch["name"]).first():
            raise ConflictError(f"Storage location '{patch['name']}' already exists")

    with atomic():
        for key, value in patch.items():
            setattr(location, key, value)
    return location
