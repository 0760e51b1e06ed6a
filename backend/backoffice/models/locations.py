from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


LOCATION_STORAGE = "STORAGE"
LOCATION_FREEZER = "FREEZER"
LOCATION_SHELF = "SHELF"
LOCATION_WORKSTATION_STORAGE = "WORKSTATION_STORAGE"

LOCATION_TYPES = {
    LOCATION_STORAGE,
    LOCATION_FREEZER,
    LOCATION_SHELF,
    LOCATION_WORKSTATION_STORAGE,
}


class StorageLocation(db.Model):
    """
    A physical place that holds stock: walk-in, freezer, bar shelf, prep station.

    Stock holdings, prep tasks and waste records all point at one location.
    """
    __tablename__ = "storage_locations"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_storage_locations_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(32), nullable=False, default=LOCATION_STORAGE)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<StorageLocation id={self.id} name={self.name!r} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
