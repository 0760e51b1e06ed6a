from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_OWNER = "OWNER"
ROLE_MANAGER = "MANAGER"
ROLE_COOK = "COOK"
ROLE_BARTENDER = "BARTENDER"
ROLE_SERVER = "SERVER"
ROLE_DRIVER = "DRIVER"
ROLE_SALES = "SALES"
ROLE_FINANCIAL = "FINANCIAL"
ROLE_CASHIER = "CASHIER"

ROLES = {
    ROLE_OWNER,
    ROLE_MANAGER,
    ROLE_COOK,
    ROLE_BARTENDER,
    ROLE_SERVER,
    ROLE_DRIVER,
    ROLE_SALES,
    ROLE_FINANCIAL,
    ROLE_CASHIER,
}

# Role groups used by route gates
MANAGEMENT_ROLES = (ROLE_OWNER, ROLE_MANAGER)
KITCHEN_ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_COOK)
PURCHASING_ROLES = (ROLE_OWNER, ROLE_MANAGER, ROLE_FINANCIAL)


class User(db.Model):
    """
    Staff accounts for authentication and attribution.

    Every user holds exactly one role. Role gates are checked at the route
    boundary; services only see the explicit Actor built from this row.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(64), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=ROLE_SERVER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }


class SessionToken(db.Model):
    """
    Bearer session tokens. Only the SHA-256 hash of the token is stored.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    token_hash = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))
