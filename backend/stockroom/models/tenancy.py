from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"
VALID_ROLES = {ROLE_OWNER, ROLE_MANAGER, ROLE_EMPLOYEE}


class Business(db.Model):
    """
    Tenant root: every stocked item, vendor and document belongs to one business.

    Branches hang off a business; stock is tracked per (business, branch, item).
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    branches = db.relationship("Branch", back_populates="business", order_by="Branch.id", lazy=True)

    def __repr__(self) -> str:
        return f"<Business id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """
    Branch within a business.

    Branches are referenced, not owned, by movements and documents:
    deactivating a branch never touches its history.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("business_id", "name", name="uq_branches_business_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship("Business", back_populates="branches")

    def __repr__(self) -> str:
        return f"<Branch id={self.id} business_id={self.business_id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "is_active": self.is_active,
        }


class User(db.Model):
    """
    Back-office user. Authentication happens upstream; this row only carries
    the tenant binding and role used for authorization decisions.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(255), nullable=True)

    # owner, manager, employee
    role = db.Column(db.String(16), nullable=False, default=ROLE_EMPLOYEE)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    business = db.relationship("Business", foreign_keys=[business_id])

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "branch_id": self.branch_id,
            "username": self.username,
            "display_name": self.display_name,
            "role": self.role,
            "is_active": self.is_active,
        }


class OwnerBusinessLink(db.Model):
    """
    Grants an owner access to a business other than their home business.

    Links are read at every cross-business mutation, so revoking one takes
    effect on the next call.
    """
    __tablename__ = "owner_business_links"
    __table_args__ = (
        db.UniqueConstraint("user_id", "business_id", name="uq_owner_business_links_user_business"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("business_links", lazy=True))
    business = db.relationship("Business")
