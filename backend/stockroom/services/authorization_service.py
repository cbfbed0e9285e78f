"""
Authorization Resolver: actor context and tenant-boundary checks.

WHY: Every workflow asks which businesses this user may act on and whether
a branch really belongs to the business in play.

RULES:
1. A user always has access to their home business.
2. An owner additionally has access to every active business linked to
   them through OwnerBusinessLink.
3. Branch ids coming from input are validated against the business before
   use; a foreign branch looks exactly like a missing one.
4. Cross-business mutations call refresh_actor() so revoked links take
   effect immediately, not at the next login.
5. Denials are logged as warnings on the application logger.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from flask import current_app

from ..extensions import db
from ..models import Branch, Business, OwnerBusinessLink, User
from ..models.tenancy import ROLE_OWNER
from stockroom.validation import AuthorizationDenied, NotFound


@dataclass(frozen=True)
class ActorContext:
    """Already-authenticated caller: who they are and where they are acting."""

    business_id: int
    user_id: int | None
    role: str
    branch_id: int | None = None
    accessible_business_ids: frozenset = field(default_factory=frozenset)

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    def can_access(self, business_id: int) -> bool:
        if business_id == self.business_id:
            return True
        return self.is_owner and business_id in self.accessible_business_ids


def _deny(message: str, actor: ActorContext | None = None, **details) -> AuthorizationDenied:
    current_app.logger.warning(
        "Authorization denied: %s (user_id=%s business_id=%s %s)",
        message,
        actor.user_id if actor else None,
        actor.business_id if actor else None,
        " ".join(f"{k}={v}" for k, v in details.items()),
    )
    return AuthorizationDenied(message)


def accessible_business_ids(user: User) -> frozenset:
    """Home business plus, for owners, every active linked business."""
    ids = {user.business_id}
    if user.role == ROLE_OWNER:
        rows = (
            db.session.query(OwnerBusinessLink.business_id)
            .join(Business, Business.id == OwnerBusinessLink.business_id)
            .filter(
                OwnerBusinessLink.user_id == user.id,
                Business.is_active.is_(True),
            )
            .all()
        )
        ids.update(row.business_id for row in rows)
    return frozenset(ids)


def resolve_actor(user_id: int, business_id: int | None = None, branch_id: int | None = None) -> ActorContext:
    """
    Build the actor context for a user acting in a business (and branch).

    business_id defaults to the user's home business; an owner may pick any
    linked business as the current workspace. branch_id defaults to the
    user's assigned branch.

    Raises:
        AuthorizationDenied: unknown/inactive user, inaccessible business,
            or a branch outside the business
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        raise _deny("Unknown or inactive user", user_id=user_id)

    ids = accessible_business_ids(user)
    if business_id is None:
        business_id = user.business_id

    actor = ActorContext(
        business_id=business_id,
        user_id=user.id,
        role=user.role,
        branch_id=None,
        accessible_business_ids=ids,
    )

    if business_id not in ids:
        raise _deny("No access to this business", actor, requested_business_id=business_id)

    if branch_id is None and business_id == user.business_id:
        branch_id = user.branch_id

    if branch_id is not None:
        branch = db.session.query(Branch).filter_by(id=branch_id).first()
        if not branch or branch.business_id != business_id or not branch.is_active:
            raise _deny("No access to this branch", actor, requested_branch_id=branch_id)
        # Branch-bound staff stay in their branch
        if user.branch_id and user.role != ROLE_OWNER and branch_id != user.branch_id:
            raise _deny("No access to this branch", actor, requested_branch_id=branch_id)

    return replace(actor, branch_id=branch_id)


def refresh_actor(actor: ActorContext) -> ActorContext:
    """
    Re-read the actor's grants from the database.

    Contexts without a user (system jobs) are returned unchanged.
    """
    if actor.user_id is None:
        return actor
    return resolve_actor(actor.user_id, actor.business_id, actor.branch_id)


def require_business_access(actor: ActorContext, business_id: int) -> None:
    if not actor.can_access(business_id):
        raise _deny("No access to this business", actor, requested_business_id=business_id)


def require_transfer_access(actor: ActorContext, from_business_id: int, to_business_id: int) -> None:
    """
    Non-owners may only move stock inside their current business.
    Owners may move stock between any two businesses they can access.
    """
    if actor.is_owner:
        for business_id in (from_business_id, to_business_id):
            if business_id not in actor.accessible_business_ids:
                raise _deny("No access to this business", actor, requested_business_id=business_id)
        return

    if from_business_id != actor.business_id or to_business_id != actor.business_id:
        raise _deny(
            "Transfers across businesses require the owner role",
            actor,
            from_business_id=from_business_id,
            to_business_id=to_business_id,
        )


def require_branch_in_business(business_id: int, branch_id: int, *, active_only: bool = True) -> Branch:
    """
    Validate that a branch belongs to the business.

    Raises:
        NotFound: branch missing, inactive (when active_only), or foreign
    """
    branch = db.session.query(Branch).filter_by(id=branch_id).first()
    if not branch or branch.business_id != business_id:
        raise NotFound(f"Branch {branch_id} not found")
    if active_only and not branch.is_active:
        raise NotFound(f"Branch {branch_id} not found")
    return branch


def get_business_branches(business_id: int, *, active_only: bool = True) -> list[Branch]:
    query = db.session.query(Branch).filter(Branch.business_id == business_id)
    if active_only:
        query = query.filter(Branch.is_active.is_(True))
    return query.order_by(Branch.id.asc()).all()


def get_accessible_businesses(actor: ActorContext) -> list[Business]:
    ids = set(actor.accessible_business_ids) if actor.is_owner else set()
    ids.add(actor.business_id)
    return (
        db.session.query(Business)
        .filter(Business.id.in_(ids), Business.is_active.is_(True))
        .order_by(Business.id.asc())
        .all()
    )
