# ============================================================================
# FILE: campus_booking/services/identity/identity_service.py
# Identity boundary - token verification and role resolution
# ============================================================================
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Iterable, List, Optional

from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_booking.config.settings import settings
from campus_booking.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from campus_booking.models.appointment import Appointment
from campus_booking.models.availability import BusyBlock, TeacherAvailability
from campus_booking.models.notification import Notification
from campus_booking.models.teacher import TeacherProfile
from campus_booking.models.user import RoleTag, UserProfile

logger = logging.getLogger(__name__)

KNOWN_ROLE_TAGS = frozenset(tag.value for tag in RoleTag)


class Role(str, enum.Enum):
    """Effective role, resolved once per request"""
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(frozen=True)
class Identity:
    uid: str
    roles: FrozenSet[str] = field(default_factory=frozenset)
    approved: bool = False
    email: Optional[str] = None

    @property
    def role(self) -> Role:
        if RoleTag.ADMIN.value in self.roles:
            return Role.ADMIN
        if RoleTag.TEACHER.value in self.roles:
            return Role.TEACHER
        return Role.STUDENT

    @property
    def is_admin(self) -> bool:
        return RoleTag.ADMIN.value in self.roles

    @property
    def has_teacher_tag(self) -> bool:
        return RoleTag.TEACHER.value in self.roles

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


def merge_roles(*role_lists: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Set union of role lists, keeping only known tags"""
    merged = set()
    for roles in role_lists:
        if not roles or isinstance(roles, str):
            continue
        merged.update(r for r in roles if r in KNOWN_ROLE_TAGS)
    return frozenset(merged)


class IdentityService:
    """Verifies bearer tokens and merges claims with the stored profile."""

    @staticmethod
    def create_access_token(
            uid: str,
            roles: Optional[Iterable[str]] = None,
            email: Optional[str] = None,
            expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Issue a signed token carrying ``sub`` and ``roles`` claims.

        Used by the role maintenance script and by tests; production tokens
        come from the identity provider and are signed with the same key.
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

        claims = {
            "sub": uid,
            "roles": sorted(merge_roles(roles)),
            "exp": expire,
            "iat": now,
        }
        if email:
            claims["email"] = email

        return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> dict:
        """
        Verify and decode a bearer token.

        Raises:
            AuthenticationError: missing, malformed, expired or subject-less token
        """
        if not token:
            raise AuthenticationError("Missing token")

        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise AuthenticationError("Invalid token")

        if not payload.get("sub"):
            raise AuthenticationError("Invalid token")

        return payload

    @staticmethod
    def resolve_identity(db: Session, claims: dict) -> Identity:
        """
        Merge token claims with the persisted profile.

        Roles are the union of claim roles and profile roles, so a stale token
        never hides a role granted since it was issued. Teachers and admins are
        implicitly approved.

        The first sign-in of a uid stores its profile: an invitation keyed by
        the token's email is moved onto the uid, otherwise a new unapproved
        profile is created for the admin approval queue.
        """
        uid = claims["sub"]
        profile = db.get(UserProfile, uid)
        if profile is None:
            profile = IdentityService._register_first_sign_in(db, uid, claims)

        roles = merge_roles(claims.get("roles"), profile.roles)
        approved = bool(profile.approved) or bool(roles)
        email = profile.email or claims.get("email")

        return Identity(uid=uid, roles=roles, approved=approved, email=email)

    @staticmethod
    def _register_first_sign_in(db: Session, uid: str, claims: dict) -> UserProfile:
        email = (claims.get("email") or "").strip().lower() or None

        try:
            invited = db.get(UserProfile, email) if email and email != uid else None
            if invited is not None and invited.email == email:
                profile = IdentityService.claim_invitation(db, invited, uid)
            else:
                profile = UserProfile(
                    id=uid,
                    email=email,
                    roles=sorted(merge_roles(claims.get("roles"))),
                    approved=False,
                )
                db.add(profile)
            db.commit()
        except IntegrityError:
            # Concurrent first request for the same uid already stored it
            db.rollback()
            profile = db.get(UserProfile, uid)
            if profile is None:
                raise
            return profile
        except Exception:
            db.rollback()
            raise

        db.refresh(profile)
        logger.info(f"Registered profile for {uid}")
        return profile

    @staticmethod
    def claim_invitation(db: Session, invited: UserProfile, uid: str) -> UserProfile:
        """Move an email-keyed invitation and everything filed under it to the provider uid"""
        old_id = invited.id
        profile = UserProfile(
            id=uid,
            email=invited.email,
            display_name=invited.display_name,
            roles=list(invited.roles or []),
            approved=invited.approved,
            department=invited.department,
            subject=invited.subject,
        )

        directory = db.get(TeacherProfile, old_id)
        if directory is not None:
            db.add(TeacherProfile(
                id=uid,
                name=directory.name,
                email=directory.email,
                department=directory.department,
                subject=directory.subject,
                bio=directory.bio,
                office=directory.office,
                active=directory.active,
            ))
            db.delete(directory)

        db.query(Appointment).filter(Appointment.teacher_id == old_id).update(
            {Appointment.teacher_id: uid}, synchronize_session=False
        )
        db.query(Appointment).filter(Appointment.student_id == old_id).update(
            {Appointment.student_id: uid}, synchronize_session=False
        )
        db.query(TeacherAvailability).filter(TeacherAvailability.teacher_id == old_id).update(
            {TeacherAvailability.teacher_id: uid}, synchronize_session=False
        )
        db.query(BusyBlock).filter(BusyBlock.teacher_id == old_id).update(
            {BusyBlock.teacher_id: uid}, synchronize_session=False
        )
        db.query(Notification).filter(Notification.to_uid == old_id).update(
            {Notification.to_uid: uid}, synchronize_session=False
        )

        db.delete(invited)
        db.flush()
        db.add(profile)

        logger.info(f"Invitation {old_id} claimed by {uid}")
        return profile

    @staticmethod
    def authenticate(db: Session, token: str) -> Identity:
        claims = IdentityService.verify_token(token)
        return IdentityService.resolve_identity(db, claims)


class UserService:
    """Profile maintenance operations"""

    @staticmethod
    def approve_user(db: Session, actor: Identity, uid: str) -> UserProfile:
        """Admin approval that unlocks booking for a student account"""
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        profile = db.get(UserProfile, uid)
        if profile is None:
            raise NotFoundError("User not found")

        profile.approved = True
        db.commit()
        db.refresh(profile)

        logger.info(f"User {uid} approved by {actor.uid}")
        return profile

    @staticmethod
    def list_users(db: Session, actor: Identity, pending_only: bool = False) -> List[UserProfile]:
        """Admin user directory; ``pending_only`` keeps students still awaiting approval"""
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")

        query = db.query(UserProfile)
        if pending_only:
            query = query.filter(UserProfile.approved.is_(False))
        users = query.order_by(UserProfile.created_at, UserProfile.id).all()

        if pending_only:
            # Role holders are implicitly approved
            users = [u for u in users if not merge_roles(u.roles)]
        return users

    @staticmethod
    def set_roles(db: Session, email: str, add: Iterable[str] = (), remove: Optional[str] = None) -> UserProfile:
        """Add role tags to, or remove one tag from, the profile with this email"""
        profile = db.query(UserProfile).filter(UserProfile.email == email.strip().lower()).first()
        if profile is None:
            raise NotFoundError(f"No user with email {email}")

        roles = set(profile.roles or [])
        if remove:
            roles.discard(remove)
        else:
            unknown = [r for r in add if r not in KNOWN_ROLE_TAGS]
            if unknown:
                raise ValueError(f"Unknown role(s): {', '.join(unknown)}")
            roles.update(add)

        profile.roles = sorted(roles)
        if roles:
            profile.approved = True
        db.commit()
        db.refresh(profile)
        return profile
