"""
Token verification, role resolution and profile maintenance.
"""
from datetime import timedelta

import pytest

from campus_booking.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from campus_booking.models import (
    Appointment,
    BusyBlock,
    Notification,
    TeacherAvailability,
    TeacherProfile,
    UserProfile,
)
from campus_booking.services.identity.identity_service import (
    Identity,
    IdentityService,
    Role,
    UserService,
    merge_roles,
)


class TestMergeRoles:

    def test_union_of_known_tags(self):
        assert merge_roles(["teacher"], ["admin", "teacher"]) == frozenset({"admin", "teacher"})

    def test_ignores_unknown_tags_and_bad_input(self):
        assert merge_roles(["superuser"], None, "admin") == frozenset()


class TestIdentity:

    def test_effective_role_precedence(self):
        assert Identity("u", frozenset({"admin", "teacher"})).role == Role.ADMIN
        assert Identity("u", frozenset({"teacher"})).role == Role.TEACHER
        assert Identity("u").role == Role.STUDENT
        assert Identity("u").is_student


class TestTokens:

    def test_round_trip(self):
        token = IdentityService.create_access_token("student-a", ["teacher", "bogus"], email="a@school.test")
        claims = IdentityService.verify_token(token)
        assert claims["sub"] == "student-a"
        assert claims["roles"] == ["teacher"]
        assert claims["email"] == "a@school.test"

    def test_expired(self):
        token = IdentityService.create_access_token("student-a", expires_delta=timedelta(seconds=-1))
        with pytest.raises(AuthenticationError) as exc:
            IdentityService.verify_token(token)
        assert exc.value.reason == "Invalid token"

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            IdentityService.verify_token("not.a.token")

    def test_missing(self):
        with pytest.raises(AuthenticationError) as exc:
            IdentityService.verify_token("")
        assert exc.value.reason == "Missing token"


class TestResolveIdentity:

    def test_profile_roles_are_merged_with_claims(self, db, make_user):
        make_user("uid-1", email="t@school.test", roles=["teacher"], approved=False)
        identity = IdentityService.resolve_identity(db, {"sub": "uid-1", "roles": []})
        assert identity.roles == frozenset({"teacher"})
        assert identity.approved is True
        assert identity.email == "t@school.test"

    def test_first_sign_in_stores_unapproved_profile(self, db):
        identity = IdentityService.resolve_identity(db, {"sub": "new-student", "email": "N@School.test"})
        assert identity.is_student
        assert identity.approved is False
        assert identity.email == "n@school.test"

        profile = db.get(UserProfile, "new-student")
        assert profile.email == "n@school.test"
        assert profile.roles == []
        assert profile.approved is False

    def test_second_sign_in_reuses_profile(self, db):
        IdentityService.resolve_identity(db, {"sub": "new-student", "email": "n@school.test"})
        IdentityService.resolve_identity(db, {"sub": "new-student", "email": "n@school.test"})
        assert db.query(UserProfile).count() == 1

    def test_claim_roles_are_kept_on_first_sign_in(self, db):
        identity = IdentityService.resolve_identity(db, {"sub": "admin-9", "roles": ["admin"]})
        assert identity.is_admin
        assert db.get(UserProfile, "admin-9").roles == ["admin"]

    def test_approved_student(self, db, make_user):
        make_user("student-a", approved=True)
        assert IdentityService.resolve_identity(db, {"sub": "student-a"}).approved is True


class TestInvitationClaim:

    def test_invited_teacher_is_moved_to_provider_uid(self, db, make_teacher, make_appointment, set_weekly):
        make_teacher(uid="new@school.test", email="new@school.test", name="Mr. Okafor")
        set_weekly(teacher_id="new@school.test", weekly={"tue": [{"start": "09:00", "end": "10:00"}]})
        db.add(BusyBlock(teacher_id="new@school.test", date="2026-03-04", start="13:00", end="14:00"))
        db.add(Notification(to_uid="new@school.test", text="Welcome"))
        db.commit()
        booked = make_appointment("2026-03-03", "14:00", "14:30", teacher_id="new@school.test")

        identity = IdentityService.resolve_identity(db, {"sub": "idp-uid-123", "email": "New@School.test"})

        assert identity.role == Role.TEACHER
        assert identity.approved is True
        assert db.get(UserProfile, "new@school.test") is None
        assert db.get(TeacherProfile, "new@school.test") is None
        assert db.get(UserProfile, "idp-uid-123").display_name == "Mr. Okafor"
        assert db.get(TeacherProfile, "idp-uid-123").name == "Mr. Okafor"
        assert db.get(Appointment, booked.id).teacher_id == "idp-uid-123"
        assert db.get(TeacherAvailability, "idp-uid-123").weekly == {"tue": [{"start": "09:00", "end": "10:00"}]}
        assert db.query(BusyBlock).one().teacher_id == "idp-uid-123"
        assert db.query(Notification).one().to_uid == "idp-uid-123"

    def test_existing_account_with_same_email_is_not_taken_over(self, db, make_user):
        make_user("uid-1", email="sam@school.test", roles=["teacher"])

        identity = IdentityService.resolve_identity(db, {"sub": "uid-2", "email": "sam@school.test"})

        assert identity.is_student
        assert db.get(UserProfile, "uid-1").roles == ["teacher"]
        assert db.get(UserProfile, "uid-2").roles == []


class TestUserService:

    def test_approve_user(self, db, admin, make_user):
        make_user("student-n", approved=False)
        assert UserService.approve_user(db, admin, "student-n").approved is True

    def test_approve_requires_admin(self, db, teacher, make_user):
        make_user("student-n", approved=False)
        with pytest.raises(AuthorizationError):
            UserService.approve_user(db, teacher, "student-n")

    def test_approve_unknown(self, db, admin):
        with pytest.raises(NotFoundError):
            UserService.approve_user(db, admin, "ghost")

    def test_pending_list_holds_only_unapproved_students(self, db, admin, make_user):
        make_user("student-n", approved=False)
        make_user("student-a", approved=True)
        make_user("teacher-x", roles=["teacher"], approved=False)

        assert [u.id for u in UserService.list_users(db, admin, pending_only=True)] == ["student-n"]
        assert len(UserService.list_users(db, admin)) == 3

    def test_list_requires_admin(self, db, teacher):
        with pytest.raises(AuthorizationError):
            UserService.list_users(db, teacher)

    def test_set_and_remove_roles(self, db, make_user):
        make_user("uid-1", email="sam@school.test")
        assert UserService.set_roles(db, "Sam@School.test", ["admin", "teacher"]).roles == ["admin", "teacher"]
        assert UserService.set_roles(db, "sam@school.test", remove="admin").roles == ["teacher"]

    def test_set_unknown_role(self, db, make_user):
        make_user("uid-1", email="sam@school.test")
        with pytest.raises(ValueError):
            UserService.set_roles(db, "sam@school.test", ["principal"])

    def test_set_roles_unknown_email(self, db):
        with pytest.raises(NotFoundError):
            UserService.set_roles(db, "nobody@school.test", ["admin"])
