"""
Organization policy store and its cancellation cascade.
"""
from datetime import date

import pytest

from campus_booking.core.exceptions import AuthorizationError, ValidationError
from campus_booking.models import Appointment, Notification
from campus_booking.services.notification.notification_service import NotificationService
from campus_booking.services.policy.policy_service import PolicyService, load_policy, sanitize_holidays


@pytest.fixture
def service(db, notifier, clock):
    return PolicyService(db, notifier=notifier, clock=clock)


@pytest.fixture
def people(make_teacher, make_user):
    make_teacher()
    make_user("student-a", email="a@school.test")


class TestReadPolicy:

    def test_default_when_unset(self, service):
        policy = service.get_policy()
        assert policy.to_dict() == {"workdayStart": "09:00", "workdayEnd": "17:00", "holidays": []}


class TestSanitizeHolidays:

    def test_drops_malformed_nameless_past_and_duplicates(self):
        raw = [
            {"date": "2026-12-25", "name": "Christmas"},
            {"date": "2026-04-03", "name": "Spring Break"},
            {"date": "2026-04-03", "name": "Duplicate"},
            {"date": "2026-03-01", "name": "Yesterday"},
            {"date": "2026-5-1", "name": "Unpadded"},
            {"date": "2026-06-01", "name": ""},
            "not-a-dict",
        ]
        cleaned = sanitize_holidays(raw, date(2026, 3, 2))
        assert cleaned == [
            {"date": "2026-04-03", "name": "Spring Break"},
            {"date": "2026-12-25", "name": "Christmas"},
        ]

    def test_non_list_is_empty(self):
        assert sanitize_holidays(None, date(2026, 3, 2)) == []


class TestWritePolicy:

    def test_requires_admin(self, service, teacher):
        with pytest.raises(AuthorizationError):
            service.set_policy(teacher, "09:00", "17:00", [])

    def test_rejects_bad_format(self, service, admin):
        with pytest.raises(ValidationError) as exc:
            service.set_policy(admin, "9:00", "17:00", [])
        assert exc.value.reason == "Invalid time format for workday start/end"

    def test_rejects_inverted_window(self, service, admin):
        with pytest.raises(ValidationError) as exc:
            service.set_policy(admin, "17:00", "09:00", [])
        assert exc.value.reason == "Workday start must be before workday end"

    def test_saves_and_reports(self, service, admin, db):
        result = service.set_policy(admin, "08:00", "16:00", [{"date": "2026-04-03", "name": "Spring Break"}])
        assert result == {
            "cancelled": 0,
            "saved": {
                "workdayStart": "08:00",
                "workdayEnd": "16:00",
                "holidays": [{"date": "2026-04-03", "name": "Spring Break"}],
            },
        }
        assert load_policy(db).workday_start == "08:00"


class TestPolicyCascade:

    def test_narrowing_cancels_exactly_the_appointments_outside(self, service, admin, people, make_appointment, db):
        early = make_appointment("2026-03-03", "09:00", "09:30")
        inside = make_appointment("2026-03-03", "10:00", "10:30", status="approved")
        crossing = make_appointment("2026-03-03", "15:30", "16:30", student_id="student-b")
        past = make_appointment("2026-03-02", "09:00", "09:30", status="approved")

        result = service.set_policy(admin, "10:00", "16:00", [])

        assert result["cancelled"] == 2
        for appointment in (early, crossing):
            db.refresh(appointment)
            assert appointment.status == "cancelled"
            assert appointment.cancel_reason == "Outside organization working hours"
        db.refresh(inside)
        db.refresh(past)
        assert inside.status == "approved"
        assert past.status == "approved"

    def test_holiday_cancels_every_appointment_on_that_date_only(self, service, admin, people, make_appointment, db):
        morning = make_appointment("2026-03-04", "10:00", "10:30")
        afternoon = make_appointment("2026-03-04", "14:00", "14:30", status="approved")
        next_day = make_appointment("2026-03-05", "10:00", "10:30")

        result = service.set_policy(admin, "09:00", "17:00", [{"date": "2026-03-04", "name": "Founders Day"}])

        assert result["cancelled"] == 2
        for appointment in (morning, afternoon):
            db.refresh(appointment)
            assert appointment.status == "cancelled"
            assert appointment.cancel_reason == "Holiday"
        db.refresh(next_day)
        assert next_day.status == "pending"

    def test_notifies_both_parties(self, service, admin, people, make_appointment, db, dispatcher):
        make_appointment("2026-03-04", "10:00", "10:30")

        service.set_policy(admin, "09:00", "17:00", [{"date": "2026-03-04", "name": "Founders Day"}])

        inbox = {n.to_uid for n in db.query(Notification).all()}
        assert inbox == {"student-a", "teacher-1"}
        subject = "Appointment cancelled – Organization settings updated"
        assert dispatcher.subjects_for("a@school.test") == [subject]
        assert dispatcher.subjects_for("teacher@school.test") == [subject]

    def test_email_failure_does_not_undo_the_cascade(self, db, admin, people, make_appointment, clock,
                                                     failing_dispatcher):
        appointment = make_appointment("2026-03-04", "10:00", "10:30")
        service = PolicyService(db, notifier=NotificationService(db, dispatcher=failing_dispatcher), clock=clock)

        result = service.set_policy(admin, "09:00", "17:00", [{"date": "2026-03-04", "name": "Founders Day"}])

        assert result["cancelled"] == 1
        db.refresh(appointment)
        assert appointment.status == "cancelled"

    def test_failure_inside_the_batch_rolls_everything_back(self, db, admin, people, make_appointment, clock):
        class BrokenInbox(NotificationService):
            def add_in_app(self, to_uid, text):
                raise RuntimeError("inbox write failed")

        appointment = make_appointment("2026-03-04", "10:00", "10:30")
        service = PolicyService(db, notifier=BrokenInbox(db), clock=clock)

        with pytest.raises(RuntimeError):
            service.set_policy(admin, "10:00", "16:00", [{"date": "2026-03-04", "name": "Founders Day"}])

        assert load_policy(db).workday_start == "09:00"
        assert db.get(Appointment, appointment.id).status == "pending"
