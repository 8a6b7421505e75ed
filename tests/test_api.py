"""
HTTP surface: routing, authentication and error rendering.
"""


class TestPublicEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_correlation_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "req-123"})
        assert response.headers["X-Correlation-ID"] == "req-123"
        assert client.get("/health").headers["X-Correlation-ID"]

    def test_read_settings_default(self, client):
        response = client.get("/api/v1/admin/settings")
        assert response.status_code == 200
        assert response.json() == {"workdayStart": "09:00", "workdayEnd": "17:00", "holidays": []}

    def test_calendar(self, client, set_weekly):
        set_weekly(weekly={"tue": [{"start": "09:00", "end": "10:00"}]})
        response = client.post(
            "/api/v1/teachers/calendar",
            json={"teacherId": "teacher-1", "from": "2026-03-03", "to": "2026-03-03"},
        )
        assert response.status_code == 200
        assert response.json() == {
            "workday": {"start": "09:00", "end": "17:00"},
            "busy": [{"date": "2026-03-03", "start": "09:00", "end": "10:00", "source": "teacher-weekly"}],
        }

    def test_calendar_validation(self, client):
        response = client.post("/api/v1/teachers/calendar", json={"teacherId": "teacher-1"})
        assert response.status_code == 400
        assert response.json() == {"detail": "teacherId, from (YYYY-MM-DD), to required"}

    def test_calendar_not_ready(self, client, monkeypatch):
        from campus_booking.core.exceptions import CalendarNotReadyError
        from campus_booking.services.calendar.calendar_service import CalendarService

        def not_ready(self, teacher_id, from_day, to_day):
            raise CalendarNotReadyError("Calendar index is building. Try again shortly.", retry_after=5)

        monkeypatch.setattr(CalendarService, "_approved_appointments", not_ready)

        response = client.post(
            "/api/v1/teachers/calendar",
            json={"teacherId": "teacher-1", "from": "2026-03-03", "to": "2026-03-04"},
        )
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        assert response.json() == {"detail": "Calendar index is building. Try again shortly."}

    def test_slots(self, client):
        response = client.get("/api/v1/teachers/teacher-1/slots", params={"date": "2026-03-07"})
        assert response.status_code == 200
        assert response.json() == {"date": "2026-03-07", "slots": []}

    def test_teacher_schedule(self, client, make_appointment):
        make_appointment("2026-03-03", "14:00", "14:30")
        response = client.get("/api/v1/public/teacher-schedule", params={"teacherId": "teacher-1", "date": "2026-03-03"})
        assert response.status_code == 200
        assert response.json()["appointments"][0]["status"] == "pending"


class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get("/api/v1/appointments")
        assert response.status_code == 401
        assert response.json() == {"detail": "Missing token"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/appointments", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token"}


class TestBookingFlow:

    def test_book_then_approve(self, client, auth, make_teacher, make_user, dispatcher):
        make_teacher()
        make_user("student-a", email="a@school.test", approved=True)

        booked = client.post(
            "/api/v1/appointments/book",
            headers=auth("student-a"),
            json={"teacherId": "teacher-1", "date": "2026-03-03", "start": "14:00", "end": "14:30"},
        )
        assert booked.status_code == 200
        body = booked.json()
        assert body["ok"] is True
        assert body["status"] == "pending"

        approved = client.post(
            "/api/v1/appointments/update",
            headers=auth("teacher-1", ["teacher"]),
            json={"id": body["id"], "action": "approve"},
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert dispatcher.subjects_for("a@school.test") == ["Appointment Approved"]

        listed = client.get("/api/v1/appointments", headers=auth("student-a"))
        assert listed.status_code == 200
        assert [a["status"] for a in listed.json()] == ["approved"]

    def test_book_conflict(self, client, auth, make_user):
        make_user("student-a", approved=True)
        response = client.post(
            "/api/v1/appointments/book",
            headers=auth("student-a"),
            json={"teacherId": "teacher-1", "date": "2026-03-07", "start": "10:00", "end": "10:30"},
        )
        assert response.status_code == 409
        assert response.json() == {"detail": "Weekends are not bookable"}

    def test_unapproved_student(self, client, auth):
        response = client.post(
            "/api/v1/appointments/book",
            headers=auth("student-new"),
            json={"teacherId": "teacher-1", "date": "2026-03-03", "start": "10:00", "end": "10:30"},
        )
        assert response.status_code == 403
        assert response.json() == {"detail": "Account pending approval"}

    def test_admin_approves_student(self, client, auth, make_user):
        make_user("student-new", approved=False)
        response = client.post("/api/v1/admin/users/student-new/approve", headers=auth("admin-1", ["admin"]))
        assert response.status_code == 200
        assert response.json() == {"ok": True, "uid": "student-new", "approved": True}

    def test_new_student_signs_in_gets_approved_and_books(self, client, auth, make_teacher):
        make_teacher()
        student = auth("student-fresh", email="fresh@school.test")
        admin = auth("admin-1", ["admin"])
        request = {"teacherId": "teacher-1", "date": "2026-03-03", "start": "14:00", "end": "14:30"}

        refused = client.post("/api/v1/appointments/book", headers=student, json=request)
        assert refused.status_code == 403
        assert refused.json() == {"detail": "Account pending approval"}

        pending = client.get("/api/v1/admin/users", headers=admin, params={"pending": "true"})
        assert pending.status_code == 200
        assert [(u["uid"], u["email"]) for u in pending.json()["items"]] == [("student-fresh", "fresh@school.test")]

        approved = client.post("/api/v1/admin/users/student-fresh/approve", headers=admin)
        assert approved.json() == {"ok": True, "uid": "student-fresh", "approved": True}
        assert client.get("/api/v1/admin/users", headers=admin, params={"pending": "true"}).json() == {"items": []}

        booked = client.post("/api/v1/appointments/book", headers=student, json=request)
        assert booked.status_code == 200
        assert booked.json()["status"] == "pending"


class TestAdminAndTeacher:

    def test_save_settings_cancels_and_notifies(self, client, auth, make_teacher, make_user, make_appointment):
        make_teacher()
        make_user("student-a", email="a@school.test")
        make_appointment("2026-03-04", "10:00", "10:30")

        response = client.post(
            "/api/v1/admin/settings",
            headers=auth("admin-1", ["admin"]),
            json={"workdayStart": "09:00", "workdayEnd": "17:00",
                  "holidays": [{"date": "2026-03-04", "name": "Founders Day"}]},
        )
        assert response.status_code == 200
        assert response.json()["cancelled"] == 1

        inbox = client.get("/api/v1/notifications", headers=auth("student-a"))
        assert len(inbox.json()["items"]) == 1

    def test_save_settings_requires_admin(self, client, auth):
        response = client.post(
            "/api/v1/admin/settings",
            headers=auth("teacher-1", ["teacher"]),
            json={"workdayStart": "09:00", "workdayEnd": "17:00"},
        )
        assert response.status_code == 403

    def test_availability_round_trip(self, client, auth):
        headers = auth("teacher-1", ["teacher"])
        saved = client.put(
            "/api/v1/teacher/availability",
            headers=headers,
            json={"weekly": {"mon": [{"start": "09:00", "end": "10:00"}, {"start": "07:00", "end": "08:00"}]},
                  "busy": []},
        )
        assert saved.status_code == 200
        assert saved.json()["dropped"] == 1

        fetched = client.get("/api/v1/teacher/availability", headers=headers)
        assert fetched.json()["weekly"]["mon"] == [{"start": "09:00", "end": "10:00"}]

    def test_busy_block_endpoints(self, client, auth):
        headers = auth("teacher-1", ["teacher"])
        created = client.post(
            "/api/v1/teacher/busy",
            headers=headers,
            json={"date": "2026-03-04", "start": "13:00", "end": "14:00", "note": "Dentist"},
        )
        assert created.status_code == 200
        block_id = created.json()["id"]

        assert [b["id"] for b in client.get("/api/v1/teacher/busy", headers=headers).json()["items"]] == [block_id]
        assert client.delete("/api/v1/teacher/busy", headers=headers, params={"id": block_id}).json() == {"ok": True}
        assert client.delete("/api/v1/teacher/busy", headers=headers, params={"id": block_id}).status_code == 404

    def test_invite_and_delete_teacher(self, client, auth, dispatcher):
        headers = auth("admin-1", ["admin"])
        invited = client.post(
            "/api/v1/admin/teachers/invite",
            headers=headers,
            json={"email": "new@school.test", "displayName": "Mr. Okafor"},
        )
        assert invited.json() == {"ok": True, "uid": "new@school.test"}

        removed = client.post("/api/v1/admin/teachers/delete", headers=headers, json={"teacherUid": "new@school.test"})
        assert removed.json() == {"ok": True, "cancelled": 0}
        assert dispatcher.subjects_for("new@school.test") == [
            "You're invited as a Teacher",
            "Your teacher account was removed",
        ]

    def test_invited_teacher_signs_in_with_provider_uid(self, client, auth, make_user):
        make_user("student-a", email="a@school.test", approved=True)
        admin = auth("admin-1", ["admin"])
        invited = client.post(
            "/api/v1/admin/teachers/invite",
            headers=admin,
            json={"email": "new@school.test", "displayName": "Mr. Okafor"},
        )
        assert invited.json() == {"ok": True, "uid": "new@school.test"}

        booked = client.post(
            "/api/v1/appointments/book",
            headers=auth("student-a"),
            json={"teacherId": "new@school.test", "date": "2026-03-03", "start": "14:00", "end": "14:30"},
        )
        assert booked.status_code == 200

        teacher = auth("idp-uid-123", email="new@school.test")
        assert client.get("/api/v1/teacher/availability", headers=teacher).status_code == 200

        listed = client.get("/api/v1/appointments", headers=teacher)
        assert [(a["id"], a["teacher_id"]) for a in listed.json()] == [(booked.json()["id"], "idp-uid-123")]

    def test_invite_with_known_provider_uid(self, client, auth):
        invited = client.post(
            "/api/v1/admin/teachers/invite",
            headers=auth("admin-1", ["admin"]),
            json={"email": "new@school.test", "displayName": "Mr. Okafor", "uid": "idp-uid-123"},
        )
        assert invited.json() == {"ok": True, "uid": "idp-uid-123"}

        teacher = auth("idp-uid-123", email="new@school.test")
        assert client.get("/api/v1/teacher/availability", headers=teacher).status_code == 200
