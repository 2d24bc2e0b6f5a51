from app.core.security import create_access_token
from app.models.user import UserRole, UserStatus


def test_timetable_access_control(client, seed, auth_headers):
    scheduler = seed.user(role=UserRole.scheduler)
    student = seed.user(role=UserRole.student)
    booking = seed.booking()
    payload = seed.draft(booking)

    assert client.post("/api/timetable/entries", json=payload).status_code == 401

    student_response = client.post("/api/timetable/entries", json=payload, headers=auth_headers(student))
    assert student_response.status_code == 403

    scheduler_response = client.post("/api/timetable/entries", json=payload, headers=auth_headers(scheduler))
    assert scheduler_response.status_code == 201

    listing = client.get("/api/timetable/entries", headers=auth_headers(student))
    assert listing.status_code == 200
    assert listing.json()["pagination"]["total"] == 1


def test_inactive_accounts_and_bad_tokens_are_rejected(client, seed, auth_headers):
    suspended = seed.user(role=UserRole.admin, status=UserStatus.inactive)

    response = client.get("/api/timetable/entries", headers=auth_headers(suspended))
    assert response.status_code == 403
    assert response.json()["detail"] == "User account is inactive"

    forged = client.get("/api/timetable/entries", headers={"Authorization": "Bearer not-a-token"})
    assert forged.status_code == 401

    unknown = client.get(
        "/api/timetable/entries",
        headers={"Authorization": f"Bearer {create_access_token('no-such-user')}"},
    )
    assert unknown.status_code == 401


def test_activity_log_is_staff_only(client, seed, auth_headers):
    scheduler = seed.user(role=UserRole.scheduler)
    faculty_user = seed.user(role=UserRole.faculty)
    booking = seed.booking()
    created = client.post("/api/timetable/entries", json=seed.draft(booking), headers=auth_headers(scheduler))
    entry_id = created.json()["entry_id"]

    assert client.get("/api/activity/logs", headers=auth_headers(faculty_user)).status_code == 403

    logs = client.get("/api/activity/logs", params={"record_id": entry_id}, headers=auth_headers(scheduler))
    assert logs.status_code == 200
    body = logs.json()
    assert [item["action"] for item in body] == ["TIMETABLE_CREATE"]
    assert body[0]["user_id"] == scheduler.id
