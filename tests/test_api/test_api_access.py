"""
HTTP-level access tests: status codes and error bodies for the two-school
fixture. Each request carries a token issued for one of the seeded accounts.
"""
from __future__ import annotations

from educonnect.models import Assignment, Attendance

NOT_FOUND_BODY = {"status": "error", "message": "Resource not found"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_and_foreign_ids_get_identical_404s(client, auth_headers, world):
    headers = auth_headers(world.a.teacher)

    missing = client.get("/assignments/999999", headers=headers)
    foreign = client.get(f"/assignments/{world.b.assignment_id}", headers=headers)
    colleague = client.get(f"/assignments/{world.a.other_assignment_id}", headers=headers)

    for response in (missing, foreign, colleague):
        assert response.status_code == 404
        assert response.json() == NOT_FOUND_BODY
    assert missing.content == foreign.content == colleague.content


def test_teacher_deleting_colleagues_assignment_gets_404(client, auth_headers, session_factory, world):
    response = client.delete(f"/assignments/{world.a.other_assignment_id}", headers=auth_headers(world.a.teacher))

    assert response.status_code == 404
    assert response.json() == NOT_FOUND_BODY
    with session_factory() as db:
        assignment = db.get(Assignment, world.a.other_assignment_id)
        assert assignment is not None
        assert assignment.title == "Lab report"


def test_teacher_deletes_own_assignment(client, auth_headers, session_factory, world):
    response = client.delete(f"/assignments/{world.a.assignment_id}", headers=auth_headers(world.a.teacher))

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Assignment deleted"}
    with session_factory() as db:
        assert db.get(Assignment, world.a.assignment_id) is None


def test_parent_cannot_read_unlinked_students_attendance(client, auth_headers, world):
    headers = auth_headers(world.a.parent)

    unlinked = client.get(f"/students/{world.a.other_student_id}/attendance", headers=headers)
    linked = client.get(f"/students/{world.a.student_id}/attendance", headers=headers)

    assert unlinked.status_code == 404
    assert unlinked.json() == NOT_FOUND_BODY
    assert linked.status_code == 200
    assert [row["id"] for row in linked.json()["items"]] == [world.a.attendance_id]


def test_role_not_permitted_is_403(client, auth_headers, world):
    response = client.get("/transactions", headers=auth_headers(world.a.student))
    assert response.status_code == 403
    assert response.json() == {"status": "error", "message": "Forbidden: insufficient permissions"}


def test_self_delete_is_400(client, auth_headers, world):
    response = client.delete(f"/users/{world.a.admin_id}", headers=auth_headers(world.a.admin))
    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_lists_only_show_visible_rows(client, auth_headers, world):
    teacher = client.get("/students", headers=auth_headers(world.a.teacher)).json()
    admin = client.get("/students", headers=auth_headers(world.a.admin)).json()
    platform = client.get("/students", headers=auth_headers(world.platform_admin)).json()

    assert [s["id"] for s in teacher["items"]] == [world.a.student_id]
    assert teacher["pagination"]["total"] == 1
    assert {s["id"] for s in admin["items"]} == {world.a.student_id, world.a.other_student_id}
    assert platform["pagination"]["total"] == 4


def test_pagination_meta(client, auth_headers, world):
    response = client.get("/users", params={"limit": 2}, headers=auth_headers(world.a.admin))

    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 2
    assert body["pagination"] == {
        "offset": 0,
        "limit": 2,
        "total": 5,
        "total_pages": 3,
        "current_page": 1,
        "has_next": True,
        "has_prev": False,
    }


def test_page_size_is_capped(client, auth_headers, world):
    response = client.get("/users", params={"limit": 500}, headers=auth_headers(world.a.admin))
    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_teacher_records_attendance_for_own_class(client, auth_headers, session_factory, world):
    headers = auth_headers(world.a.teacher)
    payload = {"student_id": world.a.student_id, "attendance_date": "2030-01-12", "status": "Absent"}

    created = client.post("/attendance", json=payload, headers=headers)
    duplicate = client.post("/attendance", json=payload, headers=headers)
    foreign = client.post(
        "/attendance",
        json={**payload, "student_id": world.a.other_student_id},
        headers=headers,
    )

    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert foreign.status_code == 404
    with session_factory() as db:
        assert db.get(Attendance, created.json()["id"]).teacher_id == world.a.teacher_id


def test_invalid_body_is_400(client, auth_headers, world):
    response = client.post(
        "/users",
        json={"name": "X", "email": "not-an-email", "password": "long-enough", "role": "teacher"},
        headers=auth_headers(world.a.admin),
    )
    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert "email" in response.json()["message"]


def test_student_deletion_over_http(client, auth_headers, world):
    response = client.delete(f"/students/{world.a.student_id}", headers=auth_headers(world.a.admin))
    assert response.status_code == 200
    assert response.json()["message"] == "Student and related records deleted"

    gone = client.get(f"/students/{world.a.student_id}", headers=auth_headers(world.a.admin))
    assert gone.status_code == 404


def test_null_for_a_required_field_is_400(client, auth_headers, session_factory, world):
    headers = auth_headers(world.a.teacher)

    assignment = client.patch(f"/assignments/{world.a.assignment_id}", json={"title": None}, headers=headers)
    user = client.patch(f"/users/{world.a.teacher_id}", json={"email": None}, headers=headers)

    for response in (assignment, user):
        assert response.status_code == 400
        assert response.json()["status"] == "error"
    with session_factory() as db:
        assert db.get(Assignment, world.a.assignment_id).title == "Essay"


def test_platform_admin_opens_and_removes_a_school(client, auth_headers, world):
    headers = auth_headers(world.platform_admin)
    payload = {
        "name": "River School",
        "email": "office@river.org",
        "admin_name": "River Head",
        "admin_email": "head@river.org",
        "password": "river-password-1",
    }

    created = client.post("/schools", json=payload, headers=headers)
    assert created.status_code == 201
    school_id = created.json()["id"]
    assert created.json()["email"] == "office@river.org"

    login = client.post("/auth/login", json={"email": "head@river.org", "password": "river-password-1"})
    assert login.status_code == 200

    removed = client.delete(f"/schools/{school_id}", headers=headers)
    assert removed.status_code == 200
    assert removed.json() == {"status": "success", "message": "School and related records deleted"}
    assert client.get(f"/schools/{school_id}", headers=headers).status_code == 404


def test_school_admin_cannot_open_or_remove_schools(client, auth_headers, world):
    headers = auth_headers(world.a.admin)
    payload = {
        "name": "Rogue School",
        "email": "office@rogue.org",
        "admin_name": "Rogue",
        "admin_email": "head@rogue.org",
        "password": "rogue-password-1",
    }

    assert client.post("/schools", json=payload, headers=headers).status_code == 403
    assert client.delete(f"/schools/{world.a.school_id}", headers=headers).status_code == 403
    assert client.get(f"/schools/{world.a.school_id}", headers=headers).status_code == 200
