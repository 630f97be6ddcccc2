"""Tests for course routes"""

import pytest

COURSE = {
    "name": "Algebra",
    "code": "alg-101",
    "description": "Linear equations and functions",
    "level": "BASIC",
    "schedule": "Mon 08:00",
    "classroom": "Room 12",
    "capacity": 25,
}


class TestCreateCourse:
    def test_teacher_creates_own_course(self, client, teacher_user, teacher_headers):
        response = client.post("/api/courses", json=COURSE, headers=teacher_headers)
        assert response.status_code == 201
        data = response.json["data"]
        assert data["code"] == "ALG-101"
        assert data["teacher_id"] == str(teacher_user.id)
        assert data["teacher_name"] == "Tina Teacher"
        assert data["capacity"] == 25

    def test_student_cannot_create(self, client, student_headers):
        response = client.post("/api/courses", json=COURSE, headers=student_headers)
        assert response.status_code == 403

    def test_requires_token(self, client):
        assert client.post("/api/courses", json=COURSE).status_code == 401

    def test_duplicate_code(self, client, teacher_headers):
        client.post("/api/courses", json=COURSE, headers=teacher_headers)
        response = client.post("/api/courses", json=COURSE, headers=teacher_headers)
        assert response.status_code == 400
        assert "already exists" in response.json["detail"]

    def test_admin_assigns_teacher(self, client, admin_headers, teacher_user):
        payload = dict(COURSE, teacher_id=str(teacher_user.id))
        response = client.post("/api/courses", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json["data"]["teacher_id"] == str(teacher_user.id)

    def test_admin_cannot_assign_student(self, client, admin_headers, student_user):
        payload = dict(COURSE, teacher_id=str(student_user.id))
        response = client.post("/api/courses", json=payload, headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.parametrize(
        "changes,detail",
        [
            ({"name": ""}, "Name is required"),
            ({"code": "bad code!"}, "Invalid course code"),
            ({"code": 123}, "Invalid course code"),
            ({"level": "EXPERT"}, "Invalid level"),
            ({"capacity": 31}, "Capacity must be between 1 and 30"),
            ({"capacity": "ten"}, "Capacity must be between 1 and 30"),
        ],
    )
    def test_validation(self, client, teacher_headers, changes, detail):
        response = client.post(
            "/api/courses", json=dict(COURSE, **changes), headers=teacher_headers
        )
        assert response.status_code == 400
        assert response.json["detail"] == detail

    def test_markup_is_stripped(self, client, teacher_headers):
        payload = dict(COURSE, description="<b>Linear</b> equations")
        response = client.post("/api/courses", json=payload, headers=teacher_headers)
        assert response.json["data"]["description"] == "Linear equations"


class TestReadCourses:
    def test_list_courses(self, client, course):
        response = client.get("/api/courses")
        assert response.status_code == 200
        assert [c["code"] for c in response.json["data"]] == ["GEO-1"]

    def test_filter_by_teacher(self, client, course, teacher_user, admin_user):
        mine = client.get(f"/api/courses?teacherId={teacher_user.id}")
        assert len(mine.json["data"]) == 1
        other = client.get(f"/api/courses?teacherId={admin_user.id}")
        assert other.json["data"] == []
        invalid = client.get("/api/courses?teacherId=nope")
        assert invalid.json["data"] == []

    def test_get_course(self, client, course):
        response = client.get(f"/api/courses/{course.id}")
        assert response.status_code == 200
        assert response.json["data"]["name"] == "Geometry"

    def test_unknown_course(self, client, app):
        response = client.get("/api/courses/3f1b8f4e-4c4e-4b87-9e55-51b0e2c1f7a0")
        assert response.status_code == 404

    def test_malformed_course_id(self, client, app):
        assert client.get("/api/courses/not-a-uuid").status_code == 404
