from datetime import datetime, timedelta

from studentlink.models.user import ROLE_ADMIN, ROLE_DEPARTMENT_HEAD, ROLE_STAFF


def _resolved(make_concern, dept, staff, hours):
    now = datetime.utcnow()
    return make_concern(
        dept,
        assigned_to=staff,
        status="resolved",
        assigned_at=now - timedelta(hours=hours),
        resolved_at=now,
    )

def test_performance_overview(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    staff = make_user(ROLE_STAFF, department_id=dept)
    for _ in range(5):
        _resolved(make_concern, dept, staff, hours=2)
    make_concern(dept, assigned_to=staff)
    make_concern(dept, assigned_to=staff, status="in_progress")

    r = client.get("/api/analytics/performance", headers=auth_headers(admin))
    assert r.status_code == 200
    data = r.get_json()["data"]
    overview = data["overview"]
    assert overview["total_concerns"] == 7
    assert overview["resolved_concerns"] == 5
    assert overview["pending_concerns"] == 1
    assert overview["in_progress_concerns"] == 1
    assert overview["resolution_rate"] == 71.43
    assert overview["average_resolution_time_hours"] == 2

    member = data["staff_performance"][0]
    assert member["staff_id"] == staff
    assert member["current_workload"] == 2
    assert data["concern_analytics"]["resolution_time_distribution"]["1_to_6_hours"] == 5
    assert len(data["trends"]) == 30

def test_head_defaults_to_own_department(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    other = make_department()
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=dept)
    staff = make_user(ROLE_STAFF, department_id=dept)
    _resolved(make_concern, dept, staff, hours=1)
    make_concern(other)

    data = client.get("/api/analytics/performance", headers=auth_headers(head)).get_json()["data"]
    assert data["overview"]["total_concerns"] == 1
    assert data["overview"]["resolution_rate"] == 100
    assert [d["department_id"] for d in data["department_performance"]] == [dept]

def test_date_range_excludes_old_concerns(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    make_concern(dept, age_hours=24 * 10)
    make_concern(dept)
    r = client.get("/api/analytics/performance?date_range=7", headers=auth_headers(admin))
    data = r.get_json()["data"]
    assert data["overview"]["total_concerns"] == 1
    assert len(data["trends"]) == 7

def test_workload_distribution(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    admin = make_user(ROLE_ADMIN)
    light = make_user(ROLE_STAFF, department_id=dept)
    busy = make_user(ROLE_STAFF, department_id=dept)
    make_concern(dept, assigned_to=light)
    for _ in range(5):
        make_concern(dept, assigned_to=busy)

    r = client.get(f"/api/analytics/workload-distribution?department_id={dept}", headers=auth_headers(admin))
    assert r.get_json()["data"] == {
        "light_workload": 1,
        "moderate_workload": 1,
        "heavy_workload": 0,
        "overloaded": 0,
    }

def test_students_cannot_read_analytics(client, make_user, auth_headers):
    student = make_user("student")
    assert client.get("/api/analytics/performance", headers=auth_headers(student)).status_code == 403

def test_assignment_analytics(client, make_department, make_user, make_concern, auth_headers):
    dept = make_department()
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=dept)
    staff = make_user(ROLE_STAFF, department_id=dept)
    make_concern(dept, assigned_to=staff)
    make_concern(dept)

    data = client.get("/api/smart-assignment/analytics", headers=auth_headers(head)).get_json()["data"]
    assert data["total_assignments"] == 1
    assert data["unassigned_open"] == 1
    assert data["staff_workloads"][0]["active_concerns"] == 1

def test_assignment_analytics_rejects_other_department_for_heads(client, make_department, make_user, make_concern, auth_headers):
    mine = make_department()
    other = make_department()
    head = make_user(ROLE_DEPARTMENT_HEAD, department_id=mine)
    admin = make_user(ROLE_ADMIN)
    staff = make_user(ROLE_STAFF, department_id=other)
    make_concern(other, assigned_to=staff)

    r = client.get(f"/api/smart-assignment/analytics?department_id={other}", headers=auth_headers(head))
    assert r.status_code == 403
    assert r.get_json()["message"] == "Unauthorized to view analytics for this department"

    assert client.get(f"/api/smart-assignment/analytics?department_id={mine}", headers=auth_headers(head)).status_code == 200
    data = client.get(f"/api/smart-assignment/analytics?department_id={other}", headers=auth_headers(admin)).get_json()["data"]
    assert data["staff_workloads"][0]["id"] == staff
