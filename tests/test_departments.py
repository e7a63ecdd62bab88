def test_lists_active_departments_by_name(client, make_department):
    make_department(name="School of Nursing", code="NUR")
    make_department(name="BSIT Department", code="BSIT")
    make_department(name="Closed Annex", code="OLD", is_active=False)

    r = client.get("/api/departments")
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    assert [d["code"] for d in body["data"]] == ["BSIT", "NUR"]

def test_departments_need_no_token(client):
    r = client.get("/api/departments")
    assert r.status_code == 200
    assert r.get_json()["data"] == []
