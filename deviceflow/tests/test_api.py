"""
Интеграционные тесты HTTP API
"""
import uuid

from conftest import make_user

DEVICE = {
    "name": "MacBook Air",
    "type": "laptop",
    "model": "MacBook Air M2",
    "serial_number": "FVFXC2ABQ6L4",
}


def create_device(client, headers, **overrides):
    response = client.post("/api/devices/", json={**DEVICE, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_request(client, headers, device_type="laptop"):
    response = client.post(
        "/api/requests/",
        json={"device_type": device_type, "reason": "Новый сотрудник"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "deviceflow"}


def test_requests_require_auth(client):
    assert client.get("/api/requests/").status_code == 401
    response = client.get("/api/requests/", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_unknown_or_inactive_user(client, db, auth_headers):
    ghost = make_user(db, "ghost@company.com")
    headers = auth_headers(ghost)
    db.delete(ghost)
    db.commit()
    assert client.get("/api/requests/", headers=headers).status_code == 401

    retired = make_user(db, "retired@company.com", is_active=False)
    assert client.get("/api/requests/", headers=auth_headers(retired)).status_code == 403


def test_create_request(client, jane, auth_headers, gateway):
    data = create_request(client, auth_headers(jane))
    assert data["status"] == "pending"
    assert data["user_id"] == str(jane.id)
    assert data["requester_name"] == "Jane Doe"
    assert data["slack_thread_id"].startswith("req_")
    assert data["slack_message_ts"] == gateway.posts[0].ts


def test_create_request_validation(client, jane, auth_headers):
    response = client.post(
        "/api/requests/", json={"device_type": "desktop"}, headers=auth_headers(jane)
    )
    assert response.status_code == 422


def test_list_scoped_by_role(client, jane, bob, admin, auth_headers):
    mine = create_request(client, auth_headers(jane))
    create_request(client, auth_headers(bob), device_type="tablet")

    jane_list = client.get("/api/requests/", headers=auth_headers(jane)).json()
    assert [r["id"] for r in jane_list] == [mine["id"]]

    admin_list = client.get("/api/requests/", headers=auth_headers(admin)).json()
    assert len(admin_list) == 2


def test_get_request_ownership(client, jane, bob, admin, auth_headers):
    req = create_request(client, auth_headers(jane))

    assert client.get(f"/api/requests/{req['id']}", headers=auth_headers(jane)).status_code == 200
    assert client.get(f"/api/requests/{req['id']}", headers=auth_headers(admin)).status_code == 200

    response = client.get(f"/api/requests/{req['id']}", headers=auth_headers(bob))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"

    response = client.get(f"/api/requests/{uuid.uuid4()}", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_approve_requires_admin(client, jane, auth_headers):
    req = create_request(client, auth_headers(jane))
    response = client.put(f"/api/requests/{req['id']}/approve", headers=auth_headers(jane))
    assert response.status_code == 403


def test_approve_return_flow(client, jane, admin, auth_headers, gateway):
    admin_headers = auth_headers(admin)
    device = create_device(client, admin_headers)
    req = create_request(client, auth_headers(jane))

    response = client.put(
        f"/api/requests/{req['id']}/approve",
        json={"device_id": device["id"]},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    approved = response.json()
    assert approved["status"] == "approved"
    assert approved["approver_name"] == "Анна Админ"
    assert approved["assigned_device_id"] == device["id"]
    assert approved["assigned_device_name"] == DEVICE["name"]

    device_now = client.get(f"/api/devices/{device['id']}", headers=admin_headers).json()
    assert device_now["status"] == "assigned"
    assert device_now["assigned_to"] == str(jane.id)
    assert device_now["assigned_user_name"] == "Jane Doe"

    # Вернуть может и сам сотрудник
    response = client.put(f"/api/devices/{device['id']}/return", headers=auth_headers(jane))
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "available"
    assert gateway.posts[-1].thread_ref == req["slack_message_ts"]

    response = client.put(f"/api/devices/{device['id']}/return", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"

    logs = client.get(f"/api/devices/{device['id']}/logs", headers=admin_headers).json()
    assert [entry["action"] for entry in logs] == ["returned", "assigned", "created"]
    assert logs[0]["user_name"] == "Jane Doe"


def test_approve_without_body(client, jane, admin, auth_headers):
    req = create_request(client, auth_headers(jane))
    response = client.put(f"/api/requests/{req['id']}/approve", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["assigned_device_id"] is None


def test_reject_flow(client, jane, admin, auth_headers):
    req = create_request(client, auth_headers(jane))
    url = f"/api/requests/{req['id']}/reject"

    response = client.put(url, json={"reason": "Out of stock"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Out of stock"

    response = client.put(url, json={"reason": "Ещё раз"}, headers=auth_headers(admin))
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"


def test_reject_blank_reason(client, jane, admin, auth_headers):
    req = create_request(client, auth_headers(jane))
    url = f"/api/requests/{req['id']}/reject"
    assert client.put(url, json={}, headers=auth_headers(admin)).status_code == 422

    response = client.put(url, json={"reason": "  "}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["errors"]["field"] == "reason"


def test_return_by_other_employee_forbidden(client, jane, bob, admin, auth_headers):
    device = create_device(client, auth_headers(admin))
    req = create_request(client, auth_headers(jane))
    client.put(
        f"/api/requests/{req['id']}/approve",
        json={"device_id": device["id"]},
        headers=auth_headers(admin),
    )
    response = client.put(f"/api/devices/{device['id']}/return", headers=auth_headers(bob))
    assert response.status_code == 403


def test_device_crud(client, admin, jane, auth_headers):
    admin_headers = auth_headers(admin)
    device = create_device(client, admin_headers)
    create_device(client, admin_headers, name="iPad", type="tablet", model="iPad Air", serial_number="DMPX1")

    response = client.post("/api/devices/", json=DEVICE, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_SERIAL"

    assert client.post("/api/devices/", json=DEVICE, headers=auth_headers(jane)).status_code == 403

    available = client.get("/api/devices/available?type=tablet", headers=auth_headers(jane)).json()
    assert [d["name"] for d in available] == ["iPad"]
    assert len(client.get("/api/devices/", headers=auth_headers(jane)).json()) == 2

    response = client.put(
        f"/api/devices/{device['id']}", json={"name": "MacBook Air 13"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "MacBook Air 13"

    response = client.put(
        f"/api/devices/{device['id']}", json={"status": "assigned"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"]["field"] == "assigned_to"

    response = client.delete(f"/api/devices/{device['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert client.get(f"/api/devices/{device['id']}", headers=admin_headers).status_code == 404


def test_delete_assigned_device_refused(client, admin, jane, auth_headers):
    admin_headers = auth_headers(admin)
    device = create_device(
        client, admin_headers, status="assigned", assigned_to=str(jane.id)
    )
    response = client.delete(f"/api/devices/{device['id']}", headers=admin_headers)
    assert response.status_code == 409


def test_integrations_status(client, jane, auth_headers, gateway):
    response = client.get("/api/integrations/status", headers=auth_headers(jane))
    assert response.json() == {"slack": {"configured": True, "status": "active"}}

    gateway.configured = False
    response = client.get("/api/integrations/status", headers=auth_headers(jane))
    assert response.json()["slack"]["status"] == "inactive"


def test_slack_channels_admin_only(client, jane, admin, auth_headers):
    assert client.get("/api/integrations/slack/channels", headers=auth_headers(jane)).status_code == 403

    response = client.get("/api/integrations/slack/channels", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["channels"][0]["name"] == "devices"
