"""
HTTP-level tests for authentication, leave and admin endpoints
"""
from leave_mgmt.models import AuditLog
from leave_mgmt.tests.conftest import TEST_PASSWORD
from leave_mgmt.workflow.types import UserRole

API = "/api/v1"

LEAVE = {
    "leave_type": "casual",
    "from_date": "2031-03-03",
    "to_date": "2031-03-05",
    "reason": "moving house",
}


def test_health(client):
    response = client.get(f"{API}/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "leave-management-backend"


class TestLogin:
    def test_login_returns_token(self, client, make_user):
        user = make_user("EMP500", UserRole.EMPLOYEE, with_password=True)

        response = client.post(f"{API}/auth/login", json={"username": "emp500", "password": TEST_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user_id"] == user.id
        assert body["role"] == "employee"

        me = client.get(f"{API}/leaves", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200

    def test_wrong_password(self, client, make_user):
        make_user("EMP501", UserRole.EMPLOYEE, with_password=True)

        response = client.post(f"{API}/auth/login", json={"username": "emp501", "password": "nope-nope"})

        assert response.status_code == 401

    def test_inactive_account(self, client, make_user):
        make_user("EMP502", UserRole.EMPLOYEE, with_password=True, active=False)

        response = client.post(f"{API}/auth/login", json={"username": "emp502", "password": TEST_PASSWORD})

        assert response.status_code == 403

    def test_invalid_token(self, client):
        response = client.get(f"{API}/leaves", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401


class TestLeaveEndpoints:
    def test_submit_and_approve(self, client, org, policies, auth_headers):
        created = client.post(f"{API}/leaves", json=LEAVE, headers=auth_headers(org.employee))
        assert created.status_code == 201
        leave = created.json()
        assert leave["status"] == "pending"
        assert leave["days_count"] == 3
        assert [s["approver_role"] for s in leave["steps"]] == ["line_manager", "hr"]

        pending = client.get(f"{API}/leaves/pending", headers=auth_headers(org.manager))
        assert [r["id"] for r in pending.json()] == [leave["id"]]

        step1 = client.post(
            f"{API}/leaves/{leave['id']}/steps/1/decision",
            json={"decision": "approved", "comment": "fine"},
            headers=auth_headers(org.manager),
        )
        assert step1.status_code == 200
        step2 = client.post(
            f"{API}/leaves/{leave['id']}/steps/2/decision",
            json={"decision": "approved"},
            headers=auth_headers(org.hr),
        )
        assert step2.status_code == 200
        assert step2.json()["status"] == "approved"

        balances = client.get(f"{API}/balances", params={"year": 2031}, headers=auth_headers(org.employee))
        casual = balances.json()["items"][0]
        assert (casual["used_days"], casual["remaining_days"]) == (3, 9)

    def test_policy_violation_is_400(self, client, org, policies, auth_headers):
        too_long = dict(LEAVE, to_date="2031-03-12")

        response = client.post(f"{API}/leaves", json=too_long, headers=auth_headers(org.employee))

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "EXCEEDS_CONSECUTIVE_LIMIT"

    def test_stale_decision_is_409(self, client, org, policies, auth_headers):
        leave = client.post(f"{API}/leaves", json=LEAVE, headers=auth_headers(org.employee)).json()
        url = f"{API}/leaves/{leave['id']}/steps/1/decision"
        client.post(url, json={"decision": "rejected"}, headers=auth_headers(org.manager))

        response = client.post(url, json={"decision": "approved"}, headers=auth_headers(org.manager))

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["kind"] == "ALREADY_DECIDED"
        assert detail["retryable"] is True

    def test_wrong_approver_is_403(self, client, org, policies, auth_headers):
        leave = client.post(f"{API}/leaves", json=LEAVE, headers=auth_headers(org.employee)).json()

        response = client.post(
            f"{API}/leaves/{leave['id']}/steps/1/decision",
            json={"decision": "approved"},
            headers=auth_headers(org.other_manager),
        )

        assert response.status_code == 403

    def test_unknown_request_is_404(self, client, org, auth_headers):
        response = client.get(f"{API}/leaves/12345", headers=auth_headers(org.admin))

        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "REQUEST_NOT_FOUND"

    def test_invalid_decision_value_is_422(self, client, org, policies, auth_headers):
        leave = client.post(f"{API}/leaves", json=LEAVE, headers=auth_headers(org.employee)).json()

        response = client.post(
            f"{API}/leaves/{leave['id']}/steps/1/decision",
            json={"decision": "maybe"},
            headers=auth_headers(org.manager),
        )

        assert response.status_code == 422

    def test_submission_is_audited(self, client, db, org, policies, auth_headers):
        client.post(f"{API}/leaves", json=LEAVE, headers=auth_headers(org.employee))

        assert db.query(AuditLog).filter(AuditLog.action == "LEAVE_SUBMIT").count() == 1


class TestAdminEndpoints:
    def test_policy_crud(self, client, org, auth_headers):
        body = {"leave_type": "personal", "annual_limit": 3, "min_days_notice": 1, "max_consecutive_days": 2}

        created = client.post(f"{API}/policies", json=body, headers=auth_headers(org.hr))
        assert created.status_code == 201

        duplicate = client.post(f"{API}/policies", json=body, headers=auth_headers(org.hr))
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"]["kind"] == "DUPLICATE_ACTIVE_POLICY"

        patched = client.patch(
            f"{API}/policies/{created.json()['id']}", json={"annual_limit": 4}, headers=auth_headers(org.admin)
        )
        assert patched.json()["annual_limit"] == 4

        denied = client.post(f"{API}/policies", json=body, headers=auth_headers(org.employee))
        assert denied.status_code == 403

    def test_workflow_config(self, client, org, auth_headers):
        response = client.put(
            f"{API}/workflows", json={"name": "hr only", "roles": ["hr"]}, headers=auth_headers(org.hr)
        )
        assert response.status_code == 200

        resolved = client.get(f"{API}/workflows/resolve", params={"leave_type": "sick"}, headers=auth_headers(org.hr))
        assert resolved.json()["roles"] == ["hr"]
        assert resolved.json()["source"] == "hr only"

    def test_manager_cycle_is_400(self, client, org, auth_headers):
        response = client.put(
            f"{API}/employees/{org.manager.employee_id}/manager",
            json={"manager_id": org.employee.employee_id},
            headers=auth_headers(org.hr),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "MANAGER_CYCLE"

    def test_holidays(self, client, org, auth_headers):
        created = client.post(
            f"{API}/holidays", json={"date": "2031-05-01", "name": "Labour Day"}, headers=auth_headers(org.hr)
        )
        assert created.status_code == 201

        listed = client.get(f"{API}/holidays", params={"year": 2031}, headers=auth_headers(org.employee))
        assert [h["name"] for h in listed.json()["items"]] == ["Labour Day"]
