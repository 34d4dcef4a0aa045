"""First-run setup and admin user management."""

from models.user import User

from conftest import auth_headers, booking_payload, make_user, reload


class TestSetup:

    def test_setup_only_once(self, client):
        assert client.get("/api/admin/setup/status").get_json() == {"isInitialized": False}

        resp = client.post("/api/admin/setup", json={"email": "owner@aquashine.example", "password": "owner-pass"})
        assert resp.status_code == 201
        assert "ADMIN" in resp.get_json()["user"]["roles"]
        assert client.get("/api/admin/setup/status").get_json() == {"isInitialized": True}

        resp = client.post("/api/admin/setup", json={"email": "second@aquashine.example", "password": "owner-pass"})
        assert resp.status_code == 409


class TestUsers:

    def test_customer_is_forbidden(self, client, customer_headers):
        resp = client.get("/api/admin/users", headers=customer_headers)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Forbidden"

    def test_list_and_filter(self, client, admin_headers, customer):
        everyone = client.get("/api/admin/users", headers=admin_headers).get_json()
        assert len(everyone) == 2
        admins = client.get("/api/admin/users?role=admin", headers=admin_headers).get_json()
        assert [u["email"] for u in admins] == ["admin@example.com"]

    def test_create_user_with_role(self, client, admin_headers):
        resp = client.post("/api/admin/users", json={
            "email": "desk@aquashine.example", "password": "frontdesk1", "roles": ["STAFF"],
        }, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["roles"] == ["STAFF"]

    def test_unknown_role(self, client, admin_headers):
        resp = client.post("/api/admin/users", json={
            "email": "desk@aquashine.example", "password": "frontdesk1", "roles": ["OWNER"],
        }, headers=admin_headers)
        assert resp.status_code == 400

    def test_promote_customer(self, client, admin_headers, customer):
        resp = client.put(f"/api/admin/users/{customer.id}/role", json={"roles": ["ADMIN", "CUSTOMER"]},
                          headers=admin_headers)
        assert resp.status_code == 200
        assert reload(User, customer.id).has_role("ADMIN")

    def test_cannot_demote_self(self, client, admin, admin_headers):
        resp = client.put(f"/api/admin/users/{admin.id}/role", json={"roles": ["CUSTOMER"]}, headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Cannot remove your own ADMIN role"}

    def test_cannot_remove_last_admin(self, client, admin):
        # a second admin-capable caller is needed to even attempt it
        helper = make_user("helper@example.com", "ADMIN")
        helper_headers = auth_headers(helper)
        assert client.put(f"/api/admin/users/{admin.id}/role", json={"roles": ["CUSTOMER"]},
                          headers=helper_headers).status_code == 200

        resp = client.put(f"/api/admin/users/{helper.id}/role", json={"roles": ["CUSTOMER"]},
                          headers=helper_headers)
        assert resp.status_code == 403
        # the only admin left is always the caller
        assert resp.get_json() == {"error": "Cannot remove your own ADMIN role"}

    def test_delete_user(self, client, admin_headers, other_customer):
        resp = client.delete(f"/api/admin/users/{other_customer.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert reload(User, other_customer.id) is None

    def test_delete_user_with_bookings(self, client, admin_headers, customer, customer_headers, service, slots):
        client.post("/api/bookings", json=booking_payload(service, slots[0]), headers=customer_headers)
        resp = client.delete(f"/api/admin/users/{customer.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Cannot delete your own account"}
        assert reload(User, admin.id) is not None

    def test_analytics(self, client, admin_headers, service):
        body = client.get("/api/admin/analytics", headers=admin_headers).get_json()
        assert body["totalServices"] == 1
        assert body["totalRevenue"] == "0.00"


class TestAuditLog:

    def test_actions_are_recorded(self, client, admin_headers, customer):
        client.put(f"/api/admin/users/{customer.id}/role", json={"roles": ["STAFF"]}, headers=admin_headers)
        resp = client.get("/api/admin/audit-logs?action=ADMIN_UPDATE_ROLES", headers=admin_headers)
        assert resp.status_code == 200
        entries = resp.get_json()
        assert len(entries) == 1
        assert entries[0]["entityId"] == str(customer.id)
