from models.user import Role
from services.identity import IdentityStore
from helpers import ADMIN_EMAIL, CITIZEN_EMAIL, PASSWORD, login


class TestSignUp:
    def test_citizen_can_sign_up_and_sign_in(self, client):
        response = client.post("/auth/signup", json={"email": "New@Example.com", "password": "secret1"})
        assert response.status_code == 201, response.text
        assert response.json()["email"] == "new@example.com"

        headers = login(client, "new@example.com", "secret1")
        me = client.get("/auth/me", headers=headers).json()
        assert me["roles"] == []
        assert me["operating_role"] is None

    def test_rejects_short_password(self, client):
        response = client.post("/auth/signup", json={"email": "x@example.com", "password": "123"})
        assert response.status_code == 400
        assert "password" in response.json()["detail"]["errors"]

    def test_rejects_duplicate_email(self, client, citizen):
        response = client.post("/auth/signup", json={"email": CITIZEN_EMAIL, "password": PASSWORD})
        assert response.status_code == 400


class TestLogin:
    def test_wrong_password(self, client, citizen):
        response = client.post("/auth/login", json={"email": CITIZEN_EMAIL, "password": "nope123"})
        assert response.status_code == 401

    def test_admin_portal_reports_roles(self, client, admin):
        response = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": PASSWORD, "portal": "admin"})
        assert response.status_code == 200
        assert response.json()["roles"] == ["admin"]

    def test_driver_portal_refuses_citizen_and_closes_session(self, client, session, citizen):
        response = client.post(
            "/auth/login", json={"email": CITIZEN_EMAIL, "password": PASSWORD, "portal": "driver"}
        )
        assert response.status_code == 403
        session.expire_all()
        assert not IdentityStore(session).has_active_session(citizen.id)


class TestSessions:
    def test_logout_revokes_token(self, client, citizen_headers):
        assert client.get("/auth/me", headers=citizen_headers).status_code == 200
        assert client.post("/auth/logout", headers=citizen_headers).status_code == 200
        assert client.get("/auth/me", headers=citizen_headers).status_code == 401

    def test_missing_and_garbage_tokens(self, client):
        assert client.get("/auth/me").status_code == 401
        assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    def test_me_reports_operating_role(self, client, session, admin, admin_headers):
        IdentityStore(session).grant_role(admin.id, Role.driver)
        me = client.get("/auth/me", headers=admin_headers).json()
        assert set(me["roles"]) == {"admin", "driver"}
        assert me["operating_role"] == "admin"
