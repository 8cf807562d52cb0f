from services.identity import IdentityStore

ADMIN_EMAIL = "admin@example.com"
CITIZEN_EMAIL = "citizen@example.com"
DRIVER_EMAIL = "driver@example.com"
PASSWORD = "secret123"


def make_identity(session, email, password=PASSWORD, roles=()):
    store = IdentityStore(session)
    identity = store.create_identity(email, password, auto_confirm=True)
    for role in roles:
        store.grant_role(identity.id, role)
    return identity


def login(client, email, password=PASSWORD, portal="citizen"):
    response = client.post("/auth/login", json={"email": email, "password": password, "portal": portal})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
