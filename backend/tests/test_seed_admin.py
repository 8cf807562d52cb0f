import seed_admin
from models.user import Role
from services.identity import IdentityStore


def test_seed_admin_is_idempotent(monkeypatch, engine, session):
    monkeypatch.setattr(seed_admin, "engine", engine)
    monkeypatch.setattr(seed_admin, "create_db_and_tables", lambda: None)

    first = seed_admin.seed_admin("root@example.com", "secret123")
    second = seed_admin.seed_admin("root@example.com", "secret123")

    assert first.id == second.id
    assert IdentityStore(session).roles_for(first.id) == frozenset({Role.admin})


def test_seed_admin_promotes_existing_identity(monkeypatch, engine, session, citizen):
    monkeypatch.setattr(seed_admin, "engine", engine)
    monkeypatch.setattr(seed_admin, "create_db_and_tables", lambda: None)

    promoted = seed_admin.seed_admin(citizen.email, "ignored")
    assert promoted.id == citizen.id
    assert Role.admin in IdentityStore(session).roles_for(citizen.id)
