from app.core.config import settings
from app.core.security import decode_token
from app.db.models import Role, Status, Ticket, User
from tests.conftest import PASSWORD
from tests.helpers import auth


# ---------- auth ----------


async def test_register_login_me(client):
    r = await client.post(
        "/api/auth/register",
        json={"email": "New.Person@Example.com", "password": "hunter22", "full_name": "New Person"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["role"] == "user"
    assert body["user"]["email"] == "new.person@example.com"

    r = await client.post("/api/auth/login", json={"username": "new.person@example.com", "password": "hunter22"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.json()["full_name"] == "New Person"


async def test_register_duplicate(client, people):
    r = await client.post("/api/auth/register", json={"email": people["u1"].email, "password": "whatever1"})
    assert r.status_code == 409


async def test_register_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "allow_self_signup", False)
    r = await client.post("/api/auth/register", json={"email": "x@example.com", "password": "whatever1"})
    assert r.status_code == 403


async def test_login_wrong_password(client, people):
    r = await client.post("/api/auth/login", json={"username": people["u1"].email, "password": "nope"})
    assert r.status_code == 401


async def test_login_inactive(client, make_user):
    ghost = await make_user(Role.agent, is_active=False)
    r = await client.post("/api/auth/login", json={"username": ghost.email, "password": PASSWORD})
    assert r.status_code == 403


async def test_remember_me_extends_token(client, people):
    creds = {"username": people["u1"].email, "password": PASSWORD}
    short = (await client.post("/api/auth/login", json=creds)).json()["access_token"]
    long = (await client.post("/api/auth/login", json={**creds, "remember_me": True})).json()["access_token"]

    short_exp = decode_token(short, settings.jwt_secret)["exp"]
    long_exp = decode_token(long, settings.jwt_secret)["exp"]
    assert long_exp > short_exp


async def test_token_has_no_role(client, people):
    r = await client.post("/api/auth/login", json={"username": people["a1"].email, "password": PASSWORD})
    claims = decode_token(r.json()["access_token"], settings.jwt_secret)
    assert "role" not in claims


# ---------- self ----------


async def test_update_me_keeps_role(client, people, fetch):
    h = auth(people["u1"])
    r = await client.patch("/api/users/me", json={"full_name": "Renamed", "role": "admin"}, headers=h)
    assert r.status_code == 200
    assert r.json()["full_name"] == "Renamed"
    assert (await fetch(User, people["u1"].id)).role == Role.user


async def test_change_password(client, people):
    r = await client.patch("/api/users/me", json={"password": "brand-new"}, headers=auth(people["u2"]))
    assert r.status_code == 200
    r = await client.post("/api/auth/login", json={"username": people["u2"].email, "password": "brand-new"})
    assert r.status_code == 200


async def test_roles_catalogue(client, people):
    r = await client.get("/api/users/roles", headers=auth(people["u1"]))
    by_role = {x["role"]: x for x in r.json()}
    assert set(by_role) == {"user", "agent", "admin"}
    assert by_role["agent"]["display_name"] == "Support Agent"


# ---------- assignee candidates ----------


async def test_agents_excludes_plain_users(client, people, make_user):
    await make_user(Role.agent, is_active=False)
    r = await client.get("/api/users/agents", headers=auth(people["a1"]))
    assert r.status_code == 200
    ids = {u["id"] for u in r.json()}
    assert ids == {people["a1"].id, people["a2"].id, people["admin"].id}

    r = await client.get("/api/users/agents", headers=auth(people["admin"]))
    assert {u["id"] for u in r.json()} == ids


async def test_agents_forbidden_for_user(client, people):
    r = await client.get("/api/users/agents", headers=auth(people["u1"]))
    assert r.status_code == 403


# ---------- admin ----------


async def test_admin_lists_users(client, people):
    r = await client.get("/api/users", params={"role": "agent"}, headers=auth(people["admin"]))
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 2
    assert {u["id"] for u in page["items"]} == {people["a1"].id, people["a2"].id}


async def test_non_admin_cannot_manage_users(client, people):
    for who in ("u1", "a1"):
        h = auth(people[who])
        assert (await client.get("/api/users", headers=h)).status_code == 403
        r = await client.patch(f"/api/users/{people['u2'].id}/role", json={"role": "agent"}, headers=h)
        assert r.status_code == 403


async def test_promote_takes_effect_immediately(client, people, make_ticket):
    u2 = people["u2"]
    t = await make_ticket(people["u1"])
    h = auth(u2)
    assert (await client.get(f"/api/tickets/{t.id}", headers=h)).status_code == 403

    r = await client.patch(f"/api/users/{u2.id}/role", json={"role": "agent"}, headers=auth(people["admin"]))
    assert r.status_code == 200
    assert r.json()["role"] == "agent"

    # той самий токен: роль читається з БД
    assert (await client.get(f"/api/tickets/{t.id}", headers=h)).status_code == 200


async def test_admin_cannot_demote_self(client, people):
    admin = people["admin"]
    r = await client.patch(f"/api/users/{admin.id}/role", json={"role": "user"}, headers=auth(admin))
    assert r.status_code == 400


async def test_demoting_agent_unassigns_their_tickets(client, people, make_ticket, fetch):
    a1, a2 = people["a1"], people["a2"]
    busy = await make_ticket(people["u1"], assignee_id=a1.id, status=Status.in_progress)
    other = await make_ticket(people["u2"], assignee_id=a2.id, status=Status.in_progress)

    r = await client.patch(f"/api/users/{a1.id}/role", json={"role": "user"}, headers=auth(people["admin"]))
    assert r.status_code == 200

    assert (await fetch(Ticket, busy.id)).assignee_id is None
    assert (await fetch(Ticket, other.id)).assignee_id == a2.id

    # заявка знову вільна — інший агент може нею керувати
    r = await client.patch(f"/api/tickets/{busy.id}", json={"status": "resolved"}, headers=auth(a2))
    assert r.status_code == 200


async def test_promoting_agent_keeps_assignments(client, people, make_ticket, fetch):
    a1 = people["a1"]
    t = await make_ticket(people["u1"], assignee_id=a1.id, status=Status.in_progress)

    r = await client.patch(f"/api/users/{a1.id}/role", json={"role": "admin"}, headers=auth(people["admin"]))
    assert r.status_code == 200
    assert (await fetch(Ticket, t.id)).assignee_id == a1.id


async def test_set_role_unknown_user(client, people):
    r = await client.patch("/api/users/9999/role", json={"role": "agent"}, headers=auth(people["admin"]))
    assert r.status_code == 404


async def test_set_role_rejects_unknown_role(client, people):
    r = await client.patch(
        f"/api/users/{people['u1'].id}/role", json={"role": "superuser"}, headers=auth(people["admin"])
    )
    assert r.status_code == 422
