"""
Login, invitaciones y registro por link de invitación
"""

from datetime import datetime, timedelta

from conftest import DEFAULT_PASSWORD, auth_headers
from models.invitacion import Invitation
from models.usuario import User, ROLE_AGENT, ROLE_MANAGER


def _registro(**overrides):
    payload = {"password": "Nueva1234", "firstName": "Oksana", "lastName": "Bondar", "country": "UA"}
    payload.update(overrides)
    return payload


def _invitar(client, usuario, email, role):
    return client.post("/api/invitations", json={"email": email, "role": role}, headers=auth_headers(usuario))


# ========== LOGIN ==========

def test_login_ok(client, manager):
    response = client.post("/api/auth/login", json={"email": "MANAGER@agency.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == "manager@agency.com"
    assert data["user"]["role"] == "manager"


def test_login_wrong_password(client, manager):
    response = client.post("/api/auth/login", json={"email": "manager@agency.com", "password": "Mala1234"})
    assert response.status_code == 401


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={"email": "nadie@agency.com", "password": "Mala1234"})
    assert response.status_code == 401


def test_login_locks_after_five_failures(client, manager):
    for _ in range(4):
        assert client.post("/api/auth/login", json={"email": "manager@agency.com", "password": "Mala1234"}).status_code == 401
    response = client.post("/api/auth/login", json={"email": "manager@agency.com", "password": "Mala1234"})
    assert response.status_code == 403

    # Bloqueado aunque la contraseña sea correcta
    response = client.post("/api/auth/login", json={"email": "manager@agency.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 403


def test_login_counter_resets_after_lock_expires(client, db, manager):
    for _ in range(5):
        client.post("/api/auth/login", json={"email": "manager@agency.com", "password": "Mala1234"})

    db.refresh(manager)
    manager.locked_until = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    # Un solo fallo después del vencimiento no vuelve a bloquear
    response = client.post("/api/auth/login", json={"email": "manager@agency.com", "password": "Mala1234"})
    assert response.status_code == 401

    db.refresh(manager)
    assert manager.failed_attempts == 1
    assert manager.locked_until is None

    response = client.post("/api/auth/login", json={"email": "manager@agency.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200


def test_login_inactive_user(client, crear_usuario):
    crear_usuario("off@agency.com", ROLE_AGENT, is_active=False)
    response = client.post("/api/auth/login", json={"email": "off@agency.com", "password": DEFAULT_PASSWORD})
    assert response.status_code == 403


# ========== INVITACIONES ==========

def test_admin_invites_manager(client, admin):
    response = _invitar(client, admin, "new.manager@agency.com", "manager")
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["role"] == "manager"
    assert data["registrationUrl"].endswith(f"/register/{data['token']}")


def test_manager_cannot_invite_manager(client, manager):
    response = _invitar(client, manager, "x@agency.com", "manager")
    assert response.status_code == 403


def test_agent_cannot_invite(client, agent):
    response = _invitar(client, agent, "x@agency.com", "agent")
    assert response.status_code == 403
    assert response.headers["X-Redirect-To"] == "/agent"


def test_admin_role_cannot_be_invited(client, admin):
    response = _invitar(client, admin, "x@agency.com", "admin")
    assert response.status_code == 422


def test_duplicate_pending_invitation(client, manager):
    assert _invitar(client, manager, "dup@agency.com", "agent").status_code == 201
    assert _invitar(client, manager, "dup@agency.com", "agent").status_code == 409


def test_invite_existing_user(client, admin, manager):
    assert _invitar(client, admin, "manager@agency.com", "agent").status_code == 409


def test_manager_lists_only_own_invitations(client, admin, manager, other_manager):
    _invitar(client, manager, "a1@agency.com", "agent")
    _invitar(client, other_manager, "a2@agency.com", "agent")
    _invitar(client, admin, "m1@agency.com", "manager")

    response = client.get("/api/invitations", headers=auth_headers(manager))
    assert response.status_code == 200
    data = response.json()
    assert data["meta"]["total"] == 1
    assert data["items"][0]["email"] == "a1@agency.com"

    todas = client.get("/api/invitations", headers=auth_headers(admin)).json()
    assert todas["meta"]["total"] == 3

    filtradas = client.get("/api/invitations", params={"invitedBy": other_manager.id}, headers=auth_headers(admin)).json()
    assert [i["email"] for i in filtradas["items"]] == ["a2@agency.com"]


def test_cancel_invitation(client, manager, other_manager):
    invitacion = _invitar(client, manager, "a1@agency.com", "agent").json()

    assert client.delete(f"/api/invitations/{invitacion['id']}", headers=auth_headers(other_manager)).status_code == 403
    assert client.delete(f"/api/invitations/{invitacion['id']}", headers=auth_headers(manager)).status_code == 204

    # Cancelada = eliminada: el link deja de existir
    assert client.get(f"/api/auth/register/{invitacion['token']}").status_code == 404


# ========== REGISTRO ==========

def test_register_with_manager_invitation_assigns_manager(client, db, manager):
    invitacion = _invitar(client, manager, "Nuevo.Agente@agency.com", "agent").json()

    preview = client.get(f"/api/auth/register/{invitacion['token']}")
    assert preview.status_code == 200
    assert preview.json()["email"] == "nuevo.agente@agency.com"
    assert preview.json()["role"] == "agent"

    response = client.post(f"/api/auth/register/{invitacion['token']}", json=_registro())
    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["user"]["role"] == "agent"
    assert data["user"]["managerId"] == manager.id

    # Un solo uso
    assert client.post(f"/api/auth/register/{invitacion['token']}", json=_registro()).status_code == 409

    listado = client.get("/api/invitations", headers=auth_headers(manager)).json()
    assert listado["items"][0]["status"] == "accepted"


def test_register_agent_invited_by_admin_has_no_manager(client, admin):
    invitacion = _invitar(client, admin, "solo@agency.com", "agent").json()
    data = client.post(f"/api/auth/register/{invitacion['token']}", json=_registro()).json()
    assert data["user"]["managerId"] is None


def test_register_manager(client, db, admin):
    invitacion = _invitar(client, admin, "boss@agency.com", "manager").json()
    response = client.post(f"/api/auth/register/{invitacion['token']}", json=_registro())
    assert response.status_code == 201
    assert db.query(User).filter(User.email == "boss@agency.com").one().role == ROLE_MANAGER


def test_register_unknown_token(client):
    assert client.get("/api/auth/register/token-inexistente").status_code == 404
    assert client.post("/api/auth/register/token-inexistente", json=_registro()).status_code == 404


def test_register_expired_invitation(client, db, manager):
    invitacion = Invitation(
        email="late@agency.com",
        role=ROLE_AGENT,
        token="token-expirado-123",
        invited_by_id=manager.id,
        expires_at=datetime.utcnow() - timedelta(days=1),
    )
    db.add(invitacion)
    db.commit()

    assert client.get("/api/auth/register/token-expirado-123").status_code == 410
    assert client.post("/api/auth/register/token-expirado-123", json=_registro()).status_code == 410

    listado = client.get("/api/invitations", headers=auth_headers(manager)).json()
    assert listado["items"][0]["status"] == "expired"


def test_register_weak_password(client, manager):
    invitacion = _invitar(client, manager, "weak@agency.com", "agent").json()
    response = client.post(f"/api/auth/register/{invitacion['token']}", json=_registro(password="password"))
    assert response.status_code == 422


# ========== PERFIL ==========

def test_profile_read_and_update(client, agent):
    headers = auth_headers(agent)
    assert client.get("/api/profile", headers=headers).json()["email"] == "agent@agency.com"

    response = client.put("/api/profile", json={"firstName": "Petro", "phone": "+380671234567"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["firstName"] == "Petro"
    assert response.json()["phone"] == "+380671234567"


def test_profile_update_requires_a_field(client, agent):
    assert client.put("/api/profile", json={}, headers=auth_headers(agent)).status_code == 422


def test_change_password(client, agent):
    headers = auth_headers(agent)
    response = client.put(
        "/api/profile/change-password",
        json={"currentPassword": "Incorrecta1", "newPassword": "Otra12345"},
        headers=headers,
    )
    assert response.status_code == 401

    response = client.put(
        "/api/profile/change-password",
        json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "Otra12345"},
        headers=headers,
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": "agent@agency.com", "password": "Otra12345"})
    assert login.status_code == 200
