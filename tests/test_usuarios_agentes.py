"""
Gestión de usuarios (admin) y de agentes (admin / manager dueño)
"""

from conftest import auth_headers
from models.usuario import ROLE_AGENT, ROLE_MANAGER


def test_admin_lists_users_with_filters(client, admin, manager, agent, other_agent):
    headers = auth_headers(admin)

    todos = client.get("/api/users", headers=headers).json()
    assert todos["meta"]["total"] == 5

    agentes = client.get("/api/users", params={"role": "agent"}, headers=headers).json()
    assert {u["email"] for u in agentes["items"]} == {"agent@agency.com", "other.agent@agency.com"}

    busqueda = client.get("/api/users", params={"search": "other.man"}, headers=headers).json()
    assert [u["email"] for u in busqueda["items"]] == ["other.manager@agency.com"]


def test_users_is_admin_only(client, manager):
    response = client.get("/api/users", headers=auth_headers(manager))
    assert response.status_code == 403


def test_admin_gets_user(client, admin, manager):
    response = client.get(f"/api/users/{manager.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["role"] == "manager"
    assert client.get("/api/users/9999", headers=auth_headers(admin)).status_code == 404


def test_admin_toggles_user_status(client, admin, manager):
    response = client.patch(
        f"/api/users/{manager.id}/toggle-status", json={"isActive": False}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["isActive"] is False

    # El usuario desactivado ya no accede
    assert client.get("/api/profile", headers=auth_headers(manager)).status_code == 403


def test_admin_cannot_toggle_self(client, admin):
    response = client.patch(
        f"/api/users/{admin.id}/toggle-status", json={"isActive": False}, headers=auth_headers(admin)
    )
    assert response.status_code == 400


def test_manager_lists_only_own_agents(client, manager, agent, other_agent, crear_usuario):
    crear_usuario("second.agent@agency.com", ROLE_AGENT, manager=manager, first_name="Vasyl")
    headers = auth_headers(manager)

    data = client.get("/api/agents", headers=headers).json()
    assert data["meta"]["total"] == 2
    assert {a["email"] for a in data["items"]} == {"agent@agency.com", "second.agent@agency.com"}

    busqueda = client.get("/api/agents", params={"search": "vasyl"}, headers=headers).json()
    assert [a["email"] for a in busqueda["items"]] == ["second.agent@agency.com"]


def test_admin_lists_all_agents(client, admin, agent, other_agent):
    data = client.get("/api/agents", headers=auth_headers(admin)).json()
    assert data["meta"]["total"] == 2


def test_manager_updates_own_agent(client, manager, agent):
    response = client.put(
        f"/api/agents/{agent.id}",
        json={"firstName": "Mykola", "country": "PL"},
        headers=auth_headers(manager),
    )
    assert response.status_code == 200
    assert response.json()["firstName"] == "Mykola"
    assert response.json()["country"] == "PL"


def test_manager_cannot_touch_foreign_agent(client, manager, other_agent):
    headers = auth_headers(manager)
    assert client.get(f"/api/agents/{other_agent.id}", headers=headers).status_code == 403
    assert client.put(f"/api/agents/{other_agent.id}", json={"firstName": "X"}, headers=headers).status_code == 403
    assert client.patch(
        f"/api/agents/{other_agent.id}/toggle-status", json={"isActive": False}, headers=headers
    ).status_code == 403


def test_agents_endpoint_ignores_non_agents(client, admin, manager):
    assert client.get(f"/api/agents/{manager.id}", headers=auth_headers(admin)).status_code == 404


def test_toggle_agent_status(client, manager, agent):
    response = client.patch(
        f"/api/agents/{agent.id}/toggle-status", json={"isActive": False}, headers=auth_headers(manager)
    )
    assert response.status_code == 200
    assert response.json()["isActive"] is False


def test_agent_cannot_list_agents(client, agent):
    response = client.get("/api/agents", headers=auth_headers(agent))
    assert response.status_code == 403
    assert response.headers["X-Redirect-To"] == "/agent"


def test_admin_dashboard(client, admin, manager, agent, crear_usuario):
    crear_usuario("m2@agency.com", ROLE_MANAGER)
    client.post("/api/invitations", json={"email": "inv@agency.com", "role": "agent"}, headers=auth_headers(manager))

    data = client.get("/api/dashboard/admin", headers=auth_headers(admin)).json()
    assert data["totalUsers"] == 4
    assert data["totalManagers"] == 2
    assert data["totalAgents"] == 1
    assert data["pendingInvitations"] == 1
