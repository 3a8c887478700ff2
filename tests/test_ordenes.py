"""
Órdenes de viaje: campos derivados, pagos, estados, alcance por rol, CSV y voucher
"""

import csv
from io import StringIO

import pytest

from conftest import auth_headers, order_payload
from models.orden import Order


@pytest.fixture
def crear_orden(client):
    def _crear(usuario, **overrides):
        response = client.post("/api/orders", json=order_payload(**overrides), headers=auth_headers(usuario))
        assert response.status_code == 201, response.text
        return response.json()
    return _crear


# ========== CREACIÓN Y DERIVADOS ==========

def test_create_order_derives_fields(client, agent, crear_orden):
    orden = crear_orden(agent)

    assert orden["nights"] == 5
    assert orden["totalPrice"] == 950.0
    assert orden["reservationNumber"] == "UA10072025N42"
    assert orden["payments"]["deposit"] == {"status": "unpaid", "amount": 300.0, "payment_methods": ["bank"]}
    assert orden["payments"]["balance"]["amount"] == 650.0
    assert orden["payments"]["balance"]["status"] == "unpaid"
    assert orden["statusOrder"] == "pending"
    assert orden["agentId"] == agent.id
    assert orden["agentName"] == "Agent Test"
    assert orden["agentCountry"] == "UA"
    assert orden["guests"] == {"adults": 2, "children": [{"age": 7}]}


def test_client_supplied_derived_fields_are_ignored(client, agent, crear_orden):
    orden = crear_orden(
        agent,
        nights=99,
        totalPrice=1,
        reservationNumber="FAKE",
        payments={"balance": {"amount": 1}},
    )
    assert orden["nights"] == 5
    assert orden["totalPrice"] == 950.0
    assert orden["reservationNumber"] == "UA10072025N42"
    assert orden["payments"]["balance"]["amount"] == 650.0


def test_missing_property_number_gives_empty_reservation(client, agent, crear_orden):
    orden = crear_orden(agent, propertyNumber=None)
    assert orden["reservationNumber"] == ""


def test_checkout_before_checkin_is_422(client, agent):
    response = client.post(
        "/api/orders",
        json=order_payload(checkIn="2025-07-15", checkOut="2025-07-10"),
        headers=auth_headers(agent),
    )
    assert response.status_code == 422


def test_negative_price_is_422(client, agent):
    response = client.post("/api/orders", json=order_payload(officialPrice="-5"), headers=auth_headers(agent))
    assert response.status_code == 422


def test_only_agents_create_orders(client, manager):
    response = client.post("/api/orders", json=order_payload(), headers=auth_headers(manager))
    assert response.status_code == 403
    assert response.headers["X-Redirect-To"] == "/manager"


def test_bank_account_must_be_visible(client, agent, other_agent, cuenta):
    ok = client.post("/api/orders", json=order_payload(bankAccount="main-uah"), headers=auth_headers(agent))
    assert ok.status_code == 201
    assert ok.json()["bankAccount"] == "main-uah"

    # La cuenta es del manager de otro agente
    response = client.post("/api/orders", json=order_payload(bankAccount="main-uah"), headers=auth_headers(other_agent))
    assert response.status_code == 422


# ========== ACTUALIZACIÓN ==========

def test_update_recomputes_derived_fields(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    response = client.put(
        f"/api/orders/{orden['id']}",
        json={"checkOut": "2025-07-17", "discount": "0", "propertyNumber": "7", "depositAmount": "500"},
        headers=auth_headers(manager),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["nights"] == 7
    assert data["totalPrice"] == 1050.0
    assert data["reservationNumber"] == "UA10072025N7"
    assert data["payments"]["deposit"]["amount"] == 500.0
    assert data["payments"]["balance"]["amount"] == 550.0


def test_update_manual_balance_is_overwritten(client, agent, crear_orden):
    orden = crear_orden(agent)
    response = client.put(
        f"/api/orders/{orden['id']}",
        json={"payments": {"balance": {"amount": "1", "payment_methods": ["cash"]}}},
        headers=auth_headers(agent),
    )
    assert response.status_code == 200
    balance = response.json()["payments"]["balance"]
    assert balance["amount"] == 650.0
    assert balance["payment_methods"] == ["cash"]


def test_update_empty_bank_account_is_cleared(client, agent, cuenta, crear_orden):
    orden = crear_orden(agent, bankAccount="main-uah")
    response = client.put(f"/api/orders/{orden['id']}", json={"bankAccount": ""}, headers=auth_headers(agent))
    assert response.status_code == 200
    assert response.json()["bankAccount"] is None


def test_update_invalid_dates_is_422(client, agent, crear_orden):
    orden = crear_orden(agent)
    response = client.put(f"/api/orders/{orden['id']}", json={"checkOut": "2025-07-01"}, headers=auth_headers(agent))
    assert response.status_code == 422


def test_agent_cannot_change_status_fields(client, agent, crear_orden):
    orden = crear_orden(agent)
    headers = auth_headers(agent)

    assert client.put(f"/api/orders/{orden['id']}", json={"statusOrder": "approved"}, headers=headers).status_code == 403
    response = client.put(
        f"/api/orders/{orden['id']}",
        json={"payments": {"deposit": {"status": "paid"}}},
        headers=headers,
    )
    assert response.status_code == 403


def test_manager_update_routes_status_through_machines(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    response = client.put(
        f"/api/orders/{orden['id']}",
        json={"statusOrder": "approved", "payments": {"deposit": {"status": "paid"}, "balance": {"status": "unpaid"}}},
        headers=auth_headers(manager),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["statusOrder"] == "approved"
    assert data["payments"]["deposit"]["status"] == "paid"
    assert data["payments"]["balance"]["status"] == "unpaid"

    # approved es final
    response = client.put(f"/api/orders/{orden['id']}", json={"statusOrder": "rejected"}, headers=auth_headers(manager))
    assert response.status_code == 409


def test_agent_cannot_edit_non_pending_order(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    client.patch(f"/api/orders/{orden['id']}/status", json={"statusOrder": "rejected"}, headers=auth_headers(manager))
    response = client.put(f"/api/orders/{orden['id']}", json={"clientName": "Otro"}, headers=auth_headers(agent))
    assert response.status_code == 409


# ========== ESTADOS ==========

def test_payment_status_transitions(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    url = f"/api/orders/{orden['id']}/payments/deposit"

    response = client.patch(url, json={"status": "paid"}, headers=auth_headers(manager))
    assert response.status_code == 200
    assert response.json()["payments"]["deposit"]["status"] == "paid"
    assert response.json()["payments"]["balance"]["status"] == "unpaid"

    # Repetir el estado actual
    assert client.patch(url, json={"status": "paid"}, headers=auth_headers(manager)).status_code == 409

    response = client.patch(url, json={"status": "unpaid"}, headers=auth_headers(manager))
    assert response.json()["payments"]["deposit"]["status"] == "unpaid"


def test_agent_cannot_change_payment_status(client, agent, crear_orden):
    orden = crear_orden(agent)
    response = client.patch(
        f"/api/orders/{orden['id']}/payments/balance",
        json={"status": "paid"},
        headers=auth_headers(agent),
    )
    assert response.status_code == 403


def test_unknown_payment_type_is_422(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    response = client.patch(
        f"/api/orders/{orden['id']}/payments/tip",
        json={"status": "paid"},
        headers=auth_headers(manager),
    )
    assert response.status_code == 422


def test_order_status_transitions(client, agent, admin, crear_orden):
    orden = crear_orden(agent)
    url = f"/api/orders/{orden['id']}/status"

    assert client.patch(url, json={"statusOrder": "pending"}, headers=auth_headers(admin)).status_code == 409
    response = client.patch(url, json={"statusOrder": "rejected"}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["statusOrder"] == "rejected"
    assert client.patch(url, json={"statusOrder": "approved"}, headers=auth_headers(admin)).status_code == 409


# ========== ALCANCE POR ROL ==========

def test_scoping(client, agent, other_agent, manager, other_manager, admin, crear_orden):
    propia = crear_orden(agent)
    ajena = crear_orden(other_agent, clientName="Marta Lis")

    assert client.get("/api/orders", headers=auth_headers(agent)).json()["meta"]["total"] == 1
    assert client.get("/api/orders", headers=auth_headers(manager)).json()["items"][0]["id"] == propia["id"]
    assert client.get("/api/orders", headers=auth_headers(admin)).json()["meta"]["total"] == 2

    assert client.get(f"/api/orders/{ajena['id']}", headers=auth_headers(agent)).status_code == 403
    assert client.get(f"/api/orders/{ajena['id']}", headers=auth_headers(manager)).status_code == 403
    assert client.patch(
        f"/api/orders/{ajena['id']}/status", json={"statusOrder": "approved"}, headers=auth_headers(manager)
    ).status_code == 403
    assert client.get(f"/api/orders/{ajena['id']}", headers=auth_headers(other_manager)).status_code == 200
    assert client.get("/api/orders/9999", headers=auth_headers(admin)).status_code == 404


def test_list_filters_sort_and_pagination(client, agent, manager, crear_orden):
    a = crear_orden(agent, clientName="Anna", officialPrice="100", taxClean="0", discount="0", checkIn="2025-05-01", checkOut="2025-05-03")
    b = crear_orden(agent, clientName="Bohdan", officialPrice="500", taxClean="0", discount="0", checkIn="2025-06-01", checkOut="2025-06-03")
    c = crear_orden(agent, clientName="Cyril", officialPrice="900", taxClean="0", discount="0", checkIn="2025-08-01", checkOut="2025-08-03")
    client.patch(f"/api/orders/{c['id']}/status", json={"statusOrder": "approved"}, headers=auth_headers(manager))
    headers = auth_headers(manager)

    def ids(params):
        response = client.get("/api/orders", params=params, headers=headers)
        assert response.status_code == 200, response.text
        return [o["id"] for o in response.json()["items"]]

    assert ids({"status": "approved"}) == [c["id"]]
    assert ids({"search": "bohd"}) == [b["id"]]
    assert ids({"minPrice": 200, "maxPrice": 600}) == [b["id"]]
    assert ids({"travelFrom": "2025-05-15", "travelTo": "2025-07-01"}) == [b["id"]]
    assert ids({"sortBy": "totalPrice", "sortOrder": "asc"}) == [a["id"], b["id"], c["id"]]
    assert ids({"agentId": agent.id, "sortBy": "checkIn", "sortOrder": "desc"}) == [c["id"], b["id"], a["id"]]

    pagina = client.get("/api/orders", params={"limit": 2, "page": 2, "sortBy": "clientName", "sortOrder": "asc"}, headers=headers).json()
    assert pagina["meta"] == {"total": 3, "totalPages": 2, "page": 2, "limit": 2}
    assert [o["id"] for o in pagina["items"]] == [c["id"]]


def test_invalid_sort_by_is_422(client, manager):
    response = client.get("/api/orders", params={"sortBy": "password"}, headers=auth_headers(manager))
    assert response.status_code == 422


# ========== BORRADO ==========

def test_agent_deletes_own_pending_order(client, db, agent, crear_orden):
    orden = crear_orden(agent)
    assert client.delete(f"/api/orders/{orden['id']}", headers=auth_headers(agent)).status_code == 204
    assert db.query(Order).count() == 0


def test_agent_cannot_delete_approved_order(client, agent, manager, crear_orden):
    orden = crear_orden(agent)
    client.patch(f"/api/orders/{orden['id']}/status", json={"statusOrder": "approved"}, headers=auth_headers(manager))
    assert client.delete(f"/api/orders/{orden['id']}", headers=auth_headers(agent)).status_code == 409
    assert client.delete(f"/api/orders/{orden['id']}", headers=auth_headers(manager)).status_code == 204


# ========== EXPORT / VOUCHER ==========

def test_export_csv(client, agent, manager, crear_orden):
    primera = crear_orden(agent)
    crear_orden(agent, clientName="Segundo Cliente")

    response = client.get("/api/orders/export", headers=auth_headers(manager))
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=orders_" in response.headers["content-disposition"]

    filas = list(csv.reader(StringIO(response.text)))
    assert filas[0][0] == "ID"
    assert len(filas) == 3

    seleccion = client.get("/api/orders/export", params={"orderIds": [primera["id"]]}, headers=auth_headers(manager))
    filas = list(csv.reader(StringIO(seleccion.text)))
    assert len(filas) == 2
    assert filas[1][1] == "UA10072025N42"


def test_export_forbidden_for_agent(client, agent):
    assert client.get("/api/orders/export", headers=auth_headers(agent)).status_code == 403


def test_voucher_pdf(client, agent, cuenta, crear_orden):
    orden = crear_orden(agent, bankAccount="main-uah")
    response = client.get(f"/api/orders/{orden['id']}/voucher", headers=auth_headers(agent))
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert "voucher_UA10072025N42.pdf" in response.headers["content-disposition"]


def test_agent_dashboard(client, agent, manager, crear_orden):
    a = crear_orden(agent)
    crear_orden(agent)
    crear_orden(agent, clientName="Otro Cliente")
    client.patch(f"/api/orders/{a['id']}/status", json={"statusOrder": "approved"}, headers=auth_headers(manager))

    data = client.get("/api/dashboard/agent", headers=auth_headers(agent)).json()
    assert data == {
        "totalClients": 2,
        "activeOrders": 2,
        "completedOrders": 1,
        "rejectedOrders": 0,
        "revenue": 950.0,
    }

    stats = client.get("/api/dashboard/manager", headers=auth_headers(manager)).json()
    assert stats["totalOrders"] == 3
    assert stats["approvedOrders"] == 1
    assert stats["unpaidDeposits"] == 3
    assert stats["totalAgents"] == 1
    assert stats["revenue"] == 950.0
