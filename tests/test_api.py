import datetime as dt

import pytest

from splitly.routers import settlements as settlements_router
from splitly.schemas import SettlementIn
from splitly.services.currency import CONVERSION_WARNING

TODAY = dt.date(2026, 10, 17).isoformat()


def bootstrap(client, names=("Alice", "Bob"), base="USD"):
    r = client.post("/groups", json={"name": "Trip to Paris", "base_currency": base,
                                     "members": [{"name": n} for n in names]})
    assert r.status_code == 201, r.text
    g = r.json()
    return g["id"], [m["id"] for m in g["members"]]


def add_expense(client, gid, paid_by, amount, participants, currency="USD", split_type="equal"):
    return client.post(f"/groups/{gid}/expenses", json={
        "title": "Dinner", "amount": amount, "currency": currency, "paid_by": paid_by,
        "date": TODAY, "split_type": split_type, "participants": participants,
    })


def settle(client, gid, paid_by, paid_to, amount, currency="USD"):
    return client.post(f"/groups/{gid}/settlements", json={
        "paid_by": paid_by, "paid_to": paid_to, "amount": amount, "currency": currency, "date": TODAY,
    })


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


def test_create_group(client):
    r = client.post("/groups", json={"name": " Roommates ", "base_currency": "eur",
                                     "members": [{"name": "Alice", "email": "alice@example.com"}, {"name": "Bob"}]})
    assert r.status_code == 201
    body = r.json()
    assert body["name"] == "Roommates"
    assert body["base_currency"] == "EUR"
    assert [m["name"] for m in body["members"]] == ["Alice", "Bob"]
    assert client.get(f"/groups/{body['id']}").json()["id"] == body["id"]
    assert len(client.get("/groups").json()) == 1


def test_group_validation(client):
    assert client.post("/groups", json={"name": "X", "members": []}).status_code == 422
    r = client.post("/groups", json={"name": "X", "members": [{"name": "Ann"}, {"name": "ann "}]})
    assert r.status_code == 422
    assert client.get("/groups/nope").status_code == 404


def test_equal_expense_and_balances(client):
    gid, (a, b) = bootstrap(client)
    r = add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])
    assert r.status_code == 201, r.text
    assert r.json()["warnings"] == []
    assert [p["amount"] for p in r.json()["expense"]["participants"]] == [50.0, 50.0]

    bal = client.get(f"/groups/{gid}/balances").json()
    assert bal == [{"from": b, "to": a, "amount": 50.0, "formatted": "$50.00"}]


def test_settlement_clears_balance(client):
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])
    r = settle(client, gid, b, a, 50.0)
    assert r.status_code == 201, r.text
    assert client.get(f"/groups/{gid}/balances").json() == []

    summary = client.get(f"/groups/{gid}/balances/summary").json()
    assert summary["settled"] is True
    assert summary["total_spent"] == 100.0
    assert [m["net"] for m in summary["members"]] == [0.0, 0.0]


def test_settlement_validation(client):
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])

    r = settle(client, gid, b, a, 60.0)
    assert r.status_code == 422
    assert "cannot settle more" in r.json()["detail"]
    # a owes b nothing
    assert settle(client, gid, a, b, 10.0).status_code == 422
    assert settle(client, gid, a, a, 10.0).status_code == 422
    assert settle(client, gid, b, "ghost", 10.0).status_code == 404


def test_settlement_edit_excludes_itself(client):
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])
    sid = settle(client, gid, b, a, 30.0).json()["settlement"]["id"]

    r = client.patch(f"/groups/{gid}/settlements/{sid}", json={"amount": 50.0})
    assert r.status_code == 200, r.text
    assert client.get(f"/groups/{gid}/balances").json() == []
    assert client.patch(f"/groups/{gid}/settlements/{sid}", json={"amount": 60.0}).status_code == 422
    assert client.patch(f"/groups/{gid}/settlements/{sid}", json={"currency": "EUR"}).status_code == 422

    assert client.delete(f"/groups/{gid}/settlements/{sid}").status_code == 204
    assert client.get(f"/groups/{gid}/balances").json()[0]["amount"] == 50.0


def test_foreign_currency_expense(client):
    client.put("/rates", json={"rates": {"EUR": 0.5}})
    gid, (a, b) = bootstrap(client)
    r = add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}], currency="EUR")
    exp = r.json()["expense"]
    assert exp["amount"] == pytest.approx(200.0)
    assert exp["original_amount"] == 100.0
    assert exp["currency"] == "EUR"
    assert [p["amount"] for p in exp["participants"]] == [pytest.approx(100.0), pytest.approx(100.0)]
    assert client.get(f"/groups/{gid}/balances").json()[0]["amount"] == 100.0


def test_foreign_currency_custom_split(client):
    client.put("/rates", json={"rates": {"INR": 83.0}})
    gid, (a, b, c) = bootstrap(client, names=("Asha", "Bala", "Chen"), base="INR")
    r = add_expense(client, gid, a, 100.0, [{"member_id": a, "amount": 33.33}, {"member_id": b, "amount": 33.33},
                                            {"member_id": c, "amount": 33.333}], currency="USD", split_type="custom")
    assert r.status_code == 201, r.text
    exp = r.json()["expense"]
    assert exp["amount"] == pytest.approx(8300.0)
    assert exp["original_amount"] == 100.0
    shares = [p["amount"] for p in exp["participants"]]
    assert shares[0] == pytest.approx(33.33 * 83)
    assert sum(shares) == pytest.approx(8300.0, abs=1e-6)


def test_foreign_currency_settlement(client):
    client.put("/rates", json={"rates": {"EUR": 0.5}})
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])

    r = settle(client, gid, b, a, 20.0, currency="EUR")
    assert r.status_code == 201, r.text
    s = r.json()["settlement"]
    assert s["amount"] == pytest.approx(40.0)
    assert s["currency"] == "EUR"
    assert r.json()["warnings"] == []
    assert client.get(f"/groups/{gid}/balances").json()[0]["amount"] == pytest.approx(10.0)

    r = settle(client, gid, b, a, 10.0, currency="EUR")
    assert r.status_code == 422
    assert "10.00 USD" in r.json()["detail"]

    r = settle(client, gid, b, a, 5.0, currency="GBP")
    assert r.status_code == 201
    assert r.json()["warnings"] == [CONVERSION_WARNING]
    assert r.json()["settlement"]["amount"] == 5.0
    assert client.get(f"/groups/{gid}/balances").json()[0]["amount"] == pytest.approx(5.0)

    r = client.patch(f"/groups/{gid}/settlements/{s['id']}", json={"amount": 22.5})
    assert r.status_code == 200, r.text
    assert r.json()["settlement"]["amount"] == pytest.approx(45.0)
    assert client.get(f"/groups/{gid}/balances").json() == []


def test_missing_rate_keeps_amount(client):
    gid, (a, b) = bootstrap(client)
    r = add_expense(client, gid, a, 80.0, [{"member_id": a}, {"member_id": b}], currency="GBP")
    assert r.status_code == 201
    assert r.json()["warnings"] == [CONVERSION_WARNING]
    assert r.json()["expense"]["amount"] == 80.0
    assert r.json()["expense"]["original_amount"] is None


def test_custom_expense_validation(client):
    gid, (a, b) = bootstrap(client)
    r = add_expense(client, gid, a, 100.0, [{"member_id": a, "amount": 70.0}, {"member_id": b, "amount": 20.0}],
                    split_type="custom")
    assert r.status_code == 422
    r = add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}], split_type="custom")
    assert r.status_code == 422
    assert add_expense(client, gid, "ghost", 10.0, [{"member_id": a}]).status_code == 404


def test_edit_custom_expense_scales_shares(client):
    gid, (a, b) = bootstrap(client)
    r = add_expense(client, gid, a, 100.0, [{"member_id": a, "amount": 70.0}, {"member_id": b, "amount": 30.0}],
                    split_type="custom")
    eid = r.json()["expense"]["id"]
    r = client.patch(f"/groups/{gid}/expenses/{eid}", json={"amount": 200.0})
    assert r.status_code == 200, r.text
    shares = {p["member_id"]: p["amount"] for p in r.json()["expense"]["participants"]}
    assert shares == {a: pytest.approx(140.0), b: pytest.approx(60.0)}


def test_edit_equal_expense_resplits(client):
    gid, (a, b, c) = bootstrap(client, names=("Alice", "Bob", "Cara"))
    eid = add_expense(client, gid, a, 90.0, [{"member_id": a}, {"member_id": b}, {"member_id": c}]).json()["expense"]["id"]
    r = client.patch(f"/groups/{gid}/expenses/{eid}", json={"amount": 60.0, "title": "Lunch"})
    exp = r.json()["expense"]
    assert exp["title"] == "Lunch"
    assert [p["amount"] for p in exp["participants"]] == [20.0, 20.0, 20.0]

    r = client.patch(f"/groups/{gid}/expenses/{eid}", json={"participants": [{"member_id": b}, {"member_id": c}]})
    shares = {p["member_id"]: p["amount"] for p in r.json()["expense"]["participants"]}
    assert shares == {b: 30.0, c: 30.0}
    assert len(client.get(f"/groups/{gid}/expenses").json()) == 1

    assert client.delete(f"/groups/{gid}/expenses/{eid}").status_code == 204
    assert client.get(f"/groups/{gid}/balances").json() == []


def test_member_removal(client):
    gid, (a, b) = bootstrap(client)
    r = client.post(f"/groups/{gid}/members", json={"name": "Cara"})
    assert r.status_code == 201
    c = r.json()["id"]
    assert client.post(f"/groups/{gid}/members", json={"name": "cara"}).status_code == 422

    add_expense(client, gid, a, 10.0, [{"member_id": b}])
    r = client.delete(f"/groups/{gid}/members/{b}")
    assert r.status_code == 409
    assert "existing expenses or settlements" in r.json()["detail"]
    assert client.delete(f"/groups/{gid}/members/{c}").status_code == 204
    assert len(client.get(f"/groups/{gid}").json()["members"]) == 2


def test_member_removal_blocked_by_settlement(client):
    gid, (a, b) = bootstrap(client)
    eid = add_expense(client, gid, a, 10.0, [{"member_id": b}]).json()["expense"]["id"]
    assert settle(client, gid, b, a, 10.0).status_code == 201
    assert client.delete(f"/groups/{gid}/expenses/{eid}").status_code == 204

    for mid in (a, b):
        r = client.delete(f"/groups/{gid}/members/{mid}")
        assert r.status_code == 409
        assert "existing expenses or settlements" in r.json()["detail"]
    assert len(client.get(f"/groups/{gid}").json()["members"]) == 2


def test_update_member_and_group(client):
    gid, (a, b) = bootstrap(client)
    r = client.patch(f"/groups/{gid}/members/{b}", json={"name": "Robert", "email": "rob@example.com"})
    assert r.json() == {"id": b, "name": "Robert", "email": "rob@example.com"}
    assert client.patch(f"/groups/{gid}", json={"base_currency": "eur"}).json()["base_currency"] == "EUR"

    add_expense(client, gid, a, 10.0, [{"member_id": b}], currency="EUR")
    assert client.patch(f"/groups/{gid}", json={"base_currency": "USD"}).status_code == 422
    assert client.patch(f"/groups/{gid}", json={"name": "Lisbon"}).json()["name"] == "Lisbon"


def test_delete_group(client):
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 10.0, [{"member_id": a}, {"member_id": b}])
    settle(client, gid, b, a, 5.0)
    assert client.delete(f"/groups/{gid}").status_code == 204
    assert client.get(f"/groups/{gid}").status_code == 404


def test_rates(client):
    r = client.put("/rates", json={"rates": {"eur": 0.92, "INR": 83.12}})
    assert r.json()["rates"] == {"USD": 1.0, "EUR": 0.92, "INR": 83.12}
    r = client.get("/rates/convert", params={"amount": 92, "source": "EUR", "target": "usd"})
    assert r.json()["converted"] == pytest.approx(100.0)
    assert r.json()["formatted"] == "$100.00"
    assert client.get("/rates/convert", params={"amount": 1, "source": "GBP", "target": "USD"}).status_code == 400
    assert client.put("/rates", json={"rates": {"EUR": 0}}).status_code == 422


def test_anchor_rate_is_fixed(client):
    r = client.put("/rates", json={"rates": {"USD": 2.0, "EUR": 1.0}})
    assert r.status_code == 422
    assert "USD" in r.json()["detail"]
    assert client.get("/rates").json()["rates"] == {"USD": 1.0}

    r = client.put("/rates", json={"rates": {"usd": 1.0, "EUR": 0.5}})
    assert r.status_code == 200
    assert r.json()["rates"] == {"USD": 1.0, "EUR": 0.5}
    r = client.get("/rates/convert", params={"amount": 1, "source": "EUR", "target": "USD"})
    assert r.json()["converted"] == pytest.approx(2.0)


def test_settle_called_directly(client, db):
    gid, (a, b) = bootstrap(client)
    add_expense(client, gid, a, 100.0, [{"member_id": a}, {"member_id": b}])
    out = settlements_router.settle(
        group_id=gid, data=SettlementIn(paid_by=b, paid_to=a, amount=30.0, currency="USD", date=TODAY), db=db
    )
    assert out["settlement"].amount == 30.0
    assert client.get(f"/groups/{gid}/balances").json()[0]["amount"] == 20.0
    with pytest.raises(Exception):
        settlements_router.settle(
            group_id=gid, data=SettlementIn(paid_by=b, paid_to=a, amount=25.0, currency="USD", date=TODAY), db=db
        )
