"""Tests for the Customers module (HTTP surface + repository rules)."""
from datetime import date, datetime

import pytest
from werkzeug.security import generate_password_hash

from app.crm import create_app
from app.crm.db import session_scope
from app.crm.models import Base, Customer, Order

PASSWORD = "Passw0rd!"


def _seed_customer(s, *, email, name, position_id=2, started=date(2024, 1, 1), deleted=False):
    c = Customer(
        email=email,
        password=generate_password_hash(PASSWORD),
        name=name,
        started_date=started,
        position_id=position_id,
        deleted_at=datetime(2024, 6, 1) if deleted else None,
    )
    s.add(c)
    s.flush()
    return c.id


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("JWT_ACCESS_SECRET", "access-secret")
    monkeypatch.setenv("JWT_REFRESH_SECRET", "refresh-secret")

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        app.config["TEST_IDS"] = {
            "admin": _seed_customer(s, email="admin@example.com", name="Admin", position_id=0),
            "user": _seed_customer(s, email="user@example.com", name="Plain User", position_id=2),
            "group": _seed_customer(s, email="group@example.com", name="Group Lead", position_id=1),
        }
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _auth(client, email):
    r = client.post("/v1/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.json
    return {"Authorization": f"Bearer {r.json['token']['accessToken']}"}


def _new_customer(**overrides):
    body = {
        "name": "Taro Yamada",
        "email": "taro@example.com",
        "positionId": "2",
        "startedDate": "2024-04-01",
        "password": "Secret123!",
    }
    body.update(overrides)
    return body


def test_create_then_search_by_exact_name(client):
    h = _auth(client, "admin@example.com")
    r = client.post("/v1/customer", json=_new_customer(), headers=h)
    assert r.status_code == 201
    new_id = r.json["id"]

    r = client.get("/v1/customer", query_string={"name": "Taro Yamada"}, headers=h)
    assert r.status_code == 200
    assert r.json["total_count"] == 1
    assert r.json["customer"][0]["id"] == str(new_id)
    assert r.json["customer"][0]["orders"] == []


def test_create_stores_hashed_password(app, client):
    h = _auth(client, "admin@example.com")
    r = client.post("/v1/customer", json=_new_customer(), headers=h)
    with session_scope(app) as s:
        c = s.get(Customer, r.json["id"])
        assert c.password != "Secret123!"
        assert c.started_date == date(2024, 4, 1)


def test_create_duplicate_email_is_already_exists(client):
    h = _auth(client, "admin@example.com")
    assert client.post("/v1/customer", json=_new_customer(), headers=h).status_code == 201
    r = client.post("/v1/customer", json=_new_customer(name="Other"), headers=h)
    assert r.status_code == 400
    assert r.json == {"message": "Customer already exists"}


def test_create_duplicate_email_of_soft_deleted_customer_is_blocked(app, client):
    with session_scope(app) as s:
        _seed_customer(s, email="gone@example.com", name="Gone", deleted=True)
    h = _auth(client, "admin@example.com")
    r = client.post("/v1/customer", json=_new_customer(email="gone@example.com"), headers=h)
    assert r.status_code == 400


def test_create_race_is_translated_by_unique_constraint(client, monkeypatch):
    from app.crm.modules.customers import repository

    h = _auth(client, "admin@example.com")
    assert client.post("/v1/customer", json=_new_customer(), headers=h).status_code == 201

    # Simulate the second writer passing the pre-check before the first commit.
    monkeypatch.setattr(repository, "_email_taken", lambda *a, **kw: False)
    r = client.post("/v1/customer", json=_new_customer(name="Racer"), headers=h)
    assert r.status_code == 400
    assert r.json == {"message": "Customer already exists"}


def test_create_validation_collects_all_errors(client):
    h = _auth(client, "admin@example.com")
    r = client.post(
        "/v1/customer",
        json={"name": "x" * 101, "email": "not-an-email", "positionId": "7", "startedDate": "2024/01/01"},
        headers=h,
    )
    assert r.status_code == 422
    errors = r.json["errors"]
    assert len(errors) == 5
    assert any("positionId" in e for e in errors)
    assert any("password" in e for e in errors)


@pytest.mark.parametrize("position", ["3", "-1", "1.5", "abc", "0,3"])
def test_create_rejects_position_outside_enum(client, position):
    h = _auth(client, "admin@example.com")
    r = client.post("/v1/customer", json=_new_customer(positionId=position), headers=h)
    assert r.status_code == 422


def test_get_by_id(client, app):
    h = _auth(client, "user@example.com")
    uid = app.config["TEST_IDS"]["admin"]
    r = client.get(f"/v1/customer/{uid}", headers=h)
    assert r.status_code == 200
    assert r.json["email"] == "admin@example.com"
    assert "password" not in r.json


def test_get_by_id_soft_deleted_is_404(app, client):
    with session_scope(app) as s:
        gone = _seed_customer(s, email="gone@example.com", name="Gone", deleted=True)
    h = _auth(client, "admin@example.com")
    assert client.get(f"/v1/customer/{gone}", headers=h).status_code == 404


@pytest.mark.parametrize("raw", ["abc", "99999999999999999999", "2147483648"])
def test_invalid_id_param_is_400(client, raw):
    h = _auth(client, "admin@example.com")
    r = client.get(f"/v1/customer/{raw}", headers=h)
    assert r.status_code == 400
    assert r.json == {"message": "Invalid id"}


def test_update_self_keeps_password_when_omitted(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "user@example.com")
    body = {"name": "Renamed", "email": "user@example.com", "positionId": "2", "startedDate": "2024-02-02"}
    r = client.put(f"/v1/customer/{uid}", json=body, headers=h)
    assert r.status_code == 200
    assert r.json == {"id": uid}

    # old password still works
    _auth(client, "user@example.com")
    with session_scope(app) as s:
        assert s.get(Customer, uid).name == "Renamed"


def test_update_is_partial(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "user@example.com")
    r = client.put(f"/v1/customer/{uid}", json={"name": "Only Name"}, headers=h)
    assert r.status_code == 200

    with session_scope(app) as s:
        c = s.get(Customer, uid)
        assert c.name == "Only Name"
        assert c.email == "user@example.com"
        assert c.position_id == 2
        assert c.started_date == date(2024, 1, 1)
    _auth(client, "user@example.com")


def test_update_rejects_blank_name(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "user@example.com")
    r = client.put(f"/v1/customer/{uid}", json={"name": ""}, headers=h)
    assert r.status_code == 422
    assert r.json == {"errors": ["name cannot be blank"]}


def test_update_self_may_resend_own_position(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "user@example.com")
    r = client.put(f"/v1/customer/{uid}", json={"positionId": "2", "startedDate": "2023-03-03"}, headers=h)
    assert r.status_code == 200


def test_update_other_customer_requires_admin(app, client):
    admin_id = app.config["TEST_IDS"]["admin"]
    h = _auth(client, "user@example.com")
    body = {"name": "Hacked", "email": "admin@example.com", "positionId": "0", "startedDate": "2024-01-01"}
    r = client.put(f"/v1/customer/{admin_id}", json=body, headers=h)
    assert r.status_code == 403


def test_update_self_cannot_change_position(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "user@example.com")
    body = {"name": "Plain User", "email": "user@example.com", "positionId": "0", "startedDate": "2024-01-01"}
    r = client.put(f"/v1/customer/{uid}", json=body, headers=h)
    assert r.status_code == 403


def test_admin_updates_anyone_including_password(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "admin@example.com")
    body = {
        "name": "Plain User",
        "email": "user@example.com",
        "positionId": "1",
        "startedDate": "2024-01-01",
        "password": "NewPass1!",
    }
    assert client.put(f"/v1/customer/{uid}", json=body, headers=h).status_code == 200
    r = client.post("/v1/login", json={"email": "user@example.com", "password": "NewPass1!"})
    assert r.status_code == 200
    assert r.json["position_id"] == "1"


def test_update_to_taken_email_is_already_exists(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "admin@example.com")
    body = {"name": "Plain User", "email": "group@example.com", "positionId": "2", "startedDate": "2024-01-01"}
    r = client.put(f"/v1/customer/{uid}", json=body, headers=h)
    assert r.status_code == 400


def test_update_missing_customer_is_404(client):
    h = _auth(client, "admin@example.com")
    body = {"name": "X", "email": "x@example.com", "positionId": "2", "startedDate": "2024-01-01"}
    assert client.put("/v1/customer/9999", json=body, headers=h).status_code == 404


def test_delete_is_soft_and_not_repeatable(app, client):
    uid = app.config["TEST_IDS"]["user"]
    h = _auth(client, "admin@example.com")
    r = client.delete(f"/v1/customer/{uid}", headers=h)
    assert r.status_code == 204
    assert r.data == b""

    with session_scope(app) as s:
        c = s.get(Customer, uid)
        assert c is not None
        assert c.deleted_at is not None

    assert client.delete(f"/v1/customer/{uid}", headers=h).status_code == 404
    body = {"name": "X", "email": "user@example.com", "positionId": "2", "startedDate": "2024-01-01"}
    assert client.put(f"/v1/customer/{uid}", json=body, headers=h).status_code == 404


def test_delete_requires_admin(app, client):
    gid = app.config["TEST_IDS"]["group"]
    h = _auth(client, "user@example.com")
    assert client.delete(f"/v1/customer/{gid}", headers=h).status_code == 403


def test_admin_cannot_delete_self(app, client):
    admin_id = app.config["TEST_IDS"]["admin"]
    h = _auth(client, "admin@example.com")
    assert client.delete(f"/v1/customer/{admin_id}", headers=h).status_code == 403


def test_deleted_customer_token_is_rejected(app, client):
    uid = app.config["TEST_IDS"]["user"]
    user_h = _auth(client, "user@example.com")
    admin_h = _auth(client, "admin@example.com")
    assert client.delete(f"/v1/customer/{uid}", headers=admin_h).status_code == 204
    assert client.get("/v1/customer", headers=user_h).status_code == 401


def test_search_excludes_soft_deleted(app, client):
    with session_scope(app) as s:
        _seed_customer(s, email="gone@example.com", name="Gone", deleted=True)
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer", headers=h)
    assert r.json["total_count"] == 3
    assert "Gone" not in [c["name"] for c in r.json["customer"]]


@pytest.mark.parametrize("position", ["abc", "\u00b2", "99999999999999999999", "-1"])
def test_search_non_numeric_position_matches_nothing(client, position):
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer", query_string={"positionId": position}, headers=h)
    assert r.status_code == 200
    assert r.json == {"total_count": 0, "customer": []}


def test_search_huge_page_is_empty_not_an_error(client):
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer", query_string={"limit": "99999999999999999999", "offset": "99999999999999999999"}, headers=h)
    assert r.status_code == 200
    assert r.json["customer"] == []


def test_search_filters_combine(app, client):
    with session_scope(app) as s:
        _seed_customer(s, email="a1@example.com", name="Alpha One", started=date(2023, 5, 1))
        _seed_customer(s, email="a2@example.com", name="Alpha Two", started=date(2024, 5, 1))
        _seed_customer(s, email="a3@example.com", name="Alpha Three", position_id=1, started=date(2024, 5, 1))
    h = _auth(client, "admin@example.com")
    r = client.get(
        "/v1/customer",
        query_string={"name": "Alpha", "positionId": "2", "startedDateFrom": "2024-01-01", "startedDateTo": "2024-05-01"},
        headers=h,
    )
    assert r.json["total_count"] == 1
    assert r.json["customer"][0]["name"] == "Alpha Two"


def test_search_name_match_is_case_sensitive(app, client):
    h = _auth(client, "admin@example.com")
    assert client.get("/v1/customer?name=Admin", headers=h).json["total_count"] == 1
    assert client.get("/v1/customer?name=admin", headers=h).json["total_count"] == 0


def test_search_name_wildcards_are_literal(client):
    h = _auth(client, "admin@example.com")
    assert client.get("/v1/customer?name=%25", headers=h).json["total_count"] == 0


def test_search_rejects_bad_date(client):
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer?startedDateFrom=01-01-2024", headers=h)
    assert r.status_code == 422
    assert r.json["errors"] == ["startedDateFrom must be in YYYY-MM-DD format"]


def test_search_ordering_and_pagination(app, client):
    with session_scope(app) as s:
        _seed_customer(s, email="b2@example.com", name="Bravo", started=date(2024, 2, 1))
        _seed_customer(s, email="b1@example.com", name="Bravo", started=date(2024, 1, 1))
        _seed_customer(s, email="c1@example.com", name="Charlie")
    h = _auth(client, "admin@example.com")

    r = client.get("/v1/customer?limit=2&offset=1", headers=h)
    assert r.json["total_count"] == 6
    assert [c["name"] for c in r.json["customer"]] == ["Admin", "Bravo"]
    assert r.json["customer"][1]["started_date"] == "2024-01-01"

    r = client.get("/v1/customer?limit=2&offset=2", headers=h)
    assert [c["started_date"] for c in r.json["customer"]] == ["2024-02-01", "2024-01-01"]
    assert [c["name"] for c in r.json["customer"]] == ["Bravo", "Charlie"]


def test_search_empty_page_is_not_an_error(client):
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer?name=Nobody&limit=10&offset=1", headers=h)
    assert r.status_code == 200
    assert r.json == {"total_count": 0, "customer": []}


def test_search_attaches_active_orders_oldest_first(app, client):
    uid = app.config["TEST_IDS"]["user"]
    with session_scope(app) as s:
        s.add_all(
            [
                Order(item_name="Second", item_quantity=1, customer_id=uid, created_at=datetime(2024, 3, 2)),
                Order(item_name="First", item_quantity=1, customer_id=uid, created_at=datetime(2024, 3, 1)),
                Order(
                    item_name="Cancelled",
                    item_quantity=1,
                    customer_id=uid,
                    created_at=datetime(2024, 3, 3),
                    deleted_at=datetime(2024, 3, 4),
                ),
            ]
        )
    h = _auth(client, "admin@example.com")
    r = client.get("/v1/customer?name=Plain", headers=h)
    orders = r.json["customer"][0]["orders"]
    assert [o["item_name"] for o in orders] == ["First", "Second"]
    assert orders[0]["created_date"] == "2024-03-01"
