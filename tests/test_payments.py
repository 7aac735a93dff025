import pytest

from app.extensions import db
from app.models import Bundle, LevelPrice, Purchase
from app.routes import payment


@pytest.fixture()
def bundle(client, admin_headers):
    response = client.post("/admin/bundles", json={
        "code": "beginner",
        "name_en": "Beginner pack",
        "name_sc": "入门套餐",
        "name_tc": "入門套餐",
        "price": 49.0,
        "levels": [2, 1],
    }, headers=admin_headers)
    assert response.status_code == 201
    return response.get_json()


def test_admin_creates_bundle(bundle):
    assert bundle["levels"] == [1, 2]
    assert bundle["sort_order"] == 1
    assert bundle["name_sc"] == "入门套餐"


def test_bundle_requires_all_names(client, admin_headers):
    response = client.post("/admin/bundles", json={"code": "x", "name_en": "X"}, headers=admin_headers)
    assert response.status_code == 400


def test_bundle_code_is_unique(client, admin_headers, bundle):
    response = client.post("/admin/bundles", json={
        "code": "beginner", "name_en": "a", "name_sc": "b", "name_tc": "c",
    }, headers=admin_headers)
    assert response.status_code == 409


def test_update_bundle_replaces_levels(client, admin_headers, bundle):
    response = client.put(
        f"/admin/bundles/{bundle['id']}", json={"levels": [3, 4, 5], "is_active": False}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.get_json()["levels"] == [3, 4, 5]
    assert response.get_json()["is_active"] is False


def test_bundle_code_cannot_change(client, admin_headers, student_headers, lesson, bundle):
    verify(client, student_headers, order_id="ORDER-8", product_type="bundle", product_id="beginner", amount=49)

    response = client.put(f"/admin/bundles/{bundle['id']}", json={"code": "starter"}, headers=admin_headers)

    assert response.status_code == 400
    assert Bundle.query.first().code == "beginner"
    assert client.get(f"/lessons/{lesson.id}", headers=student_headers).get_json()["locked"] is False


def test_update_bundle_accepts_unchanged_code(client, admin_headers, bundle):
    response = client.put(
        f"/admin/bundles/{bundle['id']}", json={"code": "beginner", "price": 45}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.get_json()["price"] == 45.0


def test_delete_bundle(client, admin_headers, bundle):
    assert client.delete(f"/admin/bundles/{bundle['id']}", headers=admin_headers).status_code == 200
    assert Bundle.query.count() == 0


def test_admin_prices_fill_missing_levels(client, admin_headers):
    response = client.get("/admin/prices", headers=admin_headers).get_json()
    assert response["level_prices"] == {str(level): 0 for level in range(1, 7)}


def test_update_level_prices(client, admin_headers, levels):
    response = client.put(
        "/admin/prices/levels", json={"prices": {"1": 9.5, "6": 99}}, headers=admin_headers
    )

    assert response.status_code == 200
    assert LevelPrice.query.filter_by(level=1).first().price == 9.5
    assert LevelPrice.query.filter_by(level=6).first().price == 99.0


def test_update_level_prices_rejects_unknown_level(client, admin_headers):
    response = client.put("/admin/prices/levels", json={"prices": {"9": 10}}, headers=admin_headers)
    assert response.status_code == 400


def test_students_cannot_see_admin_pages(client, student_headers):
    assert client.get("/admin/prices", headers=student_headers).status_code == 403
    assert client.get("/admin/overview", headers=student_headers).status_code == 403


def test_pricing_lists_bundles_for_level(client, levels, bundle):
    body = client.get("/payments/pricing/1?locale=tc").get_json()

    assert body["level_price"] == 21.0
    assert [b["code"] for b in body["bundles"]] == ["beginner"]
    assert body["bundles"][0]["name"] == "入門套餐"
    assert len(body["all_level_prices"]) == 6
    assert client.get("/payments/pricing/3").get_json()["bundles"] == []


def test_pricing_falls_back_to_default_price(app, client):
    body = client.get("/payments/pricing/4").get_json()
    assert body["level_price"] == app.config["DEFAULT_LEVEL_PRICE"]


def verify(client, headers, **payload):
    return client.post("/payments/verify", json=payload, headers=headers)


def test_level_purchase_unlocks_lessons(client, student_headers, lesson):
    assert client.get(f"/lessons/{lesson.id}", headers=student_headers).get_json()["locked"] is True

    response = verify(
        client, student_headers, order_id="ORDER-1", product_type="level", product_id=1, amount=21.0
    )

    assert response.status_code == 201
    assert Purchase.query.count() == 1
    assert client.get(f"/lessons/{lesson.id}", headers=student_headers).get_json()["locked"] is False


def test_bundle_purchase_unlocks_its_levels(client, student_headers, lesson, bundle):
    response = verify(
        client, student_headers, order_id="ORDER-2", product_type="bundle", product_id="beginner", amount=49
    )

    assert response.status_code == 201
    assert client.get(f"/lessons/{lesson.id}", headers=student_headers).get_json()["locked"] is False


def test_repeat_purchase_is_not_recorded_twice(client, student_headers):
    verify(client, student_headers, order_id="ORDER-1", product_type="level", product_id=2, amount=1)
    response = verify(client, student_headers, order_id="ORDER-3", product_type="level", product_id=2, amount=1)

    assert response.status_code == 200
    assert response.get_json()["message"] == "Already purchased"
    assert Purchase.query.count() == 1


def test_verify_rejects_bad_input(client, student_headers):
    assert verify(client, student_headers, product_type="course", product_id=1).status_code == 400
    assert verify(client, student_headers, product_type="level", product_id=1).status_code == 400
    assert verify(client, student_headers, order_id="O", product_type="level", product_id=99).status_code == 400
    assert verify(client, student_headers, order_id="O", product_type="bundle", product_id="nope").status_code == 400
    assert Purchase.query.count() == 0


def test_verify_checks_paypal_when_configured(app, client, student_headers, monkeypatch):
    app.config["PAYPAL_CLIENT_ID"] = "id"
    app.config["PAYPAL_CLIENT_SECRET"] = "secret"
    monkeypatch.setattr(payment, "fetch_paypal_order", lambda order_id: {"status": "APPROVED"})

    response = verify(client, student_headers, order_id="ORDER-4", product_type="level", product_id=1, amount=1)

    assert response.status_code == 400
    assert Purchase.query.count() == 0


def test_verify_uses_paypal_amount(app, client, student_headers, levels, monkeypatch):
    app.config["PAYPAL_CLIENT_ID"] = "id"
    app.config["PAYPAL_CLIENT_SECRET"] = "secret"
    monkeypatch.setattr(payment, "fetch_paypal_order", lambda order_id: {
        "status": "COMPLETED",
        "purchase_units": [{"amount": {"value": "21.00", "currency_code": "USD"}}],
    })

    response = verify(client, student_headers, order_id="ORDER-5", product_type="level", product_id=1, amount=0.01)

    assert response.status_code == 201
    assert Purchase.query.first().amount == 21.0


def test_verify_reports_paypal_outage(app, client, student_headers, monkeypatch):
    app.config["PAYPAL_CLIENT_ID"] = "id"
    app.config["PAYPAL_CLIENT_SECRET"] = "secret"

    def unreachable(order_id):
        raise payment.PayPalError("timeout")

    monkeypatch.setattr(payment, "fetch_paypal_order", unreachable)

    response = verify(client, student_headers, order_id="ORDER-6", product_type="level", product_id=1, amount=1)
    assert response.status_code == 502


def test_overview_counts_revenue(client, admin_headers, student_headers, levels, lesson):
    verify(client, student_headers, order_id="ORDER-7", product_type="level", product_id=1, amount=1)

    body = client.get("/admin/overview", headers=admin_headers).get_json()
    stats = {item["label"]: item["value"] for item in body["statsData"]}

    assert stats["Students"] == 1
    assert stats["Lessons"] == 1
    assert stats["Revenue"] == 21.0
    assert body["revenueByProduct"] == [
        {"product_type": "level", "product_id": "1", "count": 1, "revenue": 21.0}
    ]


def test_zero_level_price_means_default(app, client, student_headers):
    db.session.add(LevelPrice(level=3, price=0))
    db.session.commit()

    assert client.get("/payments/pricing/3").get_json()["level_price"] == app.config["DEFAULT_LEVEL_PRICE"]

    verify(client, student_headers, order_id="ORDER-9", product_type="level", product_id=3, amount=0)
    assert Purchase.query.first().amount == app.config["DEFAULT_LEVEL_PRICE"]


def test_inactive_bundle_cannot_be_bought(client, admin_headers, student_headers, bundle):
    client.put(f"/admin/bundles/{bundle['id']}", json={"is_active": False}, headers=admin_headers)

    response = verify(
        client, student_headers, order_id="ORDER-10", product_type="bundle", product_id="beginner", amount=49
    )
    assert response.status_code == 400


def test_order_id_cannot_be_reused(client, student_headers, other_student_headers, levels):
    first = verify(client, student_headers, order_id="ORDER-11", product_type="level", product_id=1)
    again = verify(client, student_headers, order_id="ORDER-11", product_type="level", product_id=2)
    other = verify(client, other_student_headers, order_id="ORDER-11", product_type="level", product_id=1)

    assert first.status_code == 201
    assert again.status_code == 409
    assert other.status_code == 409
    assert Purchase.query.count() == 1


@pytest.mark.parametrize("unit", [
    {"amount": {"value": "1.00", "currency_code": "USD"}},
    {"amount": {"value": "21.00", "currency_code": "CNY"}},
    {},
])
def test_verify_rejects_wrong_paypal_amount(app, client, student_headers, levels, lesson, monkeypatch, unit):
    app.config["PAYPAL_CLIENT_ID"] = "id"
    app.config["PAYPAL_CLIENT_SECRET"] = "secret"
    monkeypatch.setattr(payment, "fetch_paypal_order", lambda order_id: {
        "status": "COMPLETED",
        "purchase_units": [unit],
    })

    response = verify(client, student_headers, order_id="ORDER-12", product_type="level", product_id=1, amount=21)

    assert response.status_code == 400
    assert Purchase.query.count() == 0
    assert client.get(f"/lessons/{lesson.id}", headers=student_headers).get_json()["locked"] is True
