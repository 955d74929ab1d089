"""Listings, orders and reviews."""

import pytest
from sqlalchemy import select

from agromart.core.exceptions import ConflictError
from agromart.models import Listing, Order, User, UserVerification
from agromart.services import order_service

LISTING = {
    "title": "Heirloom tomatoes",
    "description": "Vine ripened",
    "category": "vegetables",
    "price": 3.0,
    "unit": "kg",
    "quantity_available": 20,
    "is_organic": True,
    "location": {"lat": 9.05, "lng": 7.49, "city": "Abuja"},
}


@pytest.fixture
def verified_farmer(make_user, session_factory):
    farmer = make_user("grower", "farmer")
    with session_factory() as db:
        db.add(UserVerification(user_id=farmer.id, status="verified"))
        db.commit()
    return farmer


@pytest.fixture
def buyer(make_user):
    return make_user("shopper")


def _order(client, buyer, listing_id, quantity=1):
    return client.post("/orders", json={"listing_id": listing_id, "quantity": quantity}, headers=buyer.headers)


def _set_status(client, account, order_id, status):
    return client.patch(f"/orders/{order_id}/status", json={"status": status}, headers=account.headers)


# ---- listings ----


def test_verified_farmer_creates_listing(client, verified_farmer):
    r = client.post("/listings", json=LISTING, headers=verified_farmer.headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["farmer_id"] == verified_farmer.id
    assert body["status"] == "active"
    assert body["geo_cell"] == "90:74"
    assert body["location"]["city"] == "Abuja"

    assert client.get(f"/listings/{body['id']}").json()["title"] == "Heirloom tomatoes"
    ids = [row["id"] for row in client.get("/listings", params={"farmer_id": verified_farmer.id}).json()]
    assert ids == [body["id"]]


def test_unverified_farmer_cannot_list(client, make_user):
    farmer = make_user("newgrower", "farmer")
    r = client.post("/listings", json=LISTING, headers=farmer.headers)
    assert r.status_code == 403
    assert r.json()["code"] == "verification_required"
    assert r.json()["status"] == "unverified"


def test_buyer_cannot_list(client, buyer):
    assert client.post("/listings", json=LISTING, headers=buyer.headers).status_code == 403


def test_listing_rejects_unknown_category(client, verified_farmer):
    r = client.post("/listings", json={**LISTING, "category": "tractors"}, headers=verified_farmer.headers)
    assert r.status_code == 400
    assert "vegetables" in r.json()["allowed"]


def test_listing_rejects_bad_location(client, verified_farmer):
    r = client.post("/listings", json={**LISTING, "location": {"lat": 95, "lng": 0}}, headers=verified_farmer.headers)
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_coordinates"


def test_update_listing_moves_geo_cell(client, verified_farmer, make_user):
    listing_id = client.post("/listings", json=LISTING, headers=verified_farmer.headers).json()["id"]
    r = client.patch(
        f"/listings/{listing_id}",
        json={"price": 4.5, "location": {"lat": -1.29, "lng": 36.82}},
        headers=verified_farmer.headers,
    )
    assert r.status_code == 200
    assert r.json()["price"] == 4.5
    assert r.json()["geo_cell"] == "-13:368"

    other = make_user("rival", "farmer")
    assert client.patch(f"/listings/{listing_id}", json={"price": 1}, headers=other.headers).status_code == 403


def test_delete_and_restore(client, verified_farmer):
    listing_id = client.post("/listings", json=LISTING, headers=verified_farmer.headers).json()["id"]
    r = client.post(f"/listings/{listing_id}/restore", headers=verified_farmer.headers)
    assert r.status_code == 409

    client.patch(f"/listings/{listing_id}", json={"status": "inactive"}, headers=verified_farmer.headers)
    r = client.post(f"/listings/{listing_id}/restore", headers=verified_farmer.headers)
    assert r.status_code == 200
    assert r.json()["status"] == "active"

    assert client.delete(f"/listings/{listing_id}", headers=verified_farmer.headers).status_code == 204
    assert client.get(f"/listings/{listing_id}").status_code == 404


def test_listing_with_orders_cannot_be_deleted(client, verified_farmer, buyer):
    listing_id = client.post("/listings", json=LISTING, headers=verified_farmer.headers).json()["id"]
    assert _order(client, buyer, listing_id).status_code == 201
    r = client.delete(f"/listings/{listing_id}", headers=verified_farmer.headers)
    assert r.status_code == 409
    assert r.json()["code"] == "listing_has_orders"


# ---- orders ----


def test_place_order_decrements_stock(client, make_user, make_listing, buyer):
    farmer = make_user("stockfarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0, quantity=5)
    r = _order(client, buyer, listing_id, 2)
    assert r.status_code == 201, r.text
    order = r.json()
    assert order["status"] == "pending"
    assert order["farmer_id"] == farmer.id
    assert order["total_price"] == 5.0
    assert client.get(f"/listings/{listing_id}").json()["quantity_available"] == 3

    r = _order(client, buyer, listing_id, 4)
    assert r.status_code == 400
    assert r.json()["code"] == "insufficient_quantity"


def test_buying_everything_marks_listing_sold(client, make_user, make_listing, buyer):
    farmer = make_user("soldfarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0, quantity=2)
    assert _order(client, buyer, listing_id, 2).status_code == 201
    listing = client.get(f"/listings/{listing_id}").json()
    assert listing["quantity_available"] == 0
    assert listing["status"] == "sold"
    assert _order(client, buyer, listing_id, 1).status_code == 404


def test_cannot_order_own_listing(client, make_listing, buyer):
    listing_id = make_listing(buyer.id, 9.0, 8.0)
    assert _order(client, buyer, listing_id).status_code == 400


def test_farmers_cannot_place_orders(client, make_user, make_listing):
    farmer = make_user("notbuyer", "farmer")
    other = make_user("seller", "farmer")
    listing_id = make_listing(other.id, 9.0, 8.0)
    assert _order(client, farmer, listing_id).status_code == 403


def test_concurrent_order_loses_stock_race(make_user, make_listing, session_factory):
    farmer = make_user("racefarm", "farmer")
    first = make_user("racer_a")
    second = make_user("racer_b")
    listing_id = make_listing(farmer.id, 9.0, 8.0, quantity=1)

    with session_factory() as db_a, session_factory() as db_b:
        # second buyer's session holds the last unit before the first buyer commits
        listing_b = db_b.get(Listing, listing_id)
        assert listing_b.quantity_available == 1
        order_service.place_order(db_a, db_a.get(User, first.id), listing_id, 1)
        with pytest.raises(ConflictError) as exc:
            order_service.place_order(db_b, db_b.get(User, second.id), listing_id, 1)
        assert exc.value.code == "stock_changed"

    with session_factory() as db:
        assert db.get(Listing, listing_id).quantity_available == 0
        orders = db.execute(select(Order).where(Order.listing_id == listing_id)).scalars().all()
        assert [o.buyer_id for o in orders] == [first.id]


def test_order_lifecycle_and_history(client, make_user, make_listing, buyer):
    farmer = make_user("lifefarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0)
    order_id = _order(client, buyer, listing_id).json()["id"]

    assert _set_status(client, buyer, order_id, "accepted").status_code == 403
    assert _set_status(client, farmer, order_id, "accepted").json()["status"] == "accepted"
    assert _set_status(client, farmer, order_id, "paused").status_code == 400
    assert _set_status(client, farmer, order_id, "teleported").status_code == 400

    r = client.post(f"/orders/{order_id}/mark-delivered", headers=buyer.headers)
    assert r.status_code == 409
    assert _set_status(client, farmer, order_id, "shipped").json()["status"] == "shipped"
    assert _set_status(client, farmer, order_id, "delivered").status_code == 403

    r = client.post(f"/orders/{order_id}/mark-delivered", headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["status"] == "delivered"

    detail = client.get(f"/orders/{order_id}", headers=farmer.headers).json()
    assert [h["to_status"] for h in detail["history"]] == ["pending", "accepted", "shipped", "delivered"]
    assert detail["history"][0]["from_status"] is None

    outsider = make_user("outsider")
    assert client.get(f"/orders/{order_id}", headers=outsider.headers).status_code == 403


def test_cancel_only_while_pending(client, make_user, make_listing, buyer):
    farmer = make_user("cancelfarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0)
    pending = _order(client, buyer, listing_id).json()["id"]
    accepted = _order(client, buyer, listing_id).json()["id"]
    _set_status(client, farmer, accepted, "accepted")

    r = client.post(f"/orders/{pending}/cancel", headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"
    assert client.post(f"/orders/{accepted}/cancel", headers=buyer.headers).status_code == 409
    assert client.post(f"/orders/{accepted}/cancel", headers=farmer.headers).status_code == 403


def test_list_orders_is_scoped_to_parties(client, make_user, make_listing, buyer):
    farmer = make_user("listfarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0)
    order_id = _order(client, buyer, listing_id).json()["id"]

    assert order_id in [o["id"] for o in client.get("/orders", headers=buyer.headers).json()]
    assert order_id in [o["id"] for o in client.get("/orders", headers=farmer.headers).json()]
    assert client.get("/orders", params={"status": "shipped"}, headers=farmer.headers).json() == []
    stranger = make_user("stranger")
    assert client.get("/orders", headers=stranger.headers).json() == []


# ---- reviews ----


def test_review_after_delivery_only(client, make_user, make_listing, buyer):
    farmer = make_user("reviewfarm", "farmer")
    listing_id = make_listing(farmer.id, 9.0, 8.0)
    order_id = _order(client, buyer, listing_id).json()["id"]
    review = {"order_id": order_id, "rating": 5, "comment": "Fresh"}

    r = client.post("/reviews", json=review, headers=buyer.headers)
    assert r.status_code == 409

    _set_status(client, farmer, order_id, "accepted")
    _set_status(client, farmer, order_id, "shipped")
    client.post(f"/orders/{order_id}/mark-delivered", headers=buyer.headers)

    other = make_user("notmine")
    assert client.post("/reviews", json=review, headers=other.headers).status_code == 403

    r = client.post("/reviews", json=review, headers=buyer.headers)
    assert r.status_code == 201
    assert r.json()["farmer_id"] == farmer.id

    again = client.post("/reviews", json=review, headers=buyer.headers)
    assert again.status_code == 409
    assert again.json()["code"] == "already_reviewed"

    reviews = client.get(f"/users/{farmer.id}/reviews").json()
    assert [rv["rating"] for rv in reviews] == [5]
