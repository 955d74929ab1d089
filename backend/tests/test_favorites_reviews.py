"""Favourites and review comment threads."""

import pytest

from agromart.models import User


@pytest.fixture
def admin(make_user):
    return make_user("curator", "admin")


def _suspend(session_factory, account):
    with session_factory() as db:
        db.get(User, account.id).status = "suspended"
        db.commit()


def _delivered_review(client, make_user, make_listing, rating=4):
    """Buyer orders, farmer delivers, buyer reviews. Returns (farmer, buyer, listing_id, review_id)."""
    farmer = make_user("orchard", "farmer")
    buyer = make_user("eater")
    listing_id = make_listing(farmer.id, 47.0, 8.0)
    order_id = client.post("/orders", json={"listing_id": listing_id, "quantity": 1}, headers=buyer.headers).json()["id"]
    for status in ("accepted", "shipped"):
        client.patch(f"/orders/{order_id}/status", json={"status": status}, headers=farmer.headers)
    client.post(f"/orders/{order_id}/mark-delivered", headers=buyer.headers)
    r = client.post("/reviews", json={"order_id": order_id, "rating": rating, "comment": "Crisp"}, headers=buyer.headers)
    assert r.status_code == 201, r.text
    return farmer, buyer, listing_id, r.json()["id"]


# ---- favourites ----


def test_toggle_favorite(client, make_user, make_listing):
    farmer = make_user("favfarm", "farmer")
    buyer = make_user("favbuyer")
    listing_id = make_listing(farmer.id, 46.0, 7.0)

    r = client.post(f"/favorites/{listing_id}/toggle", headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["favorited"] is True
    assert r.json()["id"]
    assert client.get(f"/favorites/{listing_id}/status", headers=buyer.headers).json() == {"favorited": True}

    rows = client.get("/favorites", headers=buyer.headers).json()
    assert [row["listing"]["id"] for row in rows] == [listing_id]
    assert rows[0]["farmer_name"] == "Favfarm"

    r = client.post(f"/favorites/{listing_id}/toggle", headers=buyer.headers)
    assert r.json() == {"favorited": False, "id": None}
    assert client.get(f"/favorites/{listing_id}/status", headers=buyer.headers).json() == {"favorited": False}
    assert client.get("/favorites", headers=buyer.headers).json() == []


def test_cannot_favorite_own_or_missing_listing(client, make_user, make_listing):
    farmer = make_user("selffav", "farmer")
    listing_id = make_listing(farmer.id, 46.0, 7.0)
    assert client.post(f"/favorites/{listing_id}/toggle", headers=farmer.headers).status_code == 400
    assert client.post("/favorites/999999/toggle", headers=farmer.headers).status_code == 404


def test_favorites_are_per_user(client, make_user, make_listing):
    farmer = make_user("sharedfarm", "farmer")
    first = make_user("fan_a")
    second = make_user("fan_b")
    listing_id = make_listing(farmer.id, 46.0, 7.0)

    client.post(f"/favorites/{listing_id}/toggle", headers=first.headers)
    assert client.get(f"/favorites/{listing_id}/status", headers=second.headers).json()["favorited"] is False
    assert client.get("/favorites", headers=second.headers).json() == []


def test_suspended_user_cannot_toggle_favorite(client, make_user, make_listing, session_factory):
    farmer = make_user("gatefav", "farmer")
    buyer = make_user("gatedfan")
    listing_id = make_listing(farmer.id, 46.0, 7.0)
    _suspend(session_factory, buyer)

    r = client.post(f"/favorites/{listing_id}/toggle", headers=buyer.headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "SUSPENDED"
    assert client.get("/favorites", headers=buyer.headers).status_code == 200


def test_deleting_listing_drops_favorites(client, make_user, make_listing):
    farmer = make_user("gonefarm", "farmer")
    buyer = make_user("gonefan")
    listing_id = make_listing(farmer.id, 46.0, 7.0)
    client.post(f"/favorites/{listing_id}/toggle", headers=buyer.headers)

    assert client.delete(f"/listings/{listing_id}", headers=farmer.headers).status_code == 204
    assert client.get("/favorites", headers=buyer.headers).json() == []


# ---- reviews ----


def test_listing_reviews_and_single_review(client, make_user, make_listing):
    farmer, buyer, listing_id, review_id = _delivered_review(client, make_user, make_listing, rating=4)

    rows = client.get(f"/listings/{listing_id}/reviews").json()
    assert [row["id"] for row in rows] == [review_id]
    assert rows[0]["reviewer_id"] == buyer.id

    r = client.get(f"/reviews/{review_id}")
    assert r.status_code == 200
    assert r.json()["farmer_id"] == farmer.id
    assert client.get("/reviews/999999").status_code == 404

    notes = client.get("/notifications", headers=farmer.headers).json()
    assert any(n["type"] == "review_created" and n["data"]["rating"] == 4 for n in notes)


def test_comment_thread(client, make_user, make_listing):
    farmer, buyer, _, review_id = _delivered_review(client, make_user, make_listing)
    bystander = make_user("bystander")

    r = client.post(
        f"/reviews/{review_id}/comments", json={"comment": "  Thanks for the kind words  "}, headers=farmer.headers
    )
    assert r.status_code == 201, r.text
    assert r.json()["comment"] == "Thanks for the kind words"
    assert r.json()["author_id"] == farmer.id
    client.post(f"/reviews/{review_id}/comments", json={"comment": "Agreed"}, headers=bystander.headers)

    thread = client.get(f"/reviews/{review_id}/comments").json()
    assert [c["author_id"] for c in thread] == [farmer.id, bystander.id]

    buyer_notes = client.get("/notifications", headers=buyer.headers).json()
    assert sum(n["type"] == "review_commented" for n in buyer_notes) == 2
    farmer_notes = client.get("/notifications", headers=farmer.headers).json()
    assert sum(n["type"] == "review_commented" for n in farmer_notes) == 1


def test_comment_validation(client, make_user, make_listing):
    farmer, _, _, review_id = _delivered_review(client, make_user, make_listing)
    r = client.post(f"/reviews/{review_id}/comments", json={"comment": "   "}, headers=farmer.headers)
    assert r.status_code == 400
    assert client.post("/reviews/999999/comments", json={"comment": "hi"}, headers=farmer.headers).status_code == 404
    assert client.get("/reviews/999999/comments").status_code == 404


def test_suspended_user_cannot_comment(client, make_user, make_listing, session_factory):
    farmer, _, _, review_id = _delivered_review(client, make_user, make_listing)
    _suspend(session_factory, farmer)
    r = client.post(f"/reviews/{review_id}/comments", json={"comment": "Hello"}, headers=farmer.headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "SUSPENDED"
    assert client.get(f"/reviews/{review_id}/comments").json() == []


def test_admin_deletes_comment_and_review(client, make_user, make_listing, admin):
    farmer, buyer, listing_id, review_id = _delivered_review(client, make_user, make_listing)
    comment_id = client.post(
        f"/reviews/{review_id}/comments", json={"comment": "Spam link"}, headers=farmer.headers
    ).json()["id"]
    client.post(f"/reviews/{review_id}/comments", json={"comment": "Reply"}, headers=buyer.headers)

    assert client.delete(f"/admin/reviews/comments/{comment_id}", headers=buyer.headers).status_code == 403
    r = client.delete(f"/admin/reviews/comments/{comment_id}", headers=admin.headers)
    assert r.status_code == 200
    assert [c["comment"] for c in client.get(f"/reviews/{review_id}/comments").json()] == ["Reply"]
    assert client.delete(f"/admin/reviews/comments/{comment_id}", headers=admin.headers).status_code == 404

    r = client.delete(f"/admin/reviews/{review_id}", headers=admin.headers)
    assert r.status_code == 200
    assert client.get(f"/reviews/{review_id}").status_code == 404
    assert client.get(f"/listings/{listing_id}/reviews").json() == []
    assert client.get(f"/users/{farmer.id}/reviews").json() == []

    actions = [row["action"] for row in client.get("/admin/audit-logs", headers=admin.headers).json()]
    assert "review_deleted" in actions
    assert "review_comment_deleted" in actions
