"""Location updates and nearby search."""

import pytest

from agromart.core.config import settings
from agromart.models import User


def _set_location(client, account, lat, lng):
    r = client.patch("/location", json={"lat": lat, "lng": lng}, headers=account.headers)
    assert r.status_code == 200, r.text
    return r.json()


def _ids(rows):
    return [row["id"] for row in rows]


def test_set_location_derives_geo_cell(client, make_user):
    farmer = make_user("locfarmer", "farmer")
    body = _set_location(client, farmer, 12.34, 56.78)
    assert body["geo_cell"] == "123:567"
    assert body["location"]["lat"] == 12.34
    assert body["location"]["lng"] == 56.78

    me = client.get("/location/me", headers=farmer.headers).json()
    assert me["geo_cell"] == "123:567"


def test_moving_recomputes_geo_cell(client, make_user, session_factory):
    farmer = make_user("mover", "farmer")
    _set_location(client, farmer, 12.34, 56.78)
    body = _set_location(client, farmer, -33.91, 18.42)
    assert body["geo_cell"] == "-340:184"
    with session_factory() as db:
        assert db.get(User, farmer.id).geo_cell == "-340:184"


def test_set_location_accepts_numeric_strings(client, make_user):
    buyer = make_user("strloc")
    body = _set_location(client, buyer, "10.5", "-20.25")
    assert body["geo_cell"] == "105:-203"


@pytest.mark.parametrize(
    "lat,lng",
    [(91, 0), (0, 181), (-90.5, 10), ("north", 10)],
)
def test_set_location_rejects_bad_coordinates(client, make_user, lat, lng):
    buyer = make_user("badloc")
    r = client.patch("/location", json={"lat": lat, "lng": lng}, headers=buyer.headers)
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_coordinates"


def test_nearby_farmers_excludes_points_outside_radius(client, make_user):
    """~4.8km away is in, ~19km away is out of a 10km search."""
    near = make_user("nearfarm", "farmer")
    far = make_user("farfarm", "farmer")
    _set_location(client, near, -30.0, 20.05)
    _set_location(client, far, -30.0, 20.2)
    buyer = make_user("searcher")

    r = client.get(
        "/location/nearby/farmers",
        params={"lat": -30.0, "lng": 20.0, "radiusKm": 10},
        headers=buyer.headers,
    )
    assert r.status_code == 200
    rows = r.json()
    ids = _ids(rows)
    assert near.id in ids
    assert far.id not in ids
    hit = next(row for row in rows if row["id"] == near.id)
    assert hit["distanceKm"] == pytest.approx(4.82, abs=0.05)
    assert hit["name"]
    assert all(row["distanceKm"] <= 10 for row in rows)


def test_nearby_from_null_island(client, make_user):
    near = make_user("nullnear", "farmer")
    far = make_user("nullfar", "farmer")
    _set_location(client, near, 0.0, 0.05)
    _set_location(client, far, 0.0, 1.0)
    buyer = make_user("nullbuyer")

    rows = client.get(
        "/location/nearby/farmers",
        params={"lat": 0, "lng": 0, "radiusKm": 25},
        headers=buyer.headers,
    ).json()
    ids = _ids(rows)
    assert near.id in ids
    assert far.id not in ids
    assert next(row for row in rows if row["id"] == near.id)["distanceKm"] == pytest.approx(5.56, abs=0.01)


def test_nearby_is_sorted_and_limited(client, make_user):
    farmers = [make_user(f"ring{i}", "farmer") for i in range(3)]
    # 0.1, 0.05 and 0.15 degrees north of the origin
    for farmer, dlat in zip(farmers, (0.1, 0.05, 0.15)):
        _set_location(client, farmer, 40.0 + dlat, -100.0)
    buyer = make_user("sorter")
    params = {"lat": 40.0, "lng": -100.0, "radiusKm": 30}

    rows = client.get("/location/nearby/farmers", params=params, headers=buyer.headers).json()
    ours = [row for row in rows if row["id"] in {f.id for f in farmers}]
    assert [row["id"] for row in ours] == [farmers[1].id, farmers[0].id, farmers[2].id]
    distances = [row["distanceKm"] for row in rows]
    assert distances == sorted(distances)

    limited = client.get(
        "/location/nearby/farmers", params={**params, "limit": 1}, headers=buyer.headers
    ).json()
    assert len(limited) == 1
    assert limited[0]["distanceKm"] == distances[0]


def test_nearby_uses_stored_location_when_no_origin_given(client, make_user):
    farmer = make_user("storedfarm", "farmer")
    _set_location(client, farmer, 51.5, -0.12)
    buyer = make_user("storedbuyer")
    _set_location(client, buyer, 51.5, -0.13)

    r = client.get("/location/nearby/farmers", headers=buyer.headers)
    assert r.status_code == 200
    assert farmer.id in _ids(r.json())


def test_nearby_without_any_origin_is_400(client, make_user):
    buyer = make_user("noorigin")
    r = client.get("/location/nearby/farmers", headers=buyer.headers)
    assert r.status_code == 400
    assert r.json()["code"] == "origin_required"


def test_nearby_bad_radius_falls_back_to_default(client, make_user):
    farmer = make_user("radfarm", "farmer")
    _set_location(client, farmer, 35.0, 139.1)  # ~9km east
    buyer = make_user("radbuyer")
    r = client.get(
        "/location/nearby/farmers",
        params={"lat": 35.0, "lng": 139.0, "radiusKm": "lots"},
        headers=buyer.headers,
    )
    assert r.status_code == 200
    assert farmer.id in _ids(r.json())


def test_nearby_role_gate(client, make_user):
    farmer = make_user("gatefarm", "farmer")
    buyer = make_user("gatebuyer")
    params = {"lat": 1.0, "lng": 1.0}
    assert client.get("/location/nearby/farmers", params=params, headers=farmer.headers).status_code == 403
    assert client.get("/location/nearby/products", params=params, headers=farmer.headers).status_code == 403
    assert client.get("/location/nearby/buyers", params=params, headers=buyer.headers).status_code == 403
    assert client.get("/location/nearby/buyers", params=params, headers=farmer.headers).status_code == 200
    assert client.get("/location/nearby/tractors", params=params, headers=buyer.headers).status_code == 404


def test_nearby_skips_suspended_farmers(client, make_user, session_factory):
    farmer = make_user("suspfarm", "farmer")
    _set_location(client, farmer, -15.0, -47.9)
    with session_factory() as db:
        db.get(User, farmer.id).status = "suspended"
        db.commit()
    buyer = make_user("suspbuyer")
    rows = client.get(
        "/location/nearby/farmers", params={"lat": -15.0, "lng": -47.9}, headers=buyer.headers
    ).json()
    assert farmer.id not in _ids(rows)


def test_nearby_products_filters_by_category(client, make_user, make_listing):
    farmer = make_user("prodfarm", "farmer")
    fruit = make_listing(farmer.id, -45.0, 170.01, category="fruits")
    veg = make_listing(farmer.id, -45.0, 170.02, category="vegetables")
    sold_out = make_listing(farmer.id, -45.0, 170.01, quantity=0, category="fruits")
    buyer = make_user("prodbuyer")
    params = {"lat": -45.0, "lng": 170.0, "radiusKm": 5}

    rows = client.get("/location/nearby/products", params=params, headers=buyer.headers).json()
    ids = _ids(rows)
    assert fruit in ids and veg in ids
    assert sold_out not in ids
    assert rows[0]["price"] == 2.5

    rows = client.get(
        "/location/nearby/products", params={**params, "category": "fruits"}, headers=buyer.headers
    ).json()
    ids = _ids(rows)
    assert fruit in ids
    assert veg not in ids


def test_nearby_across_antimeridian(client, make_user):
    farmer = make_user("datefarm", "farmer")
    _set_location(client, farmer, -17.0, -179.98)
    buyer = make_user("datebuyer")
    rows = client.get(
        "/location/nearby/farmers",
        params={"lat": -17.0, "lng": 179.98, "radiusKm": 10},
        headers=buyer.headers,
    ).json()
    assert farmer.id in _ids(rows)


def test_user_location(client, make_user):
    farmer = make_user("lookup", "farmer")
    _set_location(client, farmer, 5.0, 5.0)
    buyer = make_user("looker")
    r = client.get(f"/location/user/{farmer.id}", headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["role"] == "farmer"
    assert r.json()["location"]["lat"] == 5.0
    assert client.get("/location/user/999999", headers=buyer.headers).status_code == 404


def test_geo_backfill_after_resolution_change(client, make_user, session_factory, monkeypatch):
    admin = make_user("geoadmin", "admin")
    farmer = make_user("backfill", "farmer")
    _set_location(client, farmer, 12.345, 56.785)

    monkeypatch.setattr(settings, "geo_cell_res", 100)
    r = client.post("/admin/geo/backfill", headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["updated"] >= 1
    with session_factory() as db:
        assert db.get(User, farmer.id).geo_cell == "1234:5678"

    monkeypatch.undo()
    client.post("/admin/geo/backfill", headers=admin.headers)
    with session_factory() as db:
        assert db.get(User, farmer.id).geo_cell == "123:567"

    buyer = make_user("plainuser")
    assert client.post("/admin/geo/backfill", headers=buyer.headers).status_code == 403
