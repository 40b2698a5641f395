import pytest

from schoolbooks.models import City


def test_seeded_reference_data_is_public(client):
    tiers = client.get("/tiers").get_json()
    assert [t["name"] for t in tiers] == ["Free", "Premium", "Premium +"]
    assert [t["max_listings"] for t in tiers] == [0, 20, 50]

    states = client.get("/states").get_json()
    assert [s["name"] for s in states] == ["Good", "Very Good", "Excellent"]


@pytest.mark.parametrize("plural", ["cities", "states", "tiers"])
def test_all_map_is_keyed_by_string_id(client, plural):
    body = client.get(f"/all-{plural}").get_json()
    rows = client.get(f"/{plural}").get_json()
    assert body == {str(r["id"]): r["name"] for r in rows}


def test_categories_have_no_all_map(client):
    assert client.get("/all-categories").status_code == 404


def test_writes_need_a_token(client):
    assert client.post("/cities", json={"name": "Bihac"}).status_code == 401


def test_city_crud(client, auth_headers, buyer):
    h = auth_headers(buyer)
    r = client.post("/cities", json={"name": "Bihac"}, headers=h)
    assert r.status_code == 201
    cid = r.get_json()["id"]

    r = client.post("/cities", json={"name": "Bihac"}, headers=h)
    assert r.status_code == 422
    assert r.get_json()["errors"]["name"] == ["The name has already been taken."]

    # renaming to its own name is not a clash
    assert client.put(f"/cities/{cid}", json={"name": "Bihac"}, headers=h).status_code == 200
    assert client.put(f"/cities/{cid}", json={"name": "Bihać"}, headers=h).get_json()["name"] == "Bihać"

    assert client.delete(f"/cities/{cid}", headers=h).status_code == 204
    assert City.query.filter_by(id=cid).first() is None
    assert client.get(f"/cities/{cid}").status_code == 404


def test_categories_allow_duplicate_names(client, auth_headers, buyer):
    h = auth_headers(buyer)
    assert client.post("/categories", json={"name": "University", "description": "again"},
                       headers=h).status_code == 201


def test_tiers_are_read_only(client, auth_headers, buyer):
    h = auth_headers(buyer)
    assert client.post("/tiers", json={"name": "Gold"}, headers=h).status_code == 405
    assert client.delete("/tiers/1", headers=h).status_code == 405


def test_name_is_required(client, auth_headers, buyer):
    r = client.post("/states", json={"description": "Torn"}, headers=auth_headers(buyer))
    assert r.status_code == 422
