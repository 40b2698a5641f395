from schoolbooks.models import SavedSearch


def test_store_defaults_name_to_query(client, auth_headers, buyer):
    h = auth_headers(buyer)
    r = client.post("/saved-searches", json={"search_query": "calculus"}, headers=h)
    assert r.status_code == 201
    assert r.get_json()["search_name"] == "calculus"

    r = client.post("/saved-searches", json={"search_query": "physics", "search_name": "Physics books"},
                    headers=h)
    assert r.get_json()["search_name"] == "Physics books"
    assert client.get("/saved-searches/count", headers=h).get_json() == {"count": 2}
    assert [s["search_query"] for s in client.get("/saved-searches", headers=h).get_json()] == [
        "physics", "calculus",
    ]


def test_same_query_is_saved_once_per_user(client, auth_headers, buyer, seller):
    h = auth_headers(buyer)
    client.post("/saved-searches", json={"search_query": "calculus"}, headers=h)
    r = client.post("/saved-searches", json={"search_query": "calculus"}, headers=h)
    assert r.status_code == 400
    assert r.get_json()["error"] == "This search is already saved"

    # another user may save the same query
    r = client.post("/saved-searches", json={"search_query": "calculus"}, headers=auth_headers(seller))
    assert r.status_code == 201


def test_validation(client, auth_headers, buyer):
    r = client.post("/saved-searches", json={"search_name": 5}, headers=auth_headers(buyer))
    assert r.status_code == 422
    assert set(r.get_json()["errors"]) == {"search_query", "search_name"}


def test_rename_and_delete(client, auth_headers, buyer):
    h = auth_headers(buyer)
    sid = client.post("/saved-searches", json={"search_query": "maths"}, headers=h).get_json()["id"]

    r = client.put(f"/saved-searches/{sid}", json={"search_name": "Maths"}, headers=h)
    assert r.get_json()["search_name"] == "Maths"
    assert client.put(f"/saved-searches/{sid}", json={}, headers=h).status_code == 422

    assert client.delete(f"/saved-searches/{sid}", headers=h).status_code == 200
    assert client.get(f"/saved-searches/{sid}", headers=h).status_code == 404


def test_foreign_searches_look_missing(client, auth_headers, buyer, seller):
    sid = client.post("/saved-searches", json={"search_query": "maths"},
                      headers=auth_headers(buyer)).get_json()["id"]
    h = auth_headers(seller)
    r = client.get(f"/saved-searches/{sid}", headers=h)
    assert r.status_code == 404
    assert r.get_json()["error"] == "Saved search not found"
    assert client.delete(f"/saved-searches/{sid}", headers=h).status_code == 404


def test_clear_all_only_touches_own(client, auth_headers, buyer, seller):
    for q in ("a", "b"):
        client.post("/saved-searches", json={"search_query": q}, headers=auth_headers(buyer))
    client.post("/saved-searches", json={"search_query": "a"}, headers=auth_headers(seller))

    assert client.delete("/saved-searches/clear/all", headers=auth_headers(buyer)).status_code == 200
    assert SavedSearch.query.filter_by(user_id=buyer.id).count() == 0
    assert SavedSearch.query.filter_by(user_id=seller.id).count() == 1
