import pytest

from schoolbooks.models import Cart, ProductStatus, Wishlist


@pytest.fixture(params=[("/carts", Cart, "cart"), ("/wishlist", Wishlist, "wishlist")],
                ids=["cart", "wishlist"])
def lst(request):
    return request.param


def test_add_list_count_and_remove(client, auth_headers, buyer, product, lst):
    prefix, model, label = lst
    h = auth_headers(buyer)

    r = client.post(f"{prefix}/add-product", json={"product_id": product.id}, headers=h)
    assert r.status_code == 201
    item = r.get_json()
    assert item["product"]["name"] == "Linear Algebra"
    if model is Cart:
        assert item["quantity"] == 1

    assert client.get(f"{prefix}/count", headers=h).get_json() == {"count": 1}
    assert [i["product_id"] for i in client.get(prefix, headers=h).get_json()] == [product.id]

    r = client.delete(f"{prefix}/remove-product/{product.id}", headers=h)
    assert r.status_code == 200
    assert r.get_json()["message"] == f"Product removed from {label} successfully"
    assert model.query.count() == 0

    r = client.delete(f"{prefix}/remove-product/{product.id}", headers=h)
    assert r.status_code == 404


def test_same_product_only_once(client, auth_headers, buyer, product, lst):
    prefix, model, label = lst
    h = auth_headers(buyer)
    client.post(f"{prefix}/add-product", json={"product_id": product.id}, headers=h)
    r = client.post(f"{prefix}/add-product", json={"product_id": product.id}, headers=h)
    assert r.status_code == 400
    assert r.get_json()["error"] == f"Product is already in your {label}"
    assert model.query.count() == 1


def test_own_and_unavailable_products_are_refused(client, auth_headers, seller, buyer, product,
                                                  make_product, lst):
    prefix, _, label = lst
    r = client.post(f"{prefix}/add-product", json={"product_id": product.id}, headers=auth_headers(seller))
    assert r.status_code == 400
    assert r.get_json()["error"] == f"You cannot add your own product to {label}"

    sold = make_product(seller, name="Sold", status=ProductStatus.SOLD)
    r = client.post(f"{prefix}/add-product", json={"product_id": sold.id}, headers=auth_headers(buyer))
    assert r.status_code == 400

    r = client.post(f"{prefix}/add-product", json={"product_id": 999}, headers=auth_headers(buyer))
    assert r.status_code == 404


def test_items_of_other_users_look_missing(client, auth_headers, buyer, product, make_user, lst):
    prefix, _, _ = lst
    item_id = client.post(f"{prefix}/add-product", json={"product_id": product.id},
                          headers=auth_headers(buyer)).get_json()["id"]
    other = make_user(email="other@example.com")
    assert client.get(f"{prefix}/{item_id}", headers=auth_headers(other)).status_code == 404
    assert client.delete(f"{prefix}/{item_id}", headers=auth_headers(other)).status_code == 404
    assert client.get(f"{prefix}/{item_id}", headers=auth_headers(buyer)).status_code == 200


def test_clear(client, auth_headers, buyer, seller, make_product, lst):
    prefix, model, _ = lst
    h = auth_headers(buyer)
    for name in ("A", "B", "C"):
        p = make_product(seller, name=name)
        client.post(f"{prefix}/add-product", json={"product_id": p.id}, headers=h)
    assert client.get(f"{prefix}/count", headers=h).get_json()["count"] == 3

    assert client.delete(f"{prefix}/clear", headers=h).status_code == 200
    assert model.query.filter_by(user_id=buyer.id).count() == 0


def test_missing_product_id_is_a_validation_error(client, auth_headers, buyer, lst):
    prefix, _, _ = lst
    r = client.post(f"{prefix}/add-product", json={}, headers=auth_headers(buyer))
    assert r.status_code == 422
    assert "product_id" in r.get_json()["errors"]
