from uuid import uuid4


async def _place(client, headers, items, address="Main st. 1"):
    return await client.post(
        "/orders/",
        json={"items": items, "delivery_address": address},
        headers=headers,
    )


async def test_place_order(client, catalog, stock_of, user_headers, user_id):
    resp = await _place(client, user_headers, [{"product_id": str(catalog.apple.id), "quantity": 3}])

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["user_id"] == str(user_id)
    assert float(body["total_amount"]) == 300.0
    assert body["items"][0]["product_name"] == "Apple"
    assert await stock_of(catalog.apple.id) == 2


async def test_place_order_requires_token(client, catalog):
    resp = await client.post(
        "/orders/",
        json={"items": [{"product_id": str(catalog.apple.id), "quantity": 1}], "delivery_address": "x"},
    )
    assert resp.status_code in (401, 403)


async def test_place_order_with_bad_token(client, catalog):
    resp = await _place(
        client,
        {"Authorization": "Bearer not-a-jwt"},
        [{"product_id": str(catalog.apple.id), "quantity": 1}],
    )
    assert resp.status_code == 401


async def test_empty_cart(client, catalog, user_headers):
    resp = await _place(client, user_headers, [])
    assert resp.status_code == 400


async def test_non_positive_quantity_is_rejected(client, catalog, user_headers):
    resp = await _place(client, user_headers, [{"product_id": str(catalog.apple.id), "quantity": 0}])
    assert resp.status_code == 422


async def test_insufficient_stock(client, catalog, stock_of, user_headers):
    resp = await _place(
        client,
        user_headers,
        [
            {"product_id": str(catalog.apple.id), "quantity": 3},
            {"product_id": str(catalog.lemon.id), "quantity": 100},
        ],
    )

    assert resp.status_code == 409
    assert str(catalog.lemon.id) in resp.json()["detail"]
    assert await stock_of(catalog.apple.id) == 5


async def test_unavailable_product(client, catalog, user_headers):
    resp = await _place(client, user_headers, [{"product_id": str(catalog.pear.id), "quantity": 1}])
    assert resp.status_code == 404


async def test_list_and_get_own_orders(client, catalog, user_headers):
    created = (await _place(client, user_headers, [{"product_id": str(catalog.lemon.id), "quantity": 1}])).json()

    listed = await client.get("/orders/", headers=user_headers)
    assert listed.status_code == 200
    assert [o["id"] for o in listed.json()] == [created["id"]]

    detail = await client.get(f"/orders/{created['id']}", headers=user_headers)
    assert detail.status_code == 200
    assert detail.json()["items"][0]["quantity"] == 1


async def test_other_users_order_is_not_found(client, catalog, user_headers, token_for):
    created = (await _place(client, user_headers, [{"product_id": str(catalog.lemon.id), "quantity": 1}])).json()
    stranger = {"Authorization": f"Bearer {token_for(uuid4())}"}

    resp = await client.get(f"/orders/{created['id']}", headers=stranger)
    assert resp.status_code == 404


async def test_admin_order_flow(client, catalog, stock_of, user_headers, admin_headers):
    created = (await _place(client, user_headers, [{"product_id": str(catalog.apple.id), "quantity": 3}])).json()

    everything = await client.get("/admin/orders/", headers=admin_headers)
    assert everything.status_code == 200
    assert [o["id"] for o in everything.json()] == [created["id"]]

    detail = await client.get(f"/orders/{created['id']}", headers=admin_headers)
    assert detail.status_code == 200

    resp = await client.patch(
        f"/admin/orders/{created['id']}/status",
        json={"status": "cancelled"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert await stock_of(catalog.apple.id) == 5

    again = await client.patch(
        f"/admin/orders/{created['id']}/status",
        json={"status": "cancelled"},
        headers=admin_headers,
    )
    assert again.status_code == 200
    assert await stock_of(catalog.apple.id) == 5


async def test_admin_routes_require_admin(client, catalog, user_headers):
    created = (await _place(client, user_headers, [{"product_id": str(catalog.apple.id), "quantity": 1}])).json()

    assert (await client.get("/admin/orders/", headers=user_headers)).status_code == 403
    resp = await client.patch(
        f"/admin/orders/{created['id']}/status",
        json={"status": "cancelled"},
        headers=user_headers,
    )
    assert resp.status_code == 403


async def test_invalid_status_values(client, catalog, user_headers, admin_headers):
    created = (await _place(client, user_headers, [{"product_id": str(catalog.apple.id), "quantity": 1}])).json()
    url = f"/admin/orders/{created['id']}/status"

    assert (await client.patch(url, json={"status": "bogus"}, headers=admin_headers)).status_code == 400
    assert (await client.patch(url, json={"status": "delivered"}, headers=admin_headers)).status_code == 200
    assert (await client.patch(url, json={"status": "cancelled"}, headers=admin_headers)).status_code == 409


async def test_status_of_unknown_order(client, admin_headers):
    resp = await client.patch(f"/admin/orders/{uuid4()}/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 404


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "up", "kafka": False}
