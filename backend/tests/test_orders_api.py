import os

from bson import ObjectId

from factories import logo_upload, order_form, order_json


def post_order_form(client, headers, form):
    return client.post(
        "/api/v1/orders", data=form, headers=headers, content_type="multipart/form-data"
    )


def create_json_order(client, headers, product):
    response = client.post("/api/v1/orders", json=order_json(product["_id"]), headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]["order"]


def test_create_order_with_logo_end_to_end(client, auth_headers, customer, product, public_root):
    form = order_form(product["_id"], **{"cardDesign[includePrintedLogo]": "true"})
    form["companyLogo"] = logo_upload()

    response = post_order_form(client, auth_headers(customer), form)

    assert response.status_code == 201
    body = response.get_json()
    order = body["data"]["order"]
    assert body["status"] == "success"
    assert "created successfully" in body["message"]
    assert order["total"] == 25.0
    assert order["logoSurcharge"] == 5.0
    assert order["status"] == "pending"
    assert order["cardDesign"]["color"] == "black"
    assert order["cardDesign"]["includePrintedLogo"] is True
    assert order["deliveryInfo"]["useSameContact"] is True
    assert order["personalInfo"]["phoneNumbers"] == ["+962700000000"]
    assert order["customer"]["id"] == str(customer["_id"])
    assert order["product"]["id"] == str(product["_id"])

    logo_path = order["cardDesign"]["companyLogo"]
    assert logo_path.startswith("/uploads/companyLogo/logo-")
    assert os.path.exists(public_root / logo_path.lstrip("/"))


def test_failed_create_removes_uploaded_logo(client, auth_headers, customer, product, public_root):
    form = order_form(
        product["_id"],
        **{"cardDesign[includePrintedLogo]": "true", "deliveryInfo[city]": "London"},
    )
    form["companyLogo"] = logo_upload()

    response = post_order_form(client, auth_headers(customer), form)

    assert response.status_code == 400
    assert response.get_json() == {
        "status": "fail",
        "message": (
            "Invalid city 'London' for country 'JO'. "
            "Valid cities are: Amman, Irbid, Zarqa, Aqaba, Salt"
        ),
    }
    assert os.listdir(public_root / "uploads" / "companyLogo") == []


def test_create_order_rejects_unknown_fields(client, auth_headers, customer, product):
    form = order_form(product["_id"], **{"cardDesign[font]": "serif"})

    response = post_order_form(client, auth_headers(customer), form)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Unrecognized field 'cardDesign.font'"


def test_create_order_rejects_unexpected_file_fields(client, auth_headers, customer, product):
    form = order_form(product["_id"])
    form["avatar"] = logo_upload("me.png")

    response = post_order_form(client, auth_headers(customer), form)

    assert response.status_code == 400
    assert response.get_json()["message"] == "Unexpected file field 'avatar'"


def test_create_order_missing_or_unknown_product(client, auth_headers, customer):
    payload = order_json(ObjectId())
    payload.pop("product")
    response = client.post("/api/v1/orders", json=payload, headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.get_json()["message"] == "Product ID is required"

    response = client.post(
        "/api/v1/orders", json=order_json(ObjectId()), headers=auth_headers(customer)
    )
    assert response.status_code == 404
    assert response.get_json()["message"] == "Product not found"


def test_orders_require_authentication(client):
    response = client.get("/api/v1/orders/my-orders")

    assert response.status_code == 401
    assert response.get_json()["status"] == "fail"


def test_status_transition_to_confirmed(client, auth_headers, admin, customer, product, mongo_db):
    order = create_json_order(client, auth_headers(customer), product)

    response = client.patch(
        f"/api/v1/orders/{order['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Order confirmed! Your NFC card will be printed soon."
    assert body["data"]["summary"]["status"] == "confirmed"
    stored = mongo_db.orders.find_one({"_id": ObjectId(order["id"])})
    assert stored["status"] == "confirmed"
    assert stored["confirmedAt"] is not None


def test_status_transition_rules(client, auth_headers, admin, customer, product):
    order = create_json_order(client, auth_headers(customer), product)
    url = f"/api/v1/orders/{order['id']}/status"

    response = client.patch(url, json={"status": "confirmed"}, headers=auth_headers(customer))
    assert response.status_code == 403

    response = client.patch(url, json={"status": "shipped"}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.get_json()["message"] == "Cannot change order status from 'pending' to 'shipped'"


def test_non_admin_cannot_read_other_customer_orders(
    client, auth_headers, customer, other_customer, product
):
    create_json_order(client, auth_headers(customer), product)

    response = client.get(
        f"/api/v1/orders/customer/{customer['_id']}", headers=auth_headers(other_customer)
    )
    assert response.status_code == 403
    assert response.get_json()["message"] == "You can only access your own orders"

    response = client.get(
        f"/api/v1/orders/customer/{customer['_id']}", headers=auth_headers(customer)
    )
    assert response.status_code == 200
    assert response.get_json()["results"] == 1


def test_get_order_is_owner_or_admin(client, auth_headers, customer, other_customer, admin, product):
    order = create_json_order(client, auth_headers(customer), product)
    url = f"/api/v1/orders/{order['id']}"

    assert client.get(url, headers=auth_headers(other_customer)).status_code == 403
    assert client.get(url, headers=auth_headers(admin)).status_code == 200

    response = client.get(url, headers=auth_headers(customer))
    assert response.get_json()["data"]["order"]["id"] == order["id"]


def test_update_order(client, auth_headers, customer, product):
    order = create_json_order(client, auth_headers(customer), product)
    url = f"/api/v1/orders/{order['id']}"

    response = client.patch(url, json={}, headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.get_json()["message"] == "No valid fields provided for update"

    response = client.patch(
        url,
        data={"cardDesign[includePrintedLogo]": "true", "companyLogo": logo_upload()},
        headers=auth_headers(customer),
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Order updated successfully"
    assert body["data"]["order"]["total"] == 25.0
    assert body["data"]["order"]["cardDesign"]["companyLogo"].startswith("/uploads/companyLogo/")
    assert body["data"]["order"]["deliveryInfo"]["city"] == "London"


def test_order_listing(client, auth_headers, customer, other_customer, admin, product):
    create_json_order(client, auth_headers(customer), product)
    create_json_order(client, auth_headers(other_customer), product)

    response = client.get("/api/v1/orders/my-orders", headers=auth_headers(customer))
    assert response.get_json()["results"] == 1

    assert client.get("/api/v1/orders", headers=auth_headers(customer)).status_code == 403

    response = client.get("/api/v1/orders?limit=1", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.get_json()["results"] == 1


def test_delete_order_removes_logo(client, auth_headers, customer, admin, product, public_root, mongo_db):
    form = order_form(product["_id"], **{"cardDesign[includePrintedLogo]": "true"})
    form["companyLogo"] = logo_upload()
    order = post_order_form(client, auth_headers(customer), form).get_json()["data"]["order"]
    logo_file = public_root / order["cardDesign"]["companyLogo"].lstrip("/")

    response = client.delete(f"/api/v1/orders/{order['id']}", headers=auth_headers(customer))
    assert response.status_code == 403

    response = client.delete(f"/api/v1/orders/{order['id']}", headers=auth_headers(admin))
    assert response.status_code == 204
    assert mongo_db.orders.count_documents({}) == 0
    assert not logo_file.exists()

    response = client.delete(f"/api/v1/orders/{order['id']}", headers=auth_headers(admin))
    assert response.status_code == 404


def test_delivery_options(client):
    response = client.get("/api/v1/orders/delivery-options")

    countries = response.get_json()["data"]["countries"]
    assert [country["code"] for country in countries] == ["JO", "UK"]
    assert "Manchester" in countries[1]["cities"]


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.get_json()["status"] == "fail"


def test_health_and_uploaded_files_are_served(client, auth_headers, customer, product):
    assert client.get("/health").get_json() == {"status": "ok"}

    form = order_form(product["_id"], **{"cardDesign[includePrintedLogo]": "true"})
    form["companyLogo"] = logo_upload()
    order = post_order_form(client, auth_headers(customer), form).get_json()["data"]["order"]

    response = client.get(order["cardDesign"]["companyLogo"])
    assert response.status_code == 200
    assert response.data == b"\x89PNG fake image bytes"
    response.close()


def place_logo_order(client, headers, product, filename="logo.png"):
    form = order_form(product["_id"], **{"cardDesign[includePrintedLogo]": "true"})
    form["companyLogo"] = logo_upload(filename)
    response = post_order_form(client, headers, form)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]["order"]


def test_form_flag_other_than_true_or_false_is_rejected(client, auth_headers, customer, product):
    form = order_form(product["_id"], **{"cardDesign[includePrintedLogo]": "yes"})

    response = post_order_form(client, auth_headers(customer), form)

    assert response.status_code == 400
    assert response.get_json()["message"].startswith(
        "Invalid value for 'cardDesign.includePrintedLogo'"
    )


def test_deleting_order_keeps_logo_shared_with_another_order(
    client, auth_headers, customer, other_customer, admin, product, public_root
):
    owner_order = place_logo_order(client, auth_headers(customer), product)
    shared_logo = owner_order["cardDesign"]["companyLogo"]
    logo_file = public_root / shared_logo.lstrip("/")

    borrowing = client.post(
        "/api/v1/orders",
        json=order_json(
            product["_id"], cardDesign={"includePrintedLogo": True, "companyLogo": shared_logo}
        ),
        headers=auth_headers(other_customer),
    ).get_json()["data"]["order"]

    response = client.delete(f"/api/v1/orders/{borrowing['id']}", headers=auth_headers(admin))
    assert response.status_code == 204
    assert logo_file.exists()

    response = client.delete(f"/api/v1/orders/{owner_order['id']}", headers=auth_headers(admin))
    assert response.status_code == 204
    assert not logo_file.exists()


def test_replacing_logo_removes_previous_file(client, auth_headers, customer, product, public_root):
    order = place_logo_order(client, auth_headers(customer), product)
    old_logo = public_root / order["cardDesign"]["companyLogo"].lstrip("/")

    response = client.patch(
        f"/api/v1/orders/{order['id']}",
        data={"companyLogo": logo_upload("new.png")},
        headers=auth_headers(customer),
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    new_logo = response.get_json()["data"]["order"]["cardDesign"]["companyLogo"]
    assert new_logo.startswith("/uploads/companyLogo/new-")
    assert (public_root / new_logo.lstrip("/")).exists()
    assert not old_logo.exists()


def test_replacing_shared_logo_keeps_it_for_the_other_order(
    client, auth_headers, customer, other_customer, product, public_root
):
    owner_order = place_logo_order(client, auth_headers(customer), product)
    shared_logo = owner_order["cardDesign"]["companyLogo"]
    borrowing = client.post(
        "/api/v1/orders",
        json=order_json(
            product["_id"], cardDesign={"includePrintedLogo": True, "companyLogo": shared_logo}
        ),
        headers=auth_headers(other_customer),
    ).get_json()["data"]["order"]

    response = client.patch(
        f"/api/v1/orders/{borrowing['id']}",
        data={"companyLogo": logo_upload("mine.png")},
        headers=auth_headers(other_customer),
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert (public_root / shared_logo.lstrip("/")).exists()


def test_update_with_only_server_owned_fields_is_rejected(client, auth_headers, customer, product):
    order = create_json_order(client, auth_headers(customer), product)

    response = client.patch(
        f"/api/v1/orders/{order['id']}", json={"status": "shipped"}, headers=auth_headers(customer)
    )

    assert response.status_code == 400
    assert response.get_json()["message"] == "Unrecognized field 'status'"
