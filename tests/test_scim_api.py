"""HTTP-level tests for the SCIM 2.0 users endpoints (authentication skipped)."""
import json

import pytest

from tests.conftest import scim_user_payload

SCIM_JSON = "application/scim+json"


def post_user(client, payload, path="/scim/v2/users", **headers):
    return client.post(path, data=json.dumps(payload), content_type=SCIM_JSON, headers=headers)


def test_list_users_response_shape(client, three_users):
    response = client.get("/scim/v2/users")
    assert response.status_code == 200
    assert response.mimetype == SCIM_JSON

    body = response.get_json()
    assert body["schemas"] == ["urn:ietf:params:scim:api:messages:2.0:ListResponse"]
    assert body["totalResults"] == 3
    assert body["startIndex"] == 1
    assert body["itemsPerPage"] == 100
    assert len(body["Resources"]) == 3


def test_list_users_pagination(client, three_users):
    body = client.get("/scim/v2/users?startIndex=2&count=1").get_json()
    assert body["totalResults"] == 3
    assert body["startIndex"] == 2
    assert body["itemsPerPage"] == 1
    assert [r["userName"] for r in body["Resources"]] == ["dslem@fake.domain"]


def test_list_users_filter(client, three_users):
    response = client.get("/scim/v2/users", query_string={"filter": 'userName eq "dslem@fake.domain"'})
    body = response.get_json()
    assert body["totalResults"] == 1
    assert body["Resources"][0]["displayName"] == "Dan Slem"


def test_list_users_non_numeric_paging_uses_defaults(client, three_users):
    body = client.get("/scim/v2/users?startIndex=abc&count=xyz").get_json()
    assert body["startIndex"] == 1
    assert body["itemsPerPage"] == 100


def test_uppercase_users_alias(client, three_users):
    assert client.get("/scim/v2/Users").get_json()["totalResults"] == 3


def test_get_user(client, three_users):
    micky = three_users[0]
    response = client.get(f"/scim/v2/users/{micky.id}")
    assert response.status_code == 200
    assert response.get_json()["userName"] == "mdaldo@fake.domain"


def test_get_unknown_user_returns_scim_404(client):
    response = client.get("/scim/v2/users/999")
    assert response.status_code == 404
    assert response.mimetype == SCIM_JSON
    body = response.get_json()
    assert body["schemas"] == ["urn:ietf:params:scim:api:messages:2.0:Error"]
    assert body["status"] == 404
    assert body["detail"] == "Resource Not Found"


def test_create_user_returns_201_with_location(client):
    payload = scim_user_payload(
        "alice@example.com",
        given="Alice",
        family="Smith",
        emails=[{"value": "alice@example.com", "type": "work", "primary": True}],
    )
    response = post_user(client, payload)

    assert response.status_code == 201
    body = response.get_json()
    assert body["userName"] == "alice@example.com"
    assert response.headers["Location"] == f"http://localhost/scim/v2/users/{body['id']}"

    fetched = client.get(f"/scim/v2/users/{body['id']}").get_json()
    assert fetched == body


def test_create_accepts_plain_json(client):
    response = client.post("/scim/v2/Users", json=scim_user_payload("bob"))
    assert response.status_code == 201


def test_create_duplicate_returns_409(client, three_users):
    response = post_user(client, scim_user_payload("smahesh@fake.domain"))
    assert response.status_code == 409
    body = response.get_json()
    assert body["scimType"] == "uniqueness"
    assert client.get("/scim/v2/users").get_json()["totalResults"] == 3


def test_create_rejects_wrong_content_type(client):
    response = client.post(
        "/scim/v2/users",
        data=json.dumps(scim_user_payload("carol")),
        content_type="text/plain",
    )
    assert response.status_code == 415
    assert response.get_json()["scimType"] == "invalidSyntax"


def test_create_rejects_invalid_json(client):
    response = client.post("/scim/v2/users", data="{not json", content_type=SCIM_JSON)
    assert response.status_code == 400
    assert response.get_json()["scimType"] == "invalidSyntax"


def test_create_rejects_oversized_payload(client):
    payload = scim_user_payload("big", displayName="x" * 70000)
    response = post_user(client, payload)
    assert response.status_code == 413
    assert response.get_json()["status"] == 413


def test_replace_user(client, three_users):
    micky = three_users[0]
    payload = scim_user_payload(
        "mdaldo@fake.domain",
        given="Micky",
        family="Daldo",
        emails=[{"type": "work", "value": "mdaldo@fake.domain", "primary": True}],
    )
    response = client.put(f"/scim/v2/users/{micky.id}", data=json.dumps(payload), content_type=SCIM_JSON)

    assert response.status_code == 200
    assert [e["value"] for e in response.get_json()["emails"]] == ["mdaldo@fake.domain"]


def test_replace_unknown_user_returns_404(client):
    response = client.put("/scim/v2/Users/77", data=json.dumps(scim_user_payload("x")), content_type=SCIM_JSON)
    assert response.status_code == 404


def test_patch_user_deactivates(client, three_users):
    dan = three_users[1]
    response = client.patch(
        f"/scim/v2/Users/{dan.id}",
        data=json.dumps({"Operations": [{"op": "replace", "value": {"active": False}}]}),
        content_type=SCIM_JSON,
    )
    assert response.status_code == 200
    assert response.get_json()["active"] is False
    assert client.get(f"/scim/v2/users/{dan.id}").get_json()["active"] is False


def test_patch_malformed_returns_400(client, three_users):
    dan = three_users[1]
    response = client.patch(
        f"/scim/v2/users/{dan.id}",
        data=json.dumps({"Operations": "nope"}),
        content_type=SCIM_JSON,
    )
    assert response.status_code == 400


def test_patch_replace_with_null_value_returns_400(client, three_users):
    dan = three_users[1]
    response = client.patch(
        f"/scim/v2/users/{dan.id}",
        data=json.dumps({"Operations": [{"op": "replace", "value": None}]}),
        content_type=SCIM_JSON,
    )
    assert response.status_code == 400
    assert response.get_json()["scimType"] == "invalidValue"
    assert client.get(f"/scim/v2/users/{dan.id}").get_json()["active"] is True


def test_delete_is_not_supported(client, three_users):
    response = client.delete(f"/scim/v2/users/{three_users[0].id}")
    assert response.status_code == 405
    assert response.get_json()["status"] == 405


def test_correlation_id_is_echoed(client):
    response = client.get("/scim/v2/users", headers={"X-Correlation-Id": "abc-123"})
    assert response.headers["X-Correlation-Id"] == "abc-123"


@pytest.mark.parametrize("path", ["/scim/v2/ServiceProviderConfig", "/scim/v2/ResourceTypes", "/scim/v2/Schemas"])
def test_discovery_endpoints(client, path):
    response = client.get(path)
    assert response.status_code == 200
    assert response.mimetype == SCIM_JSON
    assert response.get_json()["schemas"]


def test_unknown_scim_path_returns_scim_404(client):
    response = client.get("/scim/v2/Groups")
    assert response.status_code == 404
    assert response.get_json()["detail"] == "Resource Not Found"
