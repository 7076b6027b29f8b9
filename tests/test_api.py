"""HTTP surface of the catalogue, exercised through FastAPI's TestClient."""
from conftest import composition_payload

API = "/api/v1"


def add_composition(client, headers, **overrides) -> dict:
    response = client.post(f"{API}/compositions/", json=composition_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_requests_without_token_are_unauthorized(client):
    assert client.post(f"{API}/compositions/", json=composition_payload()).status_code == 401
    bad = {"Authorization": "Bearer not.a.token"}
    assert client.post(f"{API}/comments/", json={"composition_id": 1, "content": "x"}, headers=bad).status_code == 401


def test_login_returns_a_usable_token(client, accounts):
    response = client.post(f"{API}/users/login", json={"email": "alice@example.com", "password": "secret"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["id"] == accounts["alice"]["id"]
    assert me.json()["role_id"] == 3

    wrong = client.post(f"{API}/users/login", json={"email": "alice@example.com", "password": "nope"})
    assert wrong.status_code == 401


def test_duplicate_registration_is_rejected(client, accounts):
    response = client.post(f"{API}/users/", json={"email": "alice@example.com", "password": "again"})
    assert response.status_code == 400


def test_composition_records_the_caller_as_adder(client, accounts):
    created = add_composition(client, accounts["alice"]["headers"])

    assert created["adder_id"] == accounts["alice"]["id"]
    assert created["comment_count"] == 0
    fetched = client.get(f"{API}/compositions/{created['id']}").json()
    assert fetched == created
    by_adder = client.get(f"{API}/compositions/adder/{accounts['alice']['id']}").json()
    assert [c["id"] for c in by_adder] == [created["id"]]
    by_difficulty = client.get(f"{API}/compositions/difficulty/2").json()
    assert [c["id"] for c in by_difficulty] == [created["id"]]


def test_invalid_composition_is_a_bad_request(client, accounts):
    response = client.post(
        f"{API}/compositions/",
        json=composition_payload(length_seconds=0),
        headers=accounts["alice"]["headers"],
    )
    assert response.status_code == 400
    assert client.get(f"{API}/compositions/difficulty/2").json() == []


def test_unknown_composition_is_not_found(client):
    assert client.get(f"{API}/compositions/999").status_code == 404


def test_comment_lifecycle_keeps_the_counter(client, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    composition = add_composition(client, alice["headers"])
    url = f"{API}/compositions/{composition['id']}"

    first = client.post(
        f"{API}/comments/", json={"composition_id": composition["id"], "content": "Lovely"}, headers=bob["headers"]
    )
    second = client.post(
        f"{API}/comments/", json={"composition_id": composition["id"], "content": "Agreed"}, headers=alice["headers"]
    )
    assert first.status_code == second.status_code == 201
    assert client.get(url).json()["comment_count"] == 2

    listed = client.get(f"{url}/comments").json()
    assert [c["content"] for c in listed] == ["Lovely", "Agreed"]
    mine = client.get(f"{API}/comments/mine", headers=bob["headers"]).json()
    assert [c["id"] for c in mine] == [first.json()["id"]]
    assert client.get(f"{API}/comments/user/{bob['id']}").json() == mine

    edited = client.put(
        f"{API}/comments/{first.json()['id']}", json={"content": "Lovely piece"}, headers=bob["headers"]
    )
    assert edited.status_code == 200
    assert edited.json()["content"] == "Lovely piece"

    deleted = client.delete(f"{API}/comments/{first.json()['id']}", headers=bob["headers"])
    assert deleted.status_code == 204
    assert client.get(url).json()["comment_count"] == 1
    assert client.get(f"{API}/comments/{first.json()['id']}").status_code == 404


def test_comment_errors_map_to_status_codes(client, accounts):
    alice, bob = accounts["alice"], accounts["bob"]
    composition = add_composition(client, alice["headers"])

    blank = client.post(
        f"{API}/comments/", json={"composition_id": composition["id"], "content": "  "}, headers=bob["headers"]
    )
    assert blank.status_code == 400
    missing = client.post(f"{API}/comments/", json={"composition_id": 999, "content": "Hi"}, headers=bob["headers"])
    assert missing.status_code == 404

    comment = client.post(
        f"{API}/comments/", json={"composition_id": composition["id"], "content": "Mine"}, headers=bob["headers"]
    ).json()
    foreign_edit = client.put(f"{API}/comments/{comment['id']}", json={"content": "Yours"}, headers=alice["headers"])
    assert foreign_edit.status_code == 403
    foreign_delete = client.delete(f"{API}/comments/{comment['id']}", headers=alice["headers"])
    assert foreign_delete.status_code == 403
    assert client.delete(f"{API}/comments/999", headers=bob["headers"]).status_code == 404

    admin_delete = client.delete(f"{API}/comments/{comment['id']}", headers=accounts["admin"]["headers"])
    assert admin_delete.status_code == 204
    assert client.get(f"{API}/compositions/{composition['id']}").json()["comment_count"] == 0


def test_patch_always_answers_with_a_status(client, accounts):
    alice = accounts["alice"]
    composition = add_composition(client, alice["headers"])
    url = f"{API}/compositions/{composition['id']}"

    applied = client.patch(url, json={"field": "pages", "value": "20"}, headers=alice["headers"])
    assert applied.status_code == 200
    assert applied.json()["applied"] is True
    assert applied.json()["status"] == "changedPages"

    rejected = client.patch(url, json={"field": "pages", "value": "21"}, headers=alice["headers"])
    assert rejected.status_code == 200
    assert rejected.json()["reason"] == "validation-failed"

    unknown = client.patch(url, json={"field": "unknownField", "value": "x"}, headers=alice["headers"])
    assert unknown.status_code == 200
    assert unknown.json()["reason"] == "unknown-field"

    assert client.get(url).json()["page_count"] == 20

    foreign = client.patch(url, json={"field": "pages", "value": "5"}, headers=accounts["bob"]["headers"])
    assert foreign.status_code == 403
    missing = client.patch(f"{API}/compositions/999", json={"field": "pages", "value": "5"}, headers=alice["headers"])
    assert missing.status_code == 404


def test_search(client, accounts):
    for title in ["Moonlight", "Sonata", "Moon River"]:
        add_composition(client, accounts["alice"]["headers"], title=title)

    response = client.get(f"{API}/compositions/search", params={"q": "Moon"})
    assert [c["title"] for c in response.json()] == ["Moonlight", "Moon River"]
    assert client.get(f"{API}/compositions/search", params={"q": ""}).status_code == 400
    assert client.get(f"{API}/compositions/search", params={"q": "   "}).status_code == 400


def test_remove_composition_with_comments_conflicts(client, accounts):
    alice = accounts["alice"]
    composition = add_composition(client, alice["headers"])
    url = f"{API}/compositions/{composition['id']}"
    client.post(f"{API}/comments/", json={"composition_id": composition["id"], "content": "Hi"}, headers=alice["headers"])

    assert client.delete(url, headers=accounts["bob"]["headers"]).status_code == 403
    assert client.delete(url, headers=alice["headers"]).status_code == 409
    assert client.get(url).status_code == 200


def test_remove_composition_without_comments(client, accounts):
    alice = accounts["alice"]
    composition = add_composition(client, alice["headers"], title="Arabesque")
    url = f"{API}/compositions/{composition['id']}"

    response = client.delete(url, headers=alice["headers"])

    assert response.status_code == 200
    assert response.json()["title"] == "Arabesque"
    assert client.get(url).status_code == 404


def test_recount_is_admin_only(client, accounts):
    composition = add_composition(client, accounts["alice"]["headers"])
    url = f"{API}/compositions/{composition['id']}/recount"

    assert client.post(url, headers=accounts["alice"]["headers"]).status_code == 403
    response = client.post(url, headers=accounts["admin"]["headers"])
    assert response.json() == {"id": composition["id"], "comment_count": 0}


def test_audit_log_is_super_admin_only(client, accounts):
    add_composition(client, accounts["alice"]["headers"])

    assert client.get(f"{API}/audit/logs", headers=accounts["alice"]["headers"]).status_code == 403
    logs = client.get(
        f"{API}/audit/logs", params={"object_type": "composition"}, headers=accounts["admin"]["headers"]
    ).json()
    assert [(entry["action"], entry["user_id"]) for entry in logs] == [("create", accounts["alice"]["id"])]


def test_patch_with_non_integer_json_values_is_rejected_not_coerced(client, accounts):
    alice = accounts["alice"]
    composition = add_composition(client, alice["headers"], difficulty=2, page_count=14)
    url = f"{API}/compositions/{composition['id']}"

    for field, value in [("diff", True), ("pages", True), ("pages", 2.5), ("diff", None), ("pages", None)]:
        response = client.patch(url, json={"field": field, "value": value}, headers=alice["headers"])
        assert response.status_code == 200, (field, value, response.text)
        assert response.json()["applied"] is False
        assert response.json()["reason"] == "validation-failed"

    stored = client.get(url).json()
    assert (stored["difficulty"], stored["page_count"]) == (2, 14)


def test_create_refuses_booleans_for_integer_fields(client, accounts):
    response = client.post(
        f"{API}/compositions/",
        json=composition_payload(difficulty=True, page_count=True),
        headers=accounts["alice"]["headers"],
    )

    assert response.status_code == 422
    assert client.get(f"{API}/compositions/adder/{accounts['alice']['id']}").json() == []
