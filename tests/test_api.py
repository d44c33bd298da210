"""End-to-end tests through the HTTP surface."""
import dataclasses

import pytest

from fastapi.testclient import TestClient

from app.context import AppContext
from app.main import create_app


def create_wallet(client, headers, wallet):
    response = client.post("/inventory", json=wallet, headers=headers)
    assert response.status_code == 201
    return response.json()["itemId"]


class TestUsers:
    def test_firebase_login_sets_session_cookie(self, client):
        response = client.post("/users/firebase-login", json={"idToken": "token-a", "name": "Alice A."})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Logged in with Firebase"
        assert body["user"]["email"] == "a@x.com"
        assert body["user"]["name"] == "Alice A."

        set_cookie = response.headers["set-cookie"].lower()
        assert "token=" in set_cookie
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie
        assert "max-age=604800" in set_cookie
        assert "secure" not in set_cookie

        profile = client.get("/users/profile")
        assert profile.status_code == 200
        assert profile.json()["email"] == "a@x.com"

    def test_repeat_login_updates_only_supplied_fields(self, client):
        client.post("/users/firebase-login", json={"idToken": "token-b", "name": "Bob"})
        first = client.get("/users/profile").json()
        assert first["photoURL"] == "https://img.example/b.png"

        response = client.post("/users/firebase-login", json={"idToken": "token-b"})
        user = response.json()["user"]
        assert user["id"] == first["id"]
        assert user["name"] == "Bob"
        assert user["photoURL"] == "https://img.example/b.png"

        response = client.post(
            "/users/firebase-login",
            json={"idToken": "token-b", "photoURL": "https://img.example/new.png"},
        )
        assert response.json()["user"]["photoURL"] == "https://img.example/new.png"

    def test_new_user_name_falls_back_to_claim(self, client):
        response = client.post("/users/firebase-login", json={"idToken": "token-c"})
        assert response.json()["user"]["name"] == "Carol"

    def test_login_requires_token(self, client):
        response = client.post("/users/firebase-login", json={})
        assert response.status_code == 400
        assert response.json() == {"message": "No ID token provided"}

    def test_login_with_invalid_token(self, client):
        response = client.post("/users/firebase-login", json={"idToken": "forged"})
        assert response.status_code == 401
        assert response.json() == {"message": "Invalid Firebase ID token"}

    def test_logout_clears_cookie(self, client):
        client.post("/users/firebase-login", json={"idToken": "token-a"})
        response = client.post("/users/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}
        assert client.get("/users/profile").status_code == 401

    def test_profile_requires_credentials(self, client):
        response = client.get("/users/profile")
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, no token"}

    def test_profile_with_bearer(self, client, as_bob):
        response = client.get("/users/profile", headers=as_bob)
        assert response.json()["email"] == "b@x.com"

    def test_tampered_cookie(self, client):
        response = client.get("/users/profile", headers={"Cookie": "token=tampered"})
        assert response.status_code == 401
        assert response.json() == {"message": "Not authorized, token failed"}


class TestInventory:
    def test_create_and_fetch(self, client, as_alice, wallet):
        item_id = create_wallet(client, as_alice, wallet)

        response = client.get(f"/inventory/{item_id}")
        assert response.status_code == 200
        item = response.json()
        assert item["status"] == "not-recovered"
        assert item["contactEmail"] == "a@x.com"
        assert item["postType"] == "lost"

    def test_create_requires_auth(self, client, wallet):
        assert client.post("/inventory", json=wallet).status_code == 401

    @pytest.mark.parametrize("override", [
        {"postType": "stolen"},
        {"title": "   "},
        {"date": "2024-02-30"},
    ])
    def test_create_invalid(self, client, as_alice, wallet, override):
        response = client.post("/inventory", json={**wallet, **override}, headers=as_alice)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request body"}
        assert client.get("/inventory").json() == []

    def test_non_object_body(self, client, as_alice):
        response = client.post("/inventory", json=["not", "an", "object"], headers=as_alice)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request body"}

    def test_get_missing(self, client):
        response = client.get("/inventory/unknown-id")
        assert response.status_code == 404
        assert response.json() == {"message": "Item not found"}

    def test_patch(self, client, as_alice, as_bob, wallet):
        item_id = create_wallet(client, as_alice, wallet)

        forbidden = client.patch(f"/inventory/{item_id}", json={"title": "x"}, headers=as_bob)
        assert forbidden.status_code == 403

        response = client.patch(
            f"/inventory/{item_id}",
            json={"title": "Leather wallet", "status": "recovered"},
            headers=as_alice,
        )
        assert response.json() == {"message": "Item updated successfully", "modifiedCount": 1}

        item = client.get(f"/inventory/{item_id}").json()
        assert item["title"] == "Leather wallet"
        assert item["status"] == "not-recovered"

    def test_patch_cannot_blank_required_text(self, client, as_alice, wallet):
        item_id = create_wallet(client, as_alice, wallet)

        response = client.patch(
            f"/inventory/{item_id}",
            json={"title": "", "thumbnail": "   ", "location": ""},
            headers=as_alice,
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid request body"}

        item = client.get(f"/inventory/{item_id}").json()
        assert item["title"] == "Wallet"
        assert item["thumbnail"] == "u"
        assert item["location"] == "Park"

    def test_list_filters(self, client, as_alice, as_bob, wallet):
        create_wallet(client, as_alice, wallet)
        create_wallet(client, as_bob, {**wallet, "postType": "found", "title": "Keys"})

        assert len(client.get("/inventory").json()) == 2
        found = client.get("/inventory", params={"type": "found"}).json()
        assert [item["title"] for item in found] == ["Keys"]
        assert client.get("/inventory", params={"search": "KEY"}).json()[0]["title"] == "Keys"

    def test_my_items(self, client, as_alice, as_bob, wallet):
        create_wallet(client, as_alice, wallet)

        missing = client.get("/my-items", headers=as_bob)
        assert missing.status_code == 400
        assert missing.json() == {"message": "Email is required"}

        response = client.get("/my-items", params={"email": "a@x.com"}, headers=as_bob)
        body = response.json()
        assert body["emailUsed"] == "a@x.com"
        assert body["itemsFound"] == 1
        assert body["items"][0]["title"] == "Wallet"


class TestRecoveryFlow:
    def test_recover_then_delete(self, client, as_alice, as_bob, wallet):
        item_id = create_wallet(client, as_alice, wallet)

        own = client.post(
            f"/inventory/{item_id}/recover",
            json={"recoveredLocation": "Station", "recoveredDate": "2024-01-05"},
            headers=as_alice,
        )
        assert own.status_code == 400
        assert own.json() == {"message": "You cannot recover your own item"}

        bad_date = client.post(
            f"/inventory/{item_id}/recover",
            json={"recoveredLocation": "Station", "recoveredDate": "not-a-date"},
            headers=as_bob,
        )
        assert bad_date.status_code == 400
        assert bad_date.json() == {"message": "Invalid request body"}

        incomplete = client.post(
            f"/inventory/{item_id}/recover",
            json={"recoveredLocation": "Station"},
            headers=as_bob,
        )
        assert incomplete.status_code == 400
        assert incomplete.json() == {"message": "Missing required fields"}

        response = client.post(
            f"/inventory/{item_id}/recover",
            json={"recoveredLocation": "Station", "recoveredDate": "2024-01-05", "notes": "At desk"},
            headers=as_bob,
        )
        assert response.status_code == 200
        recovery = response.json()["recovery"]
        assert recovery["recoveredBy"]["email"] == "b@x.com"
        assert recovery["originalOwner"]["email"] == "a@x.com"
        assert recovery["recoveryStatus"] == "pending"
        assert client.get(f"/inventory/{item_id}").json()["status"] == "recovered"

        for headers in (as_alice, as_bob):
            listed = client.get("/recoveries", headers=headers).json()
            assert [entry["id"] for entry in listed] == [recovery["id"]]

        updated = client.patch(
            f"/recoveries/{recovery['id']}",
            json={"recoveryStatus": "completed"},
            headers=as_alice,
        )
        assert updated.status_code == 200
        assert updated.json()["recovery"]["recoveryStatus"] == "completed"

        assert client.delete(f"/inventory/{item_id}", headers=as_bob).status_code == 403

        deleted = client.delete(f"/inventory/{item_id}", headers=as_alice)
        assert deleted.json() == {"message": "Item deleted successfully"}
        assert client.get(f"/inventory/{item_id}").status_code == 404
        assert client.get("/recoveries", headers=as_bob).json() == []

    def test_update_recovery_errors(self, client, as_bob):
        invalid = client.patch("/recoveries/abc", json={"notes": "x"}, headers=as_bob)
        assert invalid.status_code == 400
        assert invalid.json() == {"message": "Invalid recovery ID"}

        missing = client.patch(
            "/recoveries/00000000-0000-4000-8000-000000000000",
            json={"notes": "x"},
            headers=as_bob,
        )
        assert missing.status_code == 404


class TestServiceSurface:
    def test_root_banner(self, client):
        response = client.get("/")
        assert response.text == "WhereIsIt backend server running!!"

    def test_highlights_passthrough(self, client):
        assert client.get("/highlights").json() == []

    def test_health(self, client):
        assert client.get("/health/db").json() == {"ok": True}

    def test_unexpected_errors_are_wrapped(self, settings, verifier, monkeypatch):
        ctx = AppContext.build(settings, verifier=verifier)

        async def explode(**filters):
            raise RuntimeError("boom")

        monkeypatch.setattr(ctx.items, "list", explode)

        with TestClient(create_app(context=ctx), raise_server_exceptions=False) as client:
            response = client.get("/inventory")

        assert response.status_code == 500
        assert response.json() == {"message": "Server error", "error": "boom"}


class TestProductionMode:
    def test_secure_cookie_and_withheld_error_detail(self, settings, verifier, monkeypatch):
        production = dataclasses.replace(settings, app_env="production")
        ctx = AppContext.build(production, verifier=verifier)

        async def explode(**filters):
            raise RuntimeError("boom")

        monkeypatch.setattr(ctx.items, "list", explode)

        with TestClient(create_app(context=ctx), raise_server_exceptions=False) as client:
            login = client.post("/users/firebase-login", json={"idToken": "token-a"})
            failure = client.get("/inventory")

        assert "secure" in login.headers["set-cookie"].lower()
        assert failure.status_code == 500
        assert failure.json() == {"message": "Server error"}
