import base64
import json

from fastapi.testclient import TestClient

from auth import issue_token, read_token


def _forge(claims):
    return base64.urlsafe_b64encode(json.dumps(claims).encode("utf-8")).decode("ascii")


# ===================== Token stub =====================

def test_token_round_trip():
    token = issue_token({"id": "u-1", "username": "admin"})
    assert read_token(token) == {"id": "u-1", "username": "admin"}


def test_unreadable_tokens_are_ignored():
    assert read_token(None) is None
    assert read_token("not a token!") is None
    assert read_token(issue_token({"id": "x", "username": "y"})[:-4]) is None


def test_tokens_without_a_string_id_are_ignored():
    assert read_token(_forge({"id": {"$ne": None}, "username": "x"})) is None
    assert read_token(_forge({"id": 7, "username": "x"})) is None
    assert read_token(_forge({"username": "x"})) is None
    assert read_token(_forge(["id"])) is None


# ===================== Register / login / logout =====================

def test_register_and_login(client):
    response = client.post("/auth/register", json={
        "username": "lindiwe", "email": "lindiwe@example.org", "password": "pw-123",
    })
    assert response.status_code == 201
    assert response.json()["success"] is True

    response = client.post("/auth/login", json={"username": "lindiwe", "password": "pw-123"})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["username"] == "lindiwe"
    assert body["user"]["role"] == "VOLUNTEER"
    assert "password" not in body["user"]
    assert "passwordHash" not in body["user"]
    assert read_token(body["token"])["id"] == body["user"]["id"]
    assert "token=" in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()


def test_register_rejects_duplicates_and_missing_fields(client):
    body = {"username": "sam", "email": "sam@example.org", "password": "pw"}
    assert client.post("/auth/register", json=body).status_code == 201

    response = client.post("/auth/register", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Username already registered"}

    assert client.post("/auth/register", json={"username": "x", "password": "pw"}).status_code == 400


def test_login_with_wrong_password(client):
    client.post("/auth/register", json={"username": "sam", "email": "sam@example.org", "password": "pw"})

    response = client.post("/auth/login", json={"username": "sam", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid username or password"}


def test_logout_clears_cookie(client):
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    assert 'token=""' in response.headers["set-cookie"] or "token=;" in response.headers["set-cookie"]


def test_created_by_comes_from_token(client, auth_headers, address):
    me = client.get("/users/profile", headers=auth_headers).json()

    response = client.post("/recipients", headers=auth_headers, json={
        "firstName": "Jane", "lastName": "Smith", "address": address,
    })

    assert response.json()["createdBy"] == me["id"]


# ===================== Profile =====================

def test_profile_requires_token(client_factory):
    client = client_factory()
    response = client.get("/users/profile")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


def test_query_shaped_token_id_does_not_authenticate(client, auth_headers):
    token = _forge({"id": {"$ne": None}, "username": "thandi"})

    response = client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


def test_query_shaped_token_id_does_not_match_a_mongo_user(app, mongo_store):
    client = TestClient(app)
    client.post("/auth/register", json={"username": "sam", "email": "sam@example.org", "password": "pw"})
    token = _forge({"id": {"$ne": None}, "username": "sam"})

    response = client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})

    assert mongo_store.name == "mongodb"
    assert response.status_code == 401


def test_profile_for_deleted_user_is_404(client):
    token = issue_token({"id": "ghost", "username": "ghost"})
    response = client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_get_and_update_profile(client, auth_headers):
    profile = client.get("/users/profile", headers=auth_headers).json()
    assert profile["firstName"] == "Thandi"
    assert profile["role"] == "STAFF"
    assert "passwordHash" not in profile

    response = client.put("/users/profile", headers=auth_headers, json={
        "firstName": "",
        "phone": "+27820000000",
    })

    assert response.status_code == 200
    assert response.json()["firstName"] == "Thandi"
    assert response.json()["phone"] == "+27820000000"


# ===================== Password =====================

def test_change_password(client, auth_headers):
    response = client.put("/users/password", headers=auth_headers, json={"newPassword": "x"})
    assert response.status_code == 400
    assert response.json() == {"error": "Current password and new password are required"}

    response = client.put("/users/password", headers=auth_headers, json={
        "currentPassword": "wrong", "newPassword": "n3w-pass",
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Current password is incorrect"}

    response = client.put("/users/password", headers=auth_headers, json={
        "currentPassword": "s3cret-pass", "newPassword": "n3w-pass",
    })
    assert response.status_code == 200
    assert response.json() == {"message": "Password updated successfully"}

    assert client.post("/auth/login", json={"username": "thandi", "password": "s3cret-pass"}).status_code == 401
    assert client.post("/auth/login", json={"username": "thandi", "password": "n3w-pass"}).status_code == 200


# ===================== Notifications =====================

def test_notification_settings_defaults_and_merge(client, auth_headers):
    settings = client.get("/users/notifications", headers=auth_headers).json()
    assert settings == {
        "email": {"deliveryUpdates": True, "newHampers": False, "recipientUpdates": False},
        "sms": {"deliveryUpdates": False, "urgentNotifications": True},
    }

    response = client.put("/users/notifications", headers=auth_headers, json={
        "email": {"newHampers": True},
        "sms": {"urgentNotifications": False},
    })

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Notification settings updated successfully"
    assert body["settings"]["email"] == {"deliveryUpdates": True, "newHampers": True, "recipientUpdates": False}
    assert body["settings"]["sms"] == {"deliveryUpdates": False, "urgentNotifications": False}
    assert client.get("/users/notifications", headers=auth_headers).json() == body["settings"]


# ===================== Demo data =====================

def test_demo_data_is_seeded_when_enabled(client_factory):
    client = client_factory(SEED_DEMO_DATA=True)

    login = client.post("/auth/login", json={"username": "admin", "password": "password123"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "ADMIN"

    assert client.get("/reports/deliveries").json() == {
        "totalDeliveries": 5,
        "deliveredCount": 2,
        "pendingCount": 1,
        "failedCount": 1,
        "deliveriesByDate": {
            "2023-05-15": 1, "2023-05-20": 1, "2023-05-18": 1, "2023-05-16": 1, "2023-05-17": 1,
        },
    }
    assert client.get("/reports/recipients").json()["recipientsByCity"] == {
        "Johannesburg": 2, "Cape Town": 1, "Durban": 1, "Pretoria": 1,
    }
    assert client.get("/reports/hampers").json()["hampersByCategory"]["Hygiene"] == 1
