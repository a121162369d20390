"""API endpoint tests for health, auth and businesses."""


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_register_user(client):
    """Test user registration."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "newuser@example.com", "password": "password123", "name": "New User"},
    )
    assert response.status_code == 201
    assert "access_token" in response.json()
    assert response.json()["user"]["email"] == "newuser@example.com"


def test_register_duplicate_email(client, auth_headers):
    """Test registration with duplicate email fails."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": auth_headers.email, "password": "password123", "name": "Duplicate"},
    )
    assert response.status_code == 400
    assert "already registered" in response.json()["detail"]


def test_login(client, auth_headers):
    """Test user login."""
    response = client.post(
        "/api/v1/auth/login", json={"email": auth_headers.email, "password": "testpass123"}
    )
    assert response.status_code == 200
    assert "access_token" in response.json()


def test_login_wrong_password(client, auth_headers):
    """Test login with wrong password."""
    response = client.post(
        "/api/v1/auth/login", json={"email": auth_headers.email, "password": "wrongpass"}
    )
    assert response.status_code == 401


def test_get_current_user(client, auth_headers):
    """Test getting current user info."""
    response = client.get("/api/v1/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == auth_headers.user_id


def test_invalid_bearer_token(client):
    """Test that a forged JWT is rejected."""
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_create_and_list_businesses(client, owner_headers, auth_headers):
    """Test that businesses are listed for their owner only."""
    response = client.post("/api/v1/businesses", headers=owner_headers, json={"name": "Bakery"})
    assert response.status_code == 201
    assert response.json()["owner_user_id"] == owner_headers.user_id

    owned = client.get("/api/v1/businesses", headers=owner_headers).json()
    assert [b["name"] for b in owned] == ["Bakery"]
    assert client.get("/api/v1/businesses", headers=auth_headers).json() == []
