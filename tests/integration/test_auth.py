"""Integration tests for SimpleJWT authentication.

Validates:
  - /health is public (plain Django view, no DRF).
  - Catalogue endpoints return 401 without or with an invalid token.
  - A token from /api/v1/auth/token/ grants access.
"""

import pytest
from django.contrib.auth import get_user_model

pytestmark = pytest.mark.integration


class TestPublicEndpoints:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestProtectedEndpoints:
    @pytest.mark.parametrize("url", ["/api/v1/products/", "/api/v1/preorders/"])
    def test_no_token_returns_401(self, api_client, url):
        assert api_client.get(url).status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        assert api_client.get("/api/v1/products/").status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        assert api_client.get("/api/v1/products/").status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/products/")
        assert "Bearer" in response.get("WWW-Authenticate", "")


class TestTokenFlow:
    def test_obtained_token_grants_access(self, api_client):
        get_user_model().objects.create_user(username="jwt_user", password="s3cret-pass")

        token = api_client.post(
            "/api/v1/auth/token/",
            {"username": "jwt_user", "password": "s3cret-pass"},
            format="json",
        )
        assert token.status_code == 200

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['access']}")
        assert api_client.get("/api/v1/products/").status_code == 200
