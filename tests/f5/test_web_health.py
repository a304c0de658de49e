"""Tests for health and identity endpoints (F5)."""

from edugest.db import schools_repository


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert data["version"] == "0.1.0"
        assert "T" in data["timestamp"]


class TestAuth:
    """Tests for /api/auth."""

    def test_login_not_served(self, client):
        response = client.post("/api/auth/login", json={"email": "a@b.ao", "password": "x"})
        assert response.status_code == 501

    def test_me_requires_identity(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Sessão expirada. Faça login novamente"

    def test_me_with_stored_profile(self, client, school):
        schools_repository.create_user_profile(
            "prof-1", "PROFESSOR", nome="Prof. João", escola_id=school["escola"].id
        )

        response = client.get("/api/auth/me", headers={"X-User-Id": "prof-1"})
        assert response.status_code == 200
        data = response.json()
        assert data["tipo_perfil"] == "PROFESSOR"
        assert data["nome"] == "Prof. João"
        assert data["escola_id"] == school["escola"].id

    def test_me_links_student(self, client, school):
        response = client.get(
            "/api/auth/me", headers={"X-User-Id": "u-ana", "X-User-Role": "aluno"}
        )
        data = response.json()
        assert data["tipo_perfil"] == "ALUNO"
        assert data["aluno_id"] == school["ana"].id
