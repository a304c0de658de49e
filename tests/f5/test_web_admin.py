"""Tests for tutorials, audit, school status and notification endpoints (F5)."""

import pytest

from edugest.db import notifications_repository

SUPERADMIN = {"X-User-Id": "admin-1", "X-User-Role": "SUPERADMIN"}
PROFESSOR = {"X-User-Id": "prof-1", "X-User-Role": "PROFESSOR"}


@pytest.fixture
def tutorial(client):
    response = client.post(
        "/api/tutoriais",
        json={
            "titulo": "Como lançar notas",
            "url_video": "https://www.youtube.com/watch?v=abc123",
            "categoria": "notas",
            "publico": False,
            "perfis": ["PROFESSOR"],
        },
        headers=SUPERADMIN,
    )
    assert response.status_code == 201
    return response.json()


class TestTutoriais:
    """Tests for /api/tutoriais."""

    def test_create_resolves_video_urls(self, tutorial):
        assert tutorial["embed_url"] == "https://www.youtube.com/embed/abc123"
        assert tutorial["thumbnail_url"] == "https://img.youtube.com/vi/abc123/mqdefault.jpg"
        assert tutorial["perfis"] == ["PROFESSOR"]

    def test_management_requires_superadmin(self, client):
        response = client.get("/api/tutoriais", headers=PROFESSOR)

        assert response.status_code == 403
        assert response.json()["detail"] == "Acesso restrito ao Super Administrador"

    def test_invalid_category(self, client):
        response = client.post(
            "/api/tutoriais",
            json={"titulo": "X", "url_video": "https://vimeo.com/1", "categoria": "outra"},
            headers=SUPERADMIN,
        )
        assert response.status_code == 400

    def test_visibility_by_profile(self, client, tutorial):
        anonymous = client.get("/api/tutoriais/publicos").json()
        professor = client.get("/api/tutoriais/publicos", headers=PROFESSOR).json()

        assert anonymous["count"] == 0
        assert [t["id"] for t in professor["tutoriais"]] == [tutorial["id"]]

    def test_update_keeps_omitted_fields(self, client, tutorial):
        response = client.patch(
            f"/api/tutoriais/{tutorial['id']}", json={"publico": True}, headers=SUPERADMIN
        )

        assert response.status_code == 200
        data = response.json()
        assert data["publico"] is True
        assert data["titulo"] == "Como lançar notas"
        assert client.get("/api/tutoriais/publicos").json()["count"] == 1

    def test_toggle_and_stats(self, client, tutorial):
        response = client.post(f"/api/tutoriais/{tutorial['id']}/toggle", headers=SUPERADMIN)
        assert response.json()["ativo"] is False

        stats = client.get("/api/tutoriais/stats", headers=SUPERADMIN).json()
        assert stats["total"] == 1
        assert stats["inativos"] == 1
        assert stats["por_categoria"]["notas"] == 1

        inativos = client.get(
            "/api/tutoriais", params={"filtro": "inativos"}, headers=SUPERADMIN
        ).json()
        assert inativos["count"] == 1

    def test_invalid_filter(self, client):
        response = client.get("/api/tutoriais", params={"filtro": "x"}, headers=SUPERADMIN)
        assert response.status_code == 400

    def test_delete(self, client, tutorial):
        url = f"/api/tutoriais/{tutorial['id']}"
        assert client.delete(url, headers=SUPERADMIN).status_code == 204
        assert client.delete(url, headers=SUPERADMIN).status_code == 404
        assert client.patch(url, json={}, headers=SUPERADMIN).status_code == 404


class TestEscolaStatus:
    """Tests for school status changes and the audit log."""

    def test_block_requires_reason(self, client, school):
        response = client.post(
            f"/api/escolas/{school['escola'].id}/status",
            json={"action": "block", "motivo": "  "},
            headers=SUPERADMIN,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "O motivo do bloqueio é obrigatório"

    def test_block_is_audited(self, client, school):
        escola_id = school["escola"].id
        response = client.post(
            f"/api/escolas/{escola_id}/status",
            json={"action": "block", "motivo": "Pagamento em atraso"},
            headers=SUPERADMIN,
        )

        assert response.status_code == 200
        assert response.json()["bloqueada"] is True
        assert response.json()["bloqueado_motivo"] == "Pagamento em atraso"

        audit = client.get("/api/audit", params={"escola_id": escola_id}, headers=SUPERADMIN).json()
        assert audit["count"] == 1
        entry = audit["actions"][0]
        assert entry["action_type"] == "BLOCK_ESCOLA"
        assert entry["action_label"] == "Bloquear Escola"
        assert entry["action_details"]["antes"]["bloqueada"] is False
        assert entry["superadmin_user_id"] == "admin-1"

    def test_unblock_clears_reason(self, client, school):
        url = f"/api/escolas/{school['escola'].id}/status"
        client.post(url, json={"action": "block", "motivo": "x"}, headers=SUPERADMIN)

        data = client.post(url, json={"action": "unblock"}, headers=SUPERADMIN).json()

        assert data["bloqueada"] is False
        assert data["bloqueado_motivo"] is None

    def test_unknown_school(self, client):
        response = client.post(
            "/api/escolas/nope/status", json={"action": "deactivate"}, headers=SUPERADMIN
        )
        assert response.status_code == 404

    def test_requires_superadmin(self, client, school):
        response = client.post(
            f"/api/escolas/{school['escola'].id}/status",
            json={"action": "deactivate"},
            headers=PROFESSOR,
        )
        assert response.status_code == 403

    def test_action_types(self, client):
        data = client.get("/api/audit/action-types", headers=SUPERADMIN).json()
        assert {"value": "BLOCK_ESCOLA", "label": "Bloquear Escola"} in data


class TestNotificacoes:
    """Tests for /api/notificacoes."""

    @pytest.fixture
    def notices(self, client):
        return [
            notifications_repository.notify_system("prof-1", "Bem-vindo"),
            notifications_repository.notify_system("prof-1", "Manutenção", "Sábado às 10h"),
            notifications_repository.notify_system("other", "Outro"),
        ]

    def test_list_own(self, client, notices):
        data = client.get("/api/notificacoes", headers=PROFESSOR).json()

        assert len(data["notificacoes"]) == 2
        assert data["unread"] == 2

    def test_read_one(self, client, notices):
        response = client.post(f"/api/notificacoes/{notices[0].id}/read", headers=PROFESSOR)
        assert response.json() == {"id": notices[0].id, "lida": True}

        data = client.get(
            "/api/notificacoes", params={"only_unread": True}, headers=PROFESSOR
        ).json()
        assert [n["id"] for n in data["notificacoes"]] == [notices[1].id]

    def test_cannot_touch_others(self, client, notices):
        other = f"/api/notificacoes/{notices[2].id}"
        assert client.post(f"{other}/read", headers=PROFESSOR).status_code == 404
        assert client.delete(other, headers=PROFESSOR).status_code == 404

    def test_read_all_and_delete(self, client, notices):
        assert client.post("/api/notificacoes/read-all", headers=PROFESSOR).json() == {"updated": 2}

        response = client.delete(f"/api/notificacoes/{notices[0].id}", headers=PROFESSOR)
        assert response.status_code == 204
        assert client.get("/api/notificacoes", headers=PROFESSOR).json()["unread"] == 0

    def test_requires_identity(self, client):
        assert client.get("/api/notificacoes").status_code == 401
