"""Tests for access control on discipline, formula and grade endpoints (F5)."""

import pytest

from edugest.db import schools_repository

ALUNO = {"X-User-Id": "u-ana", "X-User-Role": "ALUNO"}

CLASS_DISCIPLINE = "/api/turmas/t1/disciplinas/d1"

STAFF_ONLY = [
    ("GET", "/api/turmas/t1/disciplinas"),
    ("POST", "/api/turmas/t1/disciplinas"),
    ("PUT", "/api/turmas/t1/disciplinas/order"),
    ("PATCH", "/api/disciplinas/d1"),
    ("DELETE", "/api/disciplinas/d1"),
    ("PUT", "/api/disciplinas/d1/obrigatoria"),
    ("GET", "/api/disciplinas/d1/componentes"),
    ("POST", "/api/disciplinas/d1/componentes"),
    ("GET", "/api/disciplinas/d1/componentes/available"),
    ("PATCH", "/api/componentes/c1"),
    ("DELETE", "/api/componentes/c1"),
    ("POST", "/api/componentes/c1/move"),
    ("POST", "/api/formulas/validate"),
    ("POST", "/api/formulas/preview"),
    ("GET", "/api/formulas/examples"),
    ("POST", "/api/formulas/mt/preview"),
    ("GET", f"{CLASS_DISCIPLINE}/formula"),
    ("PUT", f"{CLASS_DISCIPLINE}/formula"),
    ("GET", f"{CLASS_DISCIPLINE}/formula-config/MT"),
    ("PUT", f"{CLASS_DISCIPLINE}/formula-config/MT"),
    ("GET", "/api/componentes/c1/notas/stats"),
    ("GET", "/api/componentes/c1/notas/export"),
    ("GET", "/api/componentes/c1/notas/template"),
    ("GET", f"{CLASS_DISCIPLINE}/report?trimestre=1"),
]


def send(client, method, path, headers):
    if method in ("POST", "PUT", "PATCH"):
        return client.request(method, path, json={}, headers=headers)
    return client.request(method, path, headers=headers)


class TestStaffOnlyEndpoints:
    """Class structure, formulas and grade listings are closed to students."""

    @pytest.mark.parametrize("method,path", STAFF_ONLY)
    def test_anonymous_rejected(self, client, method, path):
        response = send(client, method, path, headers={})
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", STAFF_ONLY)
    def test_student_forbidden(self, client, method, path):
        response = send(client, method, path, headers=ALUNO)
        assert response.status_code == 403
        assert response.json()["detail"] == "Sem permissão para esta operação"

    def test_role_from_stored_profile(self, client, school):
        """Without a role header, the stored profile decides."""
        schools_repository.create_user_profile("u-ana", "ALUNO", nome="Ana Silva")

        response = client.get(
            f"/api/componentes/{school['mac'].id}/notas/export", headers={"X-User-Id": "u-ana"}
        )
        assert response.status_code == 403

    def test_student_cannot_rewrite_formula(self, client, staff_client, school):
        url = (
            f"/api/turmas/{school['turma'].id}/disciplinas/{school['disciplina'].id}/formula"
        )
        staff_client.put(url, json={"expressao": "0.4*MAC + 0.6*NPP"})

        response = client.put(url, json={"expressao": "MAC * 0 + 20"}, headers=ALUNO)

        assert response.status_code == 403
        assert staff_client.get(url).json()["expressao"] == "0.4*MAC + 0.6*NPP"

    def test_staff_allowed(self, staff_client, school):
        response = staff_client.get(f"/api/componentes/{school['mac'].id}/notas/stats")
        assert response.status_code == 200
