"""Tests for formula endpoints (F5)."""


def discipline_url(school, suffix):
    return f"/api/turmas/{school['turma'].id}/disciplinas/{school['disciplina'].id}/{suffix}"


class TestFormulaTools:
    """Tests for validation, preview and examples."""

    def test_validate_against_codes(self, staff_client):
        response = staff_client.post(
            "/api/formulas/validate",
            json={"expressao": "0.5*P1 + 0.5*P2", "component_codes": ["P1", "P2"]},
        )
        data = response.json()
        assert data["valid"] is True
        assert data["components"] == ["P1", "P2"]
        assert data["display"]

    def test_validate_unknown_code(self, staff_client):
        response = staff_client.post(
            "/api/formulas/validate", json={"expressao": "P1 + P3", "component_codes": ["P1"]}
        )
        data = response.json()
        assert data["valid"] is False
        assert "P3" in data["error"]
        assert data["display"] is None

    def test_validate_against_discipline_weights(self, staff_client, school):
        url = "/api/formulas/validate"
        disciplina_id = school["disciplina"].id

        ok = staff_client.post(
            url, json={"expressao": "0.4*MAC + 0.6*NPP", "disciplina_id": disciplina_id}
        )
        partial = staff_client.post(url, json={"expressao": "MAC", "disciplina_id": disciplina_id})
        missing = staff_client.post(url, json={"expressao": "MAC", "disciplina_id": "nope"})

        assert ok.json()["valid"] is True
        assert "Atual: 40%" in partial.json()["error"]
        assert missing.status_code == 404

    def test_preview(self, staff_client):
        response = staff_client.post(
            "/api/formulas/preview",
            json={"expressao": "(A + B) / 2", "valores": {"A": 12, "B": 15}},
        )
        assert response.status_code == 200
        assert response.json()["resultado"] == 13.5

    def test_preview_error(self, staff_client):
        response = staff_client.post(
            "/api/formulas/preview", json={"expressao": "A / B", "valores": {"A": 1, "B": 0}}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Erro ao avaliar fórmula: Divisão por zero"

    def test_preview_rounds_half_up(self, staff_client):
        response = staff_client.post(
            "/api/formulas/preview", json={"expressao": "A", "valores": {"A": 2.675}}
        )
        assert response.json()["resultado"] == 2.68

    def test_preview_rejects_out_of_range_round(self, staff_client):
        response = staff_client.post(
            "/api/formulas/preview",
            json={"expressao": "round(A, 40)", "valores": {"A": 15.123}},
        )
        assert response.status_code == 400
        assert "round()" in response.json()["detail"]

    def test_examples(self, staff_client):
        data = staff_client.get("/api/formulas/examples", params={"codes": ["MAC", "NPP"]}).json()
        assert len(data["exemplos"]) == 5
        assert data["sugestoes"][0] == "MAC * 0.4 + NPP * 0.6"


class TestDisciplineFormula:
    """Tests for the stored formula of a discipline."""

    def test_save_and_get(self, staff_client, school):
        url = discipline_url(school, "formula")
        assert staff_client.get(url).status_code == 404

        response = staff_client.put(url, json={"expressao": "0.4*MAC + 0.6*NPP"})
        assert response.status_code == 200
        assert response.json()["validada"] is True

        data = staff_client.get(url).json()
        assert data["componentes_usados"] == ["MAC", "NPP"]

    def test_invalid_formula_saved_unvalidated(self, staff_client, school):
        url = discipline_url(school, "formula")
        data = staff_client.put(url, json={"expressao": "MAC"}).json()

        assert data["validada"] is False
        assert data["mensagem_validacao"]

    def test_wrong_class(self, staff_client, school):
        url = f"/api/turmas/other/disciplinas/{school['disciplina'].id}/formula"
        assert staff_client.put(url, json={"expressao": "MAC"}).status_code == 404


class TestFormulaConfig:
    """Tests for NF/MT configuration and MT preview."""

    def test_mt_defaults_to_simple_average(self, staff_client, school):
        url = discipline_url(school, "formula-config/MT")
        data = staff_client.get(url).json()
        assert data["formula_expression"] == "(T1 + T2 + T3) / 3"

    def test_nf_missing(self, staff_client, school):
        url = discipline_url(school, "formula-config/NF")
        assert staff_client.get(url).status_code == 404

    def test_save_mt_weights(self, staff_client, school):
        url = discipline_url(school, "formula-config/MT")

        bad = staff_client.put(url, json={"pesos_trimestres": {"1": 30, "2": 30, "3": 30}})
        assert bad.status_code == 400

        good = staff_client.put(url, json={"pesos_trimestres": {"1": 30, "2": 30, "3": 40}})
        assert good.status_code == 200
        assert staff_client.get(url).json()["pesos_trimestres"] == {"1": 30.0, "2": 30.0, "3": 40.0}

    def test_save_nf_validates_formula(self, staff_client, school):
        url = discipline_url(school, "formula-config/NF")

        assert staff_client.put(url, json={"formula_expression": "MAC"}).status_code == 400
        response = staff_client.put(url, json={"formula_expression": "0.4*MAC + 0.6*NPP"})
        assert response.status_code == 200
        assert response.json()["tipo"] == "NF"

    def test_invalid_tipo(self, staff_client, school):
        url = discipline_url(school, "formula-config/XX")
        assert staff_client.get(url).status_code == 422

    def test_mt_preview(self, staff_client):
        response = staff_client.post(
            "/api/formulas/mt/preview",
            json={
                "formula_expression": "T1*0.25 + T2*0.25 + T3*0.5",
                "notas": {"1": 10, "2": 12, "3": 16},
            },
        )
        assert response.json() == {"valid": True, "message": None, "media": 13.5}

    def test_mt_preview_rounds_half_up(self, staff_client):
        response = staff_client.post(
            "/api/formulas/mt/preview",
            json={
                "formula_expression": "T1 + T2*0 + T3*0",
                "notas": {"1": 2.675, "2": 10, "3": 10},
            },
        )
        assert response.json()["media"] == 2.68

    def test_mt_preview_invalid(self, staff_client):
        response = staff_client.post(
            "/api/formulas/mt/preview", json={"formula_expression": "T1 + T2"}
        )
        data = response.json()
        assert data["valid"] is False
        assert data["message"] == "Fórmula deve incluir T1, T2 e T3"
