"""Pydantic schemas for the Web API.

Request bodies and response models for disciplines, components, formulas,
grades, tutorials, audit and notifications.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


# =============================================================================
# HEALTH / AUTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Response for health check."""

    status: str = "ok"
    database: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=1)


class MeResponse(BaseModel):
    """Identity of the caller as forwarded by the upstream authenticator."""

    user_id: str
    tipo_perfil: str | None = None
    nome: str | None = None
    email: str | None = None
    escola_id: str | None = None
    aluno_id: str | None = None


# =============================================================================
# DISCIPLINE SCHEMAS
# =============================================================================


class DisciplinaCreate(BaseModel):
    """Request body for creating a discipline."""

    nome: str = Field(..., min_length=1, max_length=200)
    codigo_disciplina: str = Field(..., min_length=1, max_length=50)
    professor_id: str | None = None
    carga_horaria: int | None = Field(default=None, ge=0)
    descricao: str | None = None
    ordem: int | None = Field(default=None, ge=1)


class DisciplinaUpdate(BaseModel):
    """Request body for updating a discipline; omitted fields are kept."""

    nome: str | None = Field(default=None, min_length=1, max_length=200)
    codigo_disciplina: str | None = Field(default=None, min_length=1, max_length=50)
    professor_id: str | None = None
    carga_horaria: int | None = Field(default=None, ge=0)
    descricao: str | None = None
    ordem: int | None = Field(default=None, ge=1)


class DisciplinaResponse(BaseModel):
    id: str
    turma_id: str
    professor_id: str | None
    nome: str
    codigo_disciplina: str
    carga_horaria: int | None
    descricao: str | None
    ordem: int
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class DisciplinaListResponse(BaseModel):
    disciplinas: list[DisciplinaResponse]
    count: int


class OrderUpdate(BaseModel):
    """Discipline ids in their new display order."""

    ids: list[str] = Field(..., min_length=1)


class MandatoryUpdate(BaseModel):
    obrigatoria: bool


# =============================================================================
# COMPONENT SCHEMAS
# =============================================================================


class ComponenteCreate(BaseModel):
    """Request body for creating an evaluation component."""

    nome: str = Field(..., min_length=1, max_length=200)
    codigo_componente: str = Field(
        ..., min_length=1, max_length=20, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$"
    )
    peso_percentual: float = Field(..., ge=0, le=100)
    escala_minima: float = 0
    escala_maxima: float = 20
    obrigatorio: bool = True
    trimestre: int = Field(default=1, ge=1, le=3)
    descricao: str | None = None
    is_calculated: bool = False
    formula_expression: str | None = None
    depends_on_components: list[str] = Field(default_factory=list)
    tipo_calculo: Literal["trimestral", "anual"] = "trimestral"


class ComponenteUpdate(BaseModel):
    """Request body for updating a component; omitted fields are kept."""

    nome: str | None = Field(default=None, min_length=1, max_length=200)
    codigo_componente: str | None = Field(
        default=None, min_length=1, max_length=20, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$"
    )
    peso_percentual: float | None = Field(default=None, ge=0, le=100)
    escala_minima: float | None = None
    escala_maxima: float | None = None
    obrigatorio: bool | None = None
    descricao: str | None = None
    is_calculated: bool | None = None
    formula_expression: str | None = None
    depends_on_components: list[str] | None = None
    tipo_calculo: Literal["trimestral", "anual"] | None = None


class ComponenteResponse(BaseModel):
    id: str
    disciplina_id: str
    turma_id: str
    nome: str
    codigo_componente: str
    peso_percentual: float
    escala_minima: float
    escala_maxima: float
    obrigatorio: bool
    ordem: int
    trimestre: int
    descricao: str | None = None
    is_calculated: bool = False
    formula_expression: str | None = None
    depends_on_components: list[str] = Field(default_factory=list)
    tipo_calculo: str = "trimestral"

    model_config = {"from_attributes": True}


class ComponenteListResponse(BaseModel):
    componentes: list[ComponenteResponse]
    count: int
    peso_total: float


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


# =============================================================================
# FORMULA SCHEMAS
# =============================================================================


class FormulaValidateRequest(BaseModel):
    """Validate against a discipline's components or an explicit code list."""

    expressao: str = Field(..., max_length=1000)
    disciplina_id: str | None = None
    component_codes: list[str] | None = None


class FormulaValidationResponse(BaseModel):
    valid: bool
    error: str | None = None
    components: list[str] = Field(default_factory=list)
    display: str | None = None


class FormulaPreviewRequest(BaseModel):
    expressao: str = Field(..., max_length=1000)
    valores: dict[str, float] = Field(default_factory=dict)


class FormulaSaveRequest(BaseModel):
    expressao: str = Field(..., min_length=1, max_length=1000)


class FormulaResponse(BaseModel):
    id: str
    turma_id: str
    disciplina_id: str
    expressao: str
    componentes_usados: list[str]
    validada: bool
    mensagem_validacao: str | None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class FormulaConfigUpdate(BaseModel):
    formula_expression: str = Field(default="", max_length=1000)
    pesos_trimestres: dict[int, float] | None = None
    descricao: str | None = None
    ativo: bool = True


class FormulaConfigResponse(BaseModel):
    id: str | None = None
    disciplina_id: str
    turma_id: str
    tipo: str
    formula_expression: str
    pesos_trimestres: dict[int, float] | None = None
    descricao: str | None = None
    ativo: bool = True

    model_config = {"from_attributes": True}


class MTPreviewRequest(BaseModel):
    formula_expression: str = Field(default="", max_length=1000)
    pesos_trimestres: dict[int, float] | None = None
    notas: dict[int, float] = Field(default_factory=dict)


class MTPreviewResponse(BaseModel):
    valid: bool
    message: str | None = None
    media: float | None = None


# =============================================================================
# GRADE SCHEMAS
# =============================================================================


class NotaSubmit(BaseModel):
    """Request body for entering a grade."""

    aluno_id: str
    componente_id: str
    trimestre: int = Field(..., ge=1, le=3)
    valor: float


class GradesImportRequest(BaseModel):
    """CSV text as produced by the export/template endpoints."""

    content: str = Field(..., min_length=1)


class FinalGradeRequest(BaseModel):
    aluno_id: str
    turma_id: str
    disciplina_id: str
    trimestre: int = Field(..., ge=1, le=3)


# =============================================================================
# TUTORIAL SCHEMAS
# =============================================================================


class TutorialPayload(BaseModel):
    """Request body for creating or replacing a tutorial."""

    titulo: str = Field(..., min_length=1, max_length=200)
    url_video: str = Field(..., min_length=1, max_length=500)
    descricao: str | None = None
    thumbnail_url: str | None = None
    categoria: str = "geral"
    ordem: int = 0
    publico: bool = True
    ativo: bool = True
    perfis: list[str] = Field(default_factory=list)


class TutorialUpdate(BaseModel):
    """Partial tutorial update; omitted fields are kept."""

    titulo: str | None = Field(default=None, min_length=1, max_length=200)
    url_video: str | None = Field(default=None, min_length=1, max_length=500)
    descricao: str | None = None
    thumbnail_url: str | None = None
    categoria: str | None = None
    ordem: int | None = None
    publico: bool | None = None
    ativo: bool | None = None
    perfis: list[str] | None = None


# =============================================================================
# AUDIT / SCHOOL SCHEMAS
# =============================================================================


class EscolaStatusUpdate(BaseModel):
    """Status change of a school; `motivo` is required to block."""

    action: Literal["activate", "deactivate", "block", "unblock"]
    motivo: str | None = Field(default=None, max_length=500)


class ActionTypeResponse(BaseModel):
    value: str
    label: str
