"""Repository functions for schools, classes, students and user profiles."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from edugest.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)

PERFIS = ("SUPERADMIN", "ESCOLA", "PROFESSOR", "SECRETARIO", "ALUNO", "ENCARREGADO")


@dataclass
class EscolaRecord:
    id: str
    nome: str
    codigo_escola: str | None
    provincia: str | None
    municipio: str | None
    ativa: bool
    bloqueada: bool
    bloqueado_motivo: str | None
    created_at: str
    updated_at: str


@dataclass
class TurmaRecord:
    id: str
    escola_id: str
    nome: str
    ano_lectivo: str | None
    nivel_ensino: str | None
    classe: str | None
    professor_id: str | None
    created_at: str


@dataclass
class AlunoRecord:
    id: str
    turma_id: str
    user_id: str | None
    nome_completo: str
    numero_processo: str | None
    genero: str | None
    frequencia_anual: float | None
    ativo: bool
    created_at: str


@dataclass
class UserProfileRecord:
    id: str
    user_id: str
    nome: str | None
    email: str | None
    tipo_perfil: str
    escola_id: str | None
    ativo: bool
    created_at: str


# =============================================================================
# ESCOLAS
# =============================================================================


def create_escola(
    nome: str,
    codigo_escola: str | None = None,
    provincia: str | None = None,
    municipio: str | None = None,
) -> EscolaRecord:
    """Insert a new school (active, not blocked).

    Raises:
        sqlite3.IntegrityError: If codigo_escola already exists
    """
    escola_id = new_id()
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO escolas (
                id, nome, codigo_escola, provincia, municipio, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (escola_id, nome, codigo_escola, provincia, municipio, now, now),
        )

    logger.debug("escolas.created", escola_id=escola_id)
    return get_escola(escola_id)


def get_escola(escola_id: str) -> EscolaRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM escolas WHERE id = ?", (escola_id,)).fetchone()

    if row is None:
        return None

    return EscolaRecord(
        id=row["id"],
        nome=row["nome"],
        codigo_escola=row["codigo_escola"],
        provincia=row["provincia"],
        municipio=row["municipio"],
        ativa=bool(row["ativa"]),
        bloqueada=bool(row["bloqueada"]),
        bloqueado_motivo=row["bloqueado_motivo"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def set_escola_status(
    escola_id: str,
    ativa: bool | None = None,
    bloqueada: bool | None = None,
    motivo: str | None = None,
) -> EscolaRecord | None:
    """Activate/deactivate and block/unblock a school.

    Unblocking clears the block reason.

    Returns:
        Updated EscolaRecord, or None if the school doesn't exist
    """
    escola = get_escola(escola_id)
    if escola is None:
        return None

    new_ativa = escola.ativa if ativa is None else ativa
    new_bloqueada = escola.bloqueada if bloqueada is None else bloqueada
    new_motivo = motivo if new_bloqueada else None

    with get_db() as conn:
        conn.execute(
            """
            UPDATE escolas
            SET ativa = ?, bloqueada = ?, bloqueado_motivo = ?, updated_at = ?
            WHERE id = ?
            """,
            (int(new_ativa), int(new_bloqueada), new_motivo, utc_now(), escola_id),
        )

    logger.info(
        "escolas.status_changed",
        escola_id=escola_id,
        ativa=new_ativa,
        bloqueada=new_bloqueada,
    )
    return get_escola(escola_id)


# =============================================================================
# TURMAS
# =============================================================================


def create_turma(
    escola_id: str,
    nome: str,
    ano_lectivo: str | None = None,
    nivel_ensino: str | None = None,
    classe: str | None = None,
    professor_id: str | None = None,
) -> TurmaRecord:
    """Insert a new class.

    Raises:
        sqlite3.IntegrityError: If the school doesn't exist
    """
    turma_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO turmas (
                id, escola_id, nome, ano_lectivo, nivel_ensino, classe, professor_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (turma_id, escola_id, nome, ano_lectivo, nivel_ensino, classe, professor_id, utc_now()),
        )

    logger.debug("turmas.created", turma_id=turma_id, escola_id=escola_id)
    return get_turma(turma_id)


def get_turma(turma_id: str) -> TurmaRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM turmas WHERE id = ?", (turma_id,)).fetchone()

    if row is None:
        return None

    return TurmaRecord(
        id=row["id"],
        escola_id=row["escola_id"],
        nome=row["nome"],
        ano_lectivo=row["ano_lectivo"],
        nivel_ensino=row["nivel_ensino"],
        classe=row["classe"],
        professor_id=row["professor_id"],
        created_at=row["created_at"],
    )


# =============================================================================
# ALUNOS
# =============================================================================


def create_aluno(
    turma_id: str,
    nome_completo: str,
    numero_processo: str | None = None,
    user_id: str | None = None,
    genero: str | None = None,
    frequencia_anual: float | None = None,
) -> AlunoRecord:
    """Insert a new student.

    Raises:
        sqlite3.IntegrityError: If numero_processo is already in use
    """
    aluno_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO alunos (
                id, turma_id, user_id, nome_completo, numero_processo,
                genero, frequencia_anual, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                aluno_id,
                turma_id,
                user_id,
                nome_completo,
                numero_processo,
                genero,
                frequencia_anual,
                utc_now(),
            ),
        )

    logger.debug("alunos.created", aluno_id=aluno_id, turma_id=turma_id)
    return get_aluno(aluno_id)


def get_aluno(aluno_id: str) -> AlunoRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM alunos WHERE id = ?", (aluno_id,)).fetchone()

    return _row_to_aluno(row) if row is not None else None


def get_aluno_by_user(user_id: str) -> AlunoRecord | None:
    """Get the student linked to an authenticated user."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM alunos WHERE user_id = ? AND ativo = 1", (user_id,)
        ).fetchone()

    return _row_to_aluno(row) if row is not None else None


def list_alunos(turma_id: str) -> list[AlunoRecord]:
    """Active students of a class ordered by name."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM alunos
            WHERE turma_id = ? AND ativo = 1
            ORDER BY nome_completo
            """,
            (turma_id,),
        ).fetchall()

    return [_row_to_aluno(row) for row in rows]


def _row_to_aluno(row) -> AlunoRecord:
    return AlunoRecord(
        id=row["id"],
        turma_id=row["turma_id"],
        user_id=row["user_id"],
        nome_completo=row["nome_completo"],
        numero_processo=row["numero_processo"],
        genero=row["genero"],
        frequencia_anual=row["frequencia_anual"],
        ativo=bool(row["ativo"]),
        created_at=row["created_at"],
    )


# =============================================================================
# USER PROFILES
# =============================================================================


def create_user_profile(
    user_id: str,
    tipo_perfil: str,
    nome: str | None = None,
    email: str | None = None,
    escola_id: str | None = None,
) -> UserProfileRecord:
    """Insert a profile for an upstream-authenticated user.

    Raises:
        ValueError: If tipo_perfil is not a known profile
        sqlite3.IntegrityError: If the user already has a profile
    """
    if tipo_perfil not in PERFIS:
        raise ValueError(f"Perfil inválido: {tipo_perfil}")

    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO user_profiles (
                id, user_id, nome, email, tipo_perfil, escola_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (new_id(), user_id, nome, email, tipo_perfil, escola_id, utc_now()),
        )

    logger.debug("user_profiles.created", user_id=user_id, tipo_perfil=tipo_perfil)
    return get_user_profile(user_id)


def get_user_profile(user_id: str) -> UserProfileRecord | None:
    """Get a profile by the authenticated user id."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM user_profiles WHERE user_id = ?", (user_id,)
        ).fetchone()

    if row is None:
        return None

    return UserProfileRecord(
        id=row["id"],
        user_id=row["user_id"],
        nome=row["nome"],
        email=row["email"],
        tipo_perfil=row["tipo_perfil"],
        escola_id=row["escola_id"],
        ativo=bool(row["ativo"]),
        created_at=row["created_at"],
    )
