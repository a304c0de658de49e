"""SQLite database connection and schema management.

Provides connection management and schema initialization for EduGest.
"""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import structlog

from edugest.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

# Current database path (module-level, set by init_db)
_db_path: Path | None = None


def new_id() -> str:
    """Generate a record id (uuid4 hex)."""
    return uuid.uuid4().hex


def utc_now() -> str:
    """Current UTC time as ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def get_db_path() -> Path:
    """Path used by get_db(): the init_db() path, else the configured one."""
    if _db_path is not None:
        return _db_path
    return Path(load_app_config().database.path)


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to the configured path
            ($EDUGEST_DB_PATH or database.path)
    """
    global _db_path
    _db_path = Path(db_path) if db_path is not None else get_db_path()

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM turmas").fetchall()
    """
    db_path = get_db_path()

    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Schools and their classes
        CREATE TABLE IF NOT EXISTS escolas (
            id TEXT PRIMARY KEY,
            nome TEXT NOT NULL,
            codigo_escola TEXT UNIQUE,
            provincia TEXT,
            municipio TEXT,
            ativa INTEGER NOT NULL DEFAULT 1,
            bloqueada INTEGER NOT NULL DEFAULT 0,
            bloqueado_motivo TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS turmas (
            id TEXT PRIMARY KEY,
            escola_id TEXT NOT NULL REFERENCES escolas(id) ON DELETE CASCADE,
            nome TEXT NOT NULL,
            ano_lectivo TEXT,
            nivel_ensino TEXT,
            classe TEXT,
            professor_id TEXT,
            created_at TEXT NOT NULL
        );

        -- Profiles of upstream-authenticated users
        CREATE TABLE IF NOT EXISTS user_profiles (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL UNIQUE,
            nome TEXT,
            email TEXT,
            tipo_perfil TEXT NOT NULL CHECK(tipo_perfil IN (
                'SUPERADMIN', 'ESCOLA', 'PROFESSOR', 'SECRETARIO', 'ALUNO', 'ENCARREGADO'
            )),
            escola_id TEXT REFERENCES escolas(id) ON DELETE SET NULL,
            ativo INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS alunos (
            id TEXT PRIMARY KEY,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            user_id TEXT,
            nome_completo TEXT NOT NULL,
            numero_processo TEXT UNIQUE,
            genero TEXT CHECK(genero IN ('M', 'F')),
            frequencia_anual REAL,
            ativo INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL
        );

        -- Disciplines and evaluation components
        CREATE TABLE IF NOT EXISTS disciplinas (
            id TEXT PRIMARY KEY,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            professor_id TEXT,
            nome TEXT NOT NULL,
            codigo_disciplina TEXT NOT NULL,
            carga_horaria INTEGER,
            descricao TEXT,
            ordem INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS disciplinas_obrigatorias (
            disciplina_id TEXT NOT NULL REFERENCES disciplinas(id) ON DELETE CASCADE,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            PRIMARY KEY (disciplina_id, turma_id)
        );

        CREATE TABLE IF NOT EXISTS componentes_avaliacao (
            id TEXT PRIMARY KEY,
            disciplina_id TEXT NOT NULL REFERENCES disciplinas(id) ON DELETE CASCADE,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            nome TEXT NOT NULL,
            codigo_componente TEXT NOT NULL,
            peso_percentual REAL NOT NULL CHECK(peso_percentual > 0 AND peso_percentual <= 100),
            escala_minima REAL NOT NULL DEFAULT 0,
            escala_maxima REAL NOT NULL DEFAULT 20,
            obrigatorio INTEGER NOT NULL DEFAULT 1,
            ordem INTEGER NOT NULL DEFAULT 1,
            trimestre INTEGER NOT NULL DEFAULT 1 CHECK(trimestre IN (1, 2, 3)),
            descricao TEXT,
            is_calculated INTEGER NOT NULL DEFAULT 0,
            formula_expression TEXT,
            depends_on_components TEXT NOT NULL DEFAULT '[]',
            tipo_calculo TEXT NOT NULL DEFAULT 'trimestral'
                CHECK(tipo_calculo IN ('trimestral', 'anual')),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (disciplina_id, trimestre, codigo_componente)
        );

        -- Formulas
        CREATE TABLE IF NOT EXISTS formulas (
            id TEXT PRIMARY KEY,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            disciplina_id TEXT NOT NULL REFERENCES disciplinas(id) ON DELETE CASCADE,
            expressao TEXT NOT NULL,
            componentes_usados TEXT NOT NULL DEFAULT '[]',
            validada INTEGER NOT NULL DEFAULT 0,
            mensagem_validacao TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (turma_id, disciplina_id)
        );

        CREATE TABLE IF NOT EXISTS formula_configuracoes (
            id TEXT PRIMARY KEY,
            disciplina_id TEXT NOT NULL REFERENCES disciplinas(id) ON DELETE CASCADE,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            tipo TEXT NOT NULL CHECK(tipo IN ('NF', 'MT')),
            formula_expression TEXT NOT NULL,
            pesos_trimestres TEXT,
            descricao TEXT,
            ativo INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (disciplina_id, turma_id, tipo)
        );

        -- Grades
        CREATE TABLE IF NOT EXISTS notas (
            id TEXT PRIMARY KEY,
            aluno_id TEXT NOT NULL REFERENCES alunos(id) ON DELETE CASCADE,
            componente_id TEXT NOT NULL REFERENCES componentes_avaliacao(id) ON DELETE CASCADE,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            trimestre INTEGER NOT NULL CHECK(trimestre IN (1, 2, 3)),
            valor REAL NOT NULL,
            lancado_por TEXT,
            observacao TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (aluno_id, componente_id, trimestre)
        );

        CREATE TABLE IF NOT EXISTS notas_finais (
            id TEXT PRIMARY KEY,
            aluno_id TEXT NOT NULL REFERENCES alunos(id) ON DELETE CASCADE,
            turma_id TEXT NOT NULL REFERENCES turmas(id) ON DELETE CASCADE,
            disciplina_id TEXT NOT NULL REFERENCES disciplinas(id) ON DELETE CASCADE,
            trimestre INTEGER NOT NULL CHECK(trimestre IN (1, 2, 3)),
            nota_final REAL NOT NULL,
            classificacao TEXT NOT NULL,
            calculo_detalhado TEXT NOT NULL DEFAULT '{}',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (aluno_id, turma_id, disciplina_id, trimestre)
        );

        -- Tutorials
        CREATE TABLE IF NOT EXISTS tutoriais (
            id TEXT PRIMARY KEY,
            titulo TEXT NOT NULL,
            descricao TEXT,
            url_video TEXT NOT NULL,
            thumbnail_url TEXT,
            categoria TEXT NOT NULL DEFAULT 'geral' CHECK(categoria IN (
                'geral', 'login', 'turmas', 'notas', 'relatorios', 'configuracoes'
            )),
            ordem INTEGER NOT NULL DEFAULT 0,
            publico INTEGER NOT NULL DEFAULT 1,
            ativo INTEGER NOT NULL DEFAULT 1,
            created_by TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS tutorial_perfis (
            tutorial_id TEXT NOT NULL REFERENCES tutoriais(id) ON DELETE CASCADE,
            perfil TEXT NOT NULL CHECK(perfil IN (
                'ESCOLA', 'PROFESSOR', 'SECRETARIO', 'ALUNO', 'ENCARREGADO'
            )),
            PRIMARY KEY (tutorial_id, perfil)
        );

        -- Audit log of superadmin actions
        CREATE TABLE IF NOT EXISTS superadmin_actions (
            id TEXT PRIMARY KEY,
            superadmin_user_id TEXT NOT NULL,
            action_type TEXT NOT NULL,
            target_escola_id TEXT,
            action_details TEXT NOT NULL DEFAULT '{}',
            ip_address TEXT NOT NULL DEFAULT 'unknown',
            user_agent TEXT NOT NULL DEFAULT 'unknown',
            created_at TEXT NOT NULL
        );

        -- In-app notifications
        CREATE TABLE IF NOT EXISTS notificacoes (
            id TEXT PRIMARY KEY,
            destinatario_id TEXT NOT NULL,
            tipo TEXT NOT NULL,
            titulo TEXT NOT NULL,
            mensagem TEXT NOT NULL,
            dados_adicionais TEXT NOT NULL DEFAULT '{}',
            lida INTEGER NOT NULL DEFAULT 0,
            lida_em TEXT,
            created_at TEXT NOT NULL
        );

        -- Índices
        CREATE INDEX IF NOT EXISTS idx_alunos_turma ON alunos(turma_id);
        CREATE INDEX IF NOT EXISTS idx_disciplinas_turma ON disciplinas(turma_id);
        CREATE INDEX IF NOT EXISTS idx_componentes_disciplina ON componentes_avaliacao(disciplina_id);
        CREATE INDEX IF NOT EXISTS idx_notas_aluno ON notas(aluno_id, trimestre);
        CREATE INDEX IF NOT EXISTS idx_notas_componente ON notas(componente_id, trimestre);
        CREATE INDEX IF NOT EXISTS idx_notas_finais_turma ON notas_finais(turma_id, disciplina_id, trimestre);
        CREATE INDEX IF NOT EXISTS idx_superadmin_actions_created ON superadmin_actions(created_at);
        CREATE INDEX IF NOT EXISTS idx_notificacoes_destinatario ON notificacoes(destinatario_id, lida);
        """
    )
