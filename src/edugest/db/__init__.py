"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization
- Repository functions for schools, disciplines, components, grades,
  formulas, tutorials, audit actions and notifications
"""

from edugest.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
