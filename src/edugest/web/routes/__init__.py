"""Route handlers for the Web API."""

from edugest.web.routes.health import router as health_router
from edugest.web.routes.auth import router as auth_router
from edugest.web.routes.disciplines import router as disciplines_router
from edugest.web.routes.formulas import router as formulas_router
from edugest.web.routes.grades import router as grades_router
from edugest.web.routes.final_grades import router as final_grades_router
from edugest.web.routes.students import router as students_router
from edugest.web.routes.tutorials import router as tutorials_router
from edugest.web.routes.audit import router as audit_router
from edugest.web.routes.notifications import router as notifications_router

__all__ = [
    "health_router",
    "auth_router",
    "disciplines_router",
    "formulas_router",
    "grades_router",
    "final_grades_router",
    "students_router",
    "tutorials_router",
    "audit_router",
    "notifications_router",
]
