"""API route modules, one router per resource."""

from aiforge.api.routes import (
    auth,
    health,
    modules,
    projects,
    requirements,
    tasks,
    tenants,
)

ALL_ROUTERS = [
    health.router,
    auth.router,
    tenants.router,
    projects.router,
    requirements.router,
    modules.router,
    tasks.router,
]

__all__ = [
    "ALL_ROUTERS",
    "auth",
    "health",
    "modules",
    "projects",
    "requirements",
    "tasks",
    "tenants",
]
