"""API routers package."""

from onboarding_api.routers import (
    active_directory,
    audit,
    auth,
    exchange,
    exports,
    hires,
    hris_sync,
    microsoft_graph,
    settings,
    users,
    whatsapp,
)

__all__ = [
    "active_directory",
    "audit",
    "auth",
    "exchange",
    "exports",
    "hires",
    "hris_sync",
    "microsoft_graph",
    "settings",
    "users",
    "whatsapp",
]
