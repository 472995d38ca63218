"""API Routers for PRD Wizard."""

from . import questioning

__all__ = ["questioning"]
