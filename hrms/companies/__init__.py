"""Companies module — the tenants that own all organisation data."""

from hrms.companies.models import Company

__all__ = ["Company"]
