"""Organisation module — Department, Section, Designation, Degree, Line."""

from hrms.organization.models import Degree, Department, Designation, Line, Section

__all__ = ["Department", "Section", "Designation", "Degree", "Line"]
