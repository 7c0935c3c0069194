"""
Application layer: repository, lifecycles, reports and the engine facade.
"""

from .engine import BTOEngine
from .reports import BookingRecord, ReportFilter, ReportService
from .repository import Repository

__all__ = ["BTOEngine", "BookingRecord", "ReportFilter", "ReportService", "Repository"]
