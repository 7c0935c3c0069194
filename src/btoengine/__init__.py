"""
btoengine - BTO flat allocation lifecycle and eligibility engine.

- applicant eligibility and one active application per applicant
- officer registration with slot capacity and non-overlapping windows
- per-flat-type inventory ledger
- enquiry threads, withdrawal requests, booking reports
- CSV / SQLAlchemy / in-memory snapshot persistence
"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports keep `import btoengine` cheap for the CLI.
def __getattr__(name: str):
    if name == "BTOEngine":
        from btoengine.application.engine import BTOEngine
        return BTOEngine
    if name == "Settings":
        from btoengine.config import Settings
        return Settings
    if name == "create_settings":
        from btoengine.config import create_settings
        return create_settings
    if name == "build_engine":
        from btoengine.core.di import build_engine
        return build_engine
    if name == "Result":
        from btoengine.core.errors import Result
        return Result
    raise AttributeError(f"module 'btoengine' has no attribute '{name}'")


__all__ = ["BTOEngine", "Settings", "create_settings", "build_engine", "Result", "__version__"]
