"""
Dependency wiring.
"""

from .container import Container
from .bootstrap import bootstrap_dependencies, build_engine, create_gateway

__all__ = ["Container", "bootstrap_dependencies", "build_engine", "create_gateway"]
