"""
Wiring entry point: settings in, container (or engine) out.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from btoengine.application.engine import BTOEngine
from btoengine.application.lifecycle.base import Clock
from btoengine.application.ports.persistence_port import PersistenceGateway
from btoengine.config.settings import STORAGE_BACKENDS, Settings
from btoengine.core.di.container import Container
from btoengine.core.errors import ValidationError

logger = logging.getLogger(__name__)


def sqlite_url_for(settings: Settings) -> str:
    if settings.storage.db_url:
        return settings.storage.db_url
    return f"sqlite:///{Path(settings.storage.data_dir).expanduser() / 'bto.db'}"


def create_gateway(settings: Settings) -> PersistenceGateway:
    backend = settings.storage.backend
    if backend == "csv":
        from btoengine.infrastructure.stores.csv_store import CsvPersistenceGateway

        return CsvPersistenceGateway(settings.storage.data_dir, files=settings.storage.files)
    if backend == "sqlite":
        from btoengine.infrastructure.stores.sqlalchemy_store import SqlAlchemyPersistenceGateway

        return SqlAlchemyPersistenceGateway(sqlite_url_for(settings))
    if backend == "memory":
        from btoengine.infrastructure.stores.memory_store import InMemoryPersistenceGateway

        return InMemoryPersistenceGateway()
    raise ValidationError(
        message=f"Unknown storage backend {backend!r}; expected one of {', '.join(STORAGE_BACKENDS)}",
        context={"field": "storage.backend", "value": backend},
    )


def bootstrap_dependencies(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> Container:
    """
    Register Settings, the configured PersistenceGateway and a BTOEngine
    singleton built on top of them. Nothing is loaded until resolved.
    """
    settings = settings or Settings()
    container = Container()
    container.register_instance(Settings, settings)
    container.register(PersistenceGateway, lambda: create_gateway(settings), singleton=True)
    container.register(
        BTOEngine,
        lambda: BTOEngine(container.resolve(PersistenceGateway), clock=clock, settings=settings),
        singleton=True,
    )
    logger.debug("Dependencies registered for %s backend", settings.storage.backend)
    return container


def build_engine(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> BTOEngine:
    return bootstrap_dependencies(settings, clock).resolve(BTOEngine)
