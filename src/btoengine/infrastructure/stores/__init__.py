from .csv_store import CsvPersistenceGateway
from .memory_store import InMemoryPersistenceGateway
from .sqlalchemy_store import SqlAlchemyPersistenceGateway

__all__ = ["CsvPersistenceGateway", "InMemoryPersistenceGateway", "SqlAlchemyPersistenceGateway"]
