from .persistence_port import PersistenceGateway, Snapshot

__all__ = ["PersistenceGateway", "Snapshot"]
