from .aggregate_repository import AggregateRepository
from .base_repository import Repository

__all__ = ["AggregateRepository", "Repository"]
