from .visit_repository import InMemoryVisitRepository

__all__ = ["InMemoryVisitRepository"]
