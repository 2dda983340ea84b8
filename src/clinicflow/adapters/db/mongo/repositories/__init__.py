from .visit_repository import MongoVisitRepository

__all__ = ["MongoVisitRepository"]
