from .visit_m import VisitMongo

__all__ = ["VisitMongo"]
