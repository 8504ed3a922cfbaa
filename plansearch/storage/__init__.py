"""
Storage package for Plan Search.

Relational persistence of provider feeds in PostgreSQL.
"""

from plansearch.storage.repository import PlanRepository, apply_schema, connect_repository

__all__ = ["PlanRepository", "apply_schema", "connect_repository"]
