"""
REST transport for Plan Search.
"""

from plansearch.api.app import create_app, get_query_engine, get_store

__all__ = ["create_app", "get_query_engine", "get_store"]
