"""
Ingestion package for Plan Search.

Provider feed download, XML parsing and the worker loop that persists and
indexes them.
"""

from plansearch.ingestion.fetcher import FeedFetcher
from plansearch.ingestion.worker import IngestionWorker, ProviderReport
from plansearch.ingestion.xml_parser import parse_plan_list

__all__ = ["FeedFetcher", "IngestionWorker", "ProviderReport", "parse_plan_list"]
