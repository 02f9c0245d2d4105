"""Ingestion — item model, source adapters, and the adapter registry."""

from readgood.ingestion.hn_adapter import HNAdapter
from readgood.ingestion.pinboard_adapter import PinboardAdapter
from readgood.ingestion.reddit_adapter import RedditAdapter
from readgood.ingestion.registry import register_adapter

register_adapter("hn", HNAdapter)
register_adapter("reddit", RedditAdapter)
register_adapter("pinboard", PinboardAdapter)
