"""Fetching upstream image bytes."""

from imgrelay.origin.fetcher import OriginFetcher

__all__ = ["OriginFetcher"]
