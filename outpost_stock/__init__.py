"""Outpost Stock — Outpost inventory scraper and consolidation pipeline."""

__version__ = "0.1.0"
