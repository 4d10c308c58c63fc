"""Scraping subsystem.

Structure:
- base.py: record types, the fetcher and the spider contract
- helpers.py: pure normalizers (ISO durations, slugs, CDN rewrite)
- spiders/: one extractor per source layout (video pages, cosplay galleries)
- pipeline.py: dedup gate + persistence + cache invalidation
- runner.py: tiny CLI entrypoint for manual runs

Fetching uses httpx, parsing uses selectolax.
"""
