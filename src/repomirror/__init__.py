"""Webhook-driven mirror of a single GitHub repository.

This package keeps a local, eventually-consistent copy of one repository's
metadata, providing:
- Startup reconciliation against the GitHub REST API (cold start, stale, fresh)
- Bulk scraping of issues, pull requests and their comments
- Incremental merging of webhook events into the cached issue state
- Key/value cache persistence (in-memory or PostgreSQL)
- Republishing of every processed event to subscribers, logs and metrics
"""
