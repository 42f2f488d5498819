"""
Infrastructure layer package.

Contains adapters that implement domain ports:
- Database repositories (async SQLAlchemy)
- External API clients (MetaAPI over httpx)

This layer depends on domain ports and may import external libraries.
"""
