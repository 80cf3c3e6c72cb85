"""Shared search engine library.

Subpackages:
- ``searchcore.common``: configuration, logging, and metrics.
- ``searchcore.engine``: matching, scoring, boosting, single-model search and
  federated search.
- ``searchcore.providers``: data fetch and config registry contracts plus
  in-memory implementations.

Usage:
- ``from searchcore.engine.service import create_search_service``

Notes:
- Storage, config authoring and HTTP surfaces live outside this package; the
  engine only talks to them through ``searchcore.providers.base``.
"""
