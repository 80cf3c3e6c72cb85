"""Relevance scoring, ranking and federated search.

Primary components:
- ``types``: configuration dataclasses and wire response models.
- ``matching`` / ``scoring`` / ``boosting``: per-field match detection,
  weighted field scores and ranking boosts.
- ``orchestrator``: the single-model pipeline (fetch, score, filter, sort,
  paginate).
- ``federation``: concurrent multi-model search with graceful degradation.
- ``service``: ``search_one`` / ``search_all`` entry points.
"""
