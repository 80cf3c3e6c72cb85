"""Data fetch and config registry adapters.

Primary components:
- ``base``: abstract ``DataFetchProvider`` and ``ConfigRegistry`` contracts.
- ``memory``: in-memory registry and providers, plus a callable adapter for
  existing repository functions.

Guidance:
- Wrap your storage layer in a ``DataFetchProvider`` rather than passing
  records to the engine directly; the engine decides how many to fetch.
"""
