"""Common utilities shared across the engine.

Includes:
- ``config``: pydantic-based engine settings from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from searchcore.common.config import EngineSettings
- from searchcore.common.logging import configure_logging
"""
