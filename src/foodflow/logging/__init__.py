"""Logging subsystem for FOODFLOW.

Public API::

    from foodflow.logging import configure_logging

    configure_logging(settings.logging)
"""

from foodflow.logging.setup import bind_session, configure_logging, screen_context

__all__ = ["bind_session", "configure_logging", "screen_context"]
