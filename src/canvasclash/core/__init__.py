"""Cross-cutting infrastructure for canvasclash."""

from __future__ import annotations

from canvasclash.core.logging import bind_session, configure_logging, unbind_session

__all__ = ["bind_session", "configure_logging", "unbind_session"]
