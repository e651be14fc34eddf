"""cloud_logging.py – Logging facade shared by every relay module

The Google Cloud Logger instance is created centrally in ``main_driver.py`` and
installed here through :pyfunc:`configure`.  Library modules never build their
own Cloud Logging client; they call :pyfunc:`log_text` which delegates to the
installed logger when available or falls back to the stdlib ``logging``
package otherwise (local runs, tests).
"""

from __future__ import annotations

from typing import Any, Optional
import logging

__all__ = [
    "configure",
    "log_text",
]

_gcp_logger: Optional[Any] = None
_fallback = logging.getLogger("relay")


def configure(gcp_logger: Optional[Any]) -> None:
    """Install (or remove, with ``None``) the Cloud Logging logger."""
    global _gcp_logger  # noqa: PLW0603 – process-wide logging sink
    if gcp_logger is not None and not hasattr(gcp_logger, "log_text"):
        raise TypeError("gcp_logger must expose a log_text(text, severity=...) method")
    _gcp_logger = gcp_logger


def log_text(message: str, *, severity: str = "INFO") -> None:
    """Emit *message* at *severity* to Cloud Logging or the stdlib fallback."""
    level = severity.upper()
    if _gcp_logger is not None:
        _gcp_logger.log_text(message, severity=level)
        return
    _fallback.log(getattr(logging, level, logging.INFO), message)
