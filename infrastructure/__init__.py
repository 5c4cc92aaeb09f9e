"""
PLEXUS INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML + environment settings, logging setup
- logger: Event recorder pipe with in-memory buffer and JSONL file log
"""

from infrastructure.config import PlexusSettings, load_settings, configure_logging
from infrastructure.logger import EventRecorder, RecordedEvent

__all__ = [
    "PlexusSettings",
    "load_settings",
    "configure_logging",
    "EventRecorder",
    "RecordedEvent",
]
