"""Application Settings and Configuration.

This module provides application-wide settings read from the environment
with defaults suitable for local runs.

Security Impact:
    - Parser limits default to conservative values
    - Settings never carry document content
"""

import os

# Application metadata
APP_NAME = "migrate-transforms"
APP_VERSION = "1.0.0"

# Default max serialized record size (10MB)
DEFAULT_MAX_RECORD_SIZE = 10 * 1024 * 1024

# File size that switches the record source to streaming (100MB)
DEFAULT_XML_STREAMING_THRESHOLD = 100 * 1024 * 1024


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from environment variables (MT_ prefix).

    Attributes:
        log_level: Logging level name
        log_json: Emit JSON log lines instead of human-readable ones
        max_record_size: Maximum serialized size of one extracted record
        xml_streaming_enabled: Allow automatic streaming for large files
        xml_streaming_threshold: File size in bytes that triggers streaming
        xml_max_events: Maximum streamed items per document
        xml_max_depth: Maximum XML nesting depth
    """

    def __init__(self):
        """Initialize settings from environment."""
        self.app_name = os.getenv("MT_APP_NAME", APP_NAME)

        # Logging
        self.log_level = os.getenv("MT_LOG_LEVEL", "INFO")
        self.log_json = _env_bool("MT_LOG_JSON", "false")

        self.max_record_size = int(os.getenv("MT_MAX_RECORD_SIZE", str(DEFAULT_MAX_RECORD_SIZE)))

        # XML parsing and streaming
        self.xml_streaming_enabled = _env_bool("MT_XML_STREAMING_ENABLED", "true")
        self.xml_streaming_threshold = int(
            os.getenv("MT_XML_STREAMING_THRESHOLD", str(DEFAULT_XML_STREAMING_THRESHOLD))
        )
        self.xml_max_events = int(os.getenv("MT_XML_MAX_EVENTS", "1000000"))
        self.xml_max_depth = int(os.getenv("MT_XML_MAX_DEPTH", "100"))


# Global settings instance
settings = Settings()
