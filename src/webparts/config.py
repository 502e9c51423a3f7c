"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One dataclass holding every server option.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m webparts --port 3000                             │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── WEBPARTS_PORT=3000 python -m webparts                      │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

``ServerConfig`` is for the process that starts the server. Handlers
never see it; they read the frozen ``HttpRuntime`` built by
``to_runtime()``.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from .http.context import HttpRuntime
from .http.mime_types import extend_mime_types


ENV_PREFIX = "WEBPARTS_"

LOG_FORMATS = ("text", "json")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for the web server.

    NETWORK
    - host, port, keep_alive_timeout, max_request_size

    FILES
    - home_dir, index_file, compression, compression_min_size, mime_types

    LOGGING
    - log_level, log_format

    IDENTITY
    - server_name, auth_realm
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (production)
    """

    port: int = 8080

    keep_alive_timeout: float = 5.0
    """
    Seconds an idle keep-alive connection may wait for its next request
    before the server closes it.
    """

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest accepted request (head plus body); larger gets a 413."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    home_dir: str = "."
    """Root directory for ``browse_home``, ``dir_home`` and friends."""

    index_file: str = "index.html"

    compression: bool = True
    """Allow gzip/deflate for compressible MIME types."""

    compression_min_size: int = 1024
    """Files smaller than this are always sent uncompressed."""

    mime_types: Dict[str, Tuple[str, bool]] = field(default_factory=dict)
    """
    Extra extension -> (MIME name, compressible) entries, consulted before
    the built-in table:

        ServerConfig(mime_types={".avif": ("image/avif", False)})
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    log_format: str = "text"
    """
    'text' for Common Log Format access lines, 'json' for one JSON object
    per request (log aggregators).
    """

    # ─────────────────────────────────────────────────────────────────────
    # IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "webparts/1.0"
    """Value of the Server header."""

    auth_realm: str = "Restricted"
    """Realm announced in Basic authentication challenges."""

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from ``WEBPARTS_*`` environment variables.

            WEBPARTS_HOST             bind address
            WEBPARTS_PORT             port
            WEBPARTS_HOME_DIR         served directory
            WEBPARTS_INDEX_FILE       directory index name
            WEBPARTS_COMPRESSION      1/0, true/false, yes/no, on/off
            WEBPARTS_COMPRESSION_MIN_SIZE
            WEBPARTS_LOG_LEVEL        DEBUG, INFO, ...
            WEBPARTS_LOG_FORMAT       text or json
            WEBPARTS_SERVER_NAME
            WEBPARTS_AUTH_REALM
            WEBPARTS_MAX_REQUEST_SIZE
            WEBPARTS_KEEP_ALIVE_TIMEOUT

        Unset variables keep the dataclass default.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        compression = get("COMPRESSION", None)
        return cls(
            host=get("HOST", defaults.host),
            port=int(get("PORT", defaults.port)),
            home_dir=get("HOME_DIR", defaults.home_dir),
            index_file=get("INDEX_FILE", defaults.index_file),
            compression=defaults.compression if compression is None else _env_bool(compression),
            compression_min_size=int(get("COMPRESSION_MIN_SIZE", defaults.compression_min_size)),
            log_level=get("LOG_LEVEL", defaults.log_level),
            log_format=get("LOG_FORMAT", defaults.log_format),
            server_name=get("SERVER_NAME", defaults.server_name),
            auth_realm=get("AUTH_REALM", defaults.auth_realm),
            max_request_size=int(get("MAX_REQUEST_SIZE", defaults.max_request_size)),
            keep_alive_timeout=float(get("KEEP_ALIVE_TIMEOUT", defaults.keep_alive_timeout)),
        )

    def validate(self) -> None:
        """
        Raise ``ValueError`` on the first invalid value.

        Called at startup so a bad deployment fails before it serves
        anything.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not Path(self.home_dir).is_dir():
            raise ValueError(f"home_dir is not a directory: {self.home_dir}")

        if self.compression_min_size < 0:
            raise ValueError("compression_min_size must be >= 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log_level: {self.log_level}")

        if not self.index_file or "/" in self.index_file:
            raise ValueError(f"index_file must be a bare file name, got {self.index_file!r}")

    def to_runtime(self) -> HttpRuntime:
        """The immutable settings every request context carries."""
        return HttpRuntime(
            home_directory=Path(self.home_dir).resolve(),
            mime_types_map=extend_mime_types(self.mime_types),
            compression=self.compression,
            compression_min_size=self.compression_min_size,
            index_file=self.index_file,
            server_name=self.server_name,
            auth_realm=self.auth_realm,
        )


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Configure the root logger for command-line use.

    With ``fmt="json"`` only the message is printed, since access lines
    are already JSON objects.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    if fmt == "json":
        format_string = "%(message)s"
    else:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=numeric,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("webparts").setLevel(numeric)
