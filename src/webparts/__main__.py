"""
=============================================================================
WEBPARTS CLI ENTRY POINT
=============================================================================

Serves a directory: files by path, index files for directories, and a
generated listing for directories without one.

    # Current directory on localhost:8080
    python -m webparts

    # Another directory, all interfaces
    python -m webparts ./public --host 0.0.0.0 --port 3000

    # Protect everything with one user
    python -m webparts --user alice:secret

    # JSON access lines
    python -m webparts --log-format json

Flags override WEBPARTS_* environment variables, which override defaults.

=============================================================================
"""

import argparse
import hmac
from typing import List, Optional

from . import __version__
from .authentication import authenticate_basic
from .combinators import Handler, choose, compose
from .config import ServerConfig, configure_logging
from .files import browse_home, dir_home
from .matchers import GET, HEAD
from .responses import method_not_allowed, not_found
from .server import start_web_server


def build_app(credentials: Optional[str] = None) -> Handler:
    """
    The directory-serving application.

    ``credentials`` ("user:password") puts every route behind Basic
    authentication.
    """
    read_only = choose([GET, HEAD])
    app = choose([
        compose(read_only, choose([browse_home(), dir_home(), not_found()])),
        method_not_allowed(allowed=("GET", "HEAD")),
    ])
    if not credentials:
        return app

    expected_user, _, expected_password = credentials.partition(":")

    def check(username: str, password: str) -> bool:
        return (
            hmac.compare_digest(username.encode(), expected_user.encode())
            and hmac.compare_digest(password.encode(), expected_password.encode())
        )
    return authenticate_basic(check, app)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="webparts",
        description="Serve a directory over HTTP with composable handlers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webparts                        # Serve the current directory
  python -m webparts ./public --port 3000   # Another directory and port
  python -m webparts --user alice:secret    # Require Basic authentication
  python -m webparts --no-compression       # Never gzip/deflate
        """,
    )
    env = ServerConfig.from_env()

    parser.add_argument(
        "home_dir", nargs="?", default=env.home_dir,
        help="Directory to serve (default: current directory)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H", default=env.host,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p", type=int, default=env.port,
        help="Port to listen on (default: 8080)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--index", default=env.index_file,
        help="Index file served for directories (default: index.html)",
    )
    parser.add_argument(
        "--no-compression", dest="compression", action="store_false", default=env.compression,
        help="Disable gzip/deflate encoding",
    )
    parser.add_argument(
        "--user", "-u", default=None, metavar="USER:PASSWORD",
        help="Require HTTP Basic authentication with these credentials",
    )
    parser.add_argument(
        "--realm", default=env.auth_realm,
        help="Realm announced in authentication challenges",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l", type=str.upper, default=env.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default=env.log_format,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v", action="version", version=f"webparts {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    env = ServerConfig.from_env()

    config = ServerConfig(
        host=args.host,
        port=args.port,
        home_dir=args.home_dir,
        index_file=args.index,
        compression=args.compression,
        compression_min_size=env.compression_min_size,
        log_level=args.log_level,
        log_format=args.log_format,
        server_name=env.server_name,
        auth_realm=args.realm,
        max_request_size=env.max_request_size,
        keep_alive_timeout=env.keep_alive_timeout,
    )

    configure_logging(config.log_level, config.log_format)
    try:
        config.validate()
    except ValueError as exc:
        raise SystemExit(f"webparts: {exc}")

    start_web_server(config, build_app(args.user))


if __name__ == "__main__":
    main()
