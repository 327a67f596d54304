"""ihub-oauth entry point."""

import argparse
import logging

from ihub_oauth.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="iHub OAuth - authorization endpoint with PKCE and consent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ihub-oauth serve                      Start on 127.0.0.1:8080
  ihub-oauth serve --host 0.0.0.0       Listen on all interfaces
  ihub-oauth serve --dev                Auto-reload on source changes
""",
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", "-p", type=int, default=8080, help="Port (default: 8080)")
    serve.add_argument("--dev", action="store_true", help="Enable auto-reload")
    serve.add_argument("--log-level", type=str, default="INFO", help="Logging level")

    args = parser.parse_args()
    if args.command != "serve":
        parser.print_help()
        return

    setup_logging(level=args.log_level)

    from ihub_oauth.api.serve import run_api_server

    run_api_server(host=args.host, port=args.port, dev=args.dev)


if __name__ == "__main__":
    main()
