"""Command-line interface for the Lichess auth service."""

import argparse
import logging
import sys

from lichess_auth.auth.pkce import generate_pkce_pair


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from lichess_auth.api import create_app
    from lichess_auth.config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
    )
    return 0


def _pkce(args: argparse.Namespace) -> int:
    pair = generate_pkce_pair()
    print(f"code_verifier:         {pair.verifier}")
    print(f"code_challenge:        {pair.challenge}")
    print(f"code_challenge_method: {pair.method}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Lichess Auth - OAuth login with PKCE and cookie sessions"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", help="Bind address (default: HOST setting)")
    serve_parser.add_argument("--port", type=int, help="Port (default: PORT setting)")

    # PKCE command
    subparsers.add_parser(
        "pkce", help="Print a fresh PKCE verifier and its S256 challenge"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        return _serve(args)
    return _pkce(args)


if __name__ == "__main__":
    sys.exit(main())
