#!/usr/bin/env python3
"""
sessiongate - stateless OAuth2 login for the web UI.

Runs the login/callback/logout server, and offers small helpers to mint or check
session tokens against the configured AUTH_SESSION_SECRET.
"""

import argparse
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stderr
)

#
# NOTE: Keep server imports lazy (inside functions) so token helpers do not pull in
# FastAPI/uvicorn.
#


def verify_token(token: str) -> int:
    """Print the principal carried by `token`; exit status 1 if it is not accepted."""
    from sessiongate.auth.config import load_auth_config
    from sessiongate.auth.errors import AuthenticationFailed
    from sessiongate.auth.tokens import Authenticator

    cfg = load_auth_config()
    try:
        principal = Authenticator(cfg.session_secret).verify(token)
    except AuthenticationFailed as e:
        print(json.dumps({"ok": False, "reason": type(e).__name__}))
        return 1
    print(json.dumps({"ok": True, "principal": principal}))
    return 0


def issue_token(principal: str, ttl: int) -> int:
    """Print a session token for `principal` (dev helper for downstream handlers)."""
    from sessiongate.auth.config import load_auth_config
    from sessiongate.auth.tokens import Authenticator

    cfg = load_auth_config()
    print(Authenticator(cfg.session_secret).issue(principal, ttl or cfg.cookie.duration_seconds))
    return 0


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Stateless OAuth2 login server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the login server
  python main.py --serve --port 8080

  # Check a session cookie value
  python main.py --verify-token <token>

  # Mint a one-hour session token for local testing
  python main.py --issue-token alice@example.com --ttl 3600
        """,
    )
    parser.add_argument("--serve", action="store_true", help="Run the OAuth login/callback/logout HTTP server")
    parser.add_argument("--host", default="0.0.0.0", help="Server bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Server listen port (default: 8080)")
    parser.add_argument("--verify-token", metavar="TOKEN", help="Verify a session token and print its principal")
    parser.add_argument("--issue-token", metavar="PRINCIPAL", help="Issue a session token for PRINCIPAL")
    parser.add_argument(
        "--ttl", type=int, default=0, help="Token lifetime in seconds for --issue-token (default: cookie duration)"
    )

    args = parser.parse_args()

    try:
        if args.serve:
            from sessiongate.api.server import run

            run(host=args.host, port=args.port)
            return

        if args.verify_token:
            sys.exit(verify_token(args.verify_token))

        if args.issue_token:
            sys.exit(issue_token(args.issue_token, args.ttl))

        # No arguments provided
        parser.print_help()

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
