#!/usr/bin/env python3
"""
memdb -- users/products microservice over a thread-safe in-memory store.

Usage:
  python main.py
  python main.py --port 9000
  python main.py --host 0.0.0.0 --reload

Environment variables (see core/config.py for the full list):
  SECRET_KEY       JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DEBUG            true to auto-generate SECRET_KEY for local development.
  ADMIN_PASSWORD   Password for the seeded "admin" account.
  SEED_DEMO_DATA   false to start with an empty store.
  LOG_LEVEL        DEBUG, INFO, WARNING, ERROR or CRITICAL.

All data lives in process memory and is lost when the server stops.
"""

import argparse

import uvicorn

_ENDPOINTS = [
    ("GET", "/api/v1/health", "health check"),
    ("POST", "/api/v1/auth/login", "obtain a JWT"),
    ("GET", "/api/v1/users", "list users"),
    ("POST", "/api/v1/users", "register a user"),
    ("GET", "/api/v1/users/{id}", "get one user"),
    ("GET", "/api/v1/products", "list products"),
    ("POST", "/api/v1/products", "create a product"),
    ("GET", "/api/v1/products/{id}", "get one product"),
]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memdb",
        description="Run the users/products API on uvicorn.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    return parser


def _print_banner(host: str, port: int) -> None:
    base = f"http://{host}:{port}"
    print(f"\n  memdb API at {base}\n")
    for method, path, summary in _ENDPOINTS:
        print(f"  {method:<5} {path:<26} {summary}")
    print(f"\n  Try: curl {base}/api/v1/health\n")


def main() -> None:
    args = _build_parser().parse_args()
    _print_banner(args.host, args.port)
    # Import string rather than the app object so --reload works.
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
