"""Entry point for the web server.

Usage:
    python -m coursegen.web [--port PORT] [--host HOST] [--config FILE]
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv


def main() -> int:
    """Run the web server."""
    parser = argparse.ArgumentParser(
        description="Course Generation API server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Pipeline config.yaml (searched for when omitted)",
    )
    parser.add_argument(
        "--require-auth",
        action="store_true",
        help="Reject requests without an Authorization: Bearer header",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()
    load_dotenv()

    # Import here to avoid loading FastAPI before parsing args
    import uvicorn
    from .backend.dependencies import get_config

    # Update config with CLI args
    config = get_config()
    config.host = args.host
    config.port = args.port
    config.config_path = args.config
    config.require_auth = args.require_auth

    print("Starting Course Generation API...")
    print(f"  Host: {args.host}")
    print(f"  Port: {args.port}")
    print(f"  Config: {args.config.absolute() if args.config else 'auto'}")
    print(f"  URL: http://{args.host}:{args.port}")
    print()

    uvicorn.run(
        "coursegen.web.backend.app:create_app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        factory=True,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
