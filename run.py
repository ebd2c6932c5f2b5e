#!/usr/bin/env python3
"""
CaseDesk Startup Script

Checks the environment, prepares local storage and starts the API server.
"""

import argparse
import importlib.util
import sys
from pathlib import Path

import uvicorn

REQUIRED_MODULES = ["fastapi", "sqlalchemy", "pydantic_settings", "anthropic", "aiofiles", "boto3", "docx", "jose"]


def check_requirements():
    """Check if all required dependencies are installed."""
    missing = [name for name in REQUIRED_MODULES if importlib.util.find_spec(name) is None]
    if missing:
        print(f"❌ Missing dependencies: {', '.join(missing)}")
        print("Please run: pip install -e .")
        return False

    print("✅ All required dependencies are installed")
    return True


def check_environment():
    """Report on configuration that changes behaviour; only a bad storage backend is fatal."""
    from casedesk.config import settings

    print(f"🗄️  Database: {settings.sqlalchemy_database_url.split('@')[-1]}")

    if settings.storage_backend not in ("local", "s3"):
        print(f"❌ Unknown STORAGE_BACKEND: {settings.storage_backend}")
        return False
    print(f"📁 Blob storage backend: {settings.storage_backend}")

    if not settings.anthropic_api_key:
        print("⚠️  ANTHROPIC_API_KEY is not set; document summaries will be disabled")

    if settings.secret_key == "change_me_in_production":
        print("⚠️  SECRET_KEY is using the default value")

    return True


def setup_directories():
    """Create required directories if they don't exist."""
    from casedesk.config import settings

    if settings.storage_backend == "local":
        Path(settings.blob_storage_path).mkdir(parents=True, exist_ok=True)
        print("✅ Blob storage directory ready")


def main():
    """Main startup function."""
    parser = argparse.ArgumentParser(description="CaseDesk API server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes")
    parser.add_argument("--log-level", default="info", help="Log level")
    parser.add_argument("--check-only", action="store_true", help="Only check requirements and exit")

    args = parser.parse_args()

    print("⚖️  CaseDesk Startup")
    print("=" * 40)

    if not check_requirements():
        sys.exit(1)

    if not check_environment():
        sys.exit(1)

    setup_directories()

    if args.check_only:
        print("✅ All checks passed! System is ready to start.")
        sys.exit(0)

    print(f"\n🚀 Server will be available at: http://{args.host}:{args.port}")
    print(f"📚 API Documentation: http://{args.host}:{args.port}/docs")
    print("=" * 40)

    try:
        uvicorn.run(
            "casedesk.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers if not args.reload else 1,
            log_level=args.log_level,
            access_log=True
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down CaseDesk...")


if __name__ == "__main__":
    main()
