"""Entry point for titanium-mcp server."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .server import create_server, shutdown
from .utils.project import configure_project_root, find_titanium_project_root


def find_project_root(root: str | Path | None = None) -> str:
    """Find Titanium project root by walking up from CWD.

    Searches for tiapp.xml, then timodule.xml/manifest, then .git.
    Falls back to CWD if no marker is found.

    Args:
        root: Directory to start from (defaults to CWD)

    Returns:
        Absolute path to project root
    """
    return str(find_titanium_project_root(Path(root) if root is not None else None))


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Titanium MCP Server - Build, package and debug Titanium apps via MCP"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project root path. Used when a tool call names no project_dir.",
    )
    parser.add_argument(
        "--project-from-cwd",
        action="store_true",
        default=False,
        help="Auto-detect project from current working directory. "
        "Searches upward for tiapp.xml, timodule.xml/manifest, or .git markers. "
        "Cannot be used with --project.",
    )
    return parser.parse_args(argv)


async def main() -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args()

    if args.project_from_cwd:
        if args.project is not None:
            logger.error("--project-from-cwd cannot be used with --project")
            sys.exit(1)
        project_path = find_project_root()
        logger.info(f"Auto-detected project root: {project_path}")
    else:
        project_path = args.project or os.getcwd()

    configure_project_root(
        use_project_from_cwd=args.project_from_cwd,
        explicit_project_path=args.project,
        startup_cwd=os.getcwd(),
    )

    logger.info(f"Starting Titanium MCP Server (project: {project_path})...")

    mcp = create_server(project_path)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        shutdown()
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
