# =============================================================================
# main.py  —  Entry Point for gas-mcp-bridge
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py build            # scan annotations → mcp.tools.json
#   uv run python main.py start            # serve mcp.tools.json over stdio
#
# WHAT HAPPENS:
#   build:
#     1. Walks the project (--root, default ".") for /* @mcp ... */ blocks
#     2. Validates them into a registry (MCP_STRICT / MCP_MODE decide what an
#        empty result means)
#     3. Writes the registry to --output (default mcp.tools.json)
#
#   start:
#     1. Loads mcp.tools.json and .mcp-gas.json
#     2. Registers one MCP tool per registry entry
#     3. Serves over stdio until the client disconnects
#
# The .mcp-gas.json file itself comes from the separate discovery step
# (clasp project + web app deployment); this CLI only reads it.
# =============================================================================

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Optional, Sequence

from dotenv import load_dotenv

# Load .env BEFORE reading Settings, so MCP_STRICT, GAS_API_TOKEN, etc. can
# live in a project-local file.
load_dotenv()

from bridge.compiler import generate
from bridge.config import Settings, configure_logging
from bridge.exceptions import NoToolDefinitionsError
from bridge.registry_store import save_registry

logger = logging.getLogger("gas_mcp_bridge")


def _package_version() -> str:
    try:
        return version("gas-mcp-bridge")
    except PackageNotFoundError:
        return "0.0.0"


def run_build(settings: Settings, root: str, output: Optional[str]) -> int:
    """Build the registry file.  Returns a process exit code."""
    output_path = output or settings.tools_path
    logger.info(f"Running build (mode={settings.compile_mode.value}) in {root}...")
    try:
        registry = generate(root, settings.compile_mode)
        save_registry(registry, output_path)
    except NoToolDefinitionsError as e:
        logger.error(f"Build command failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Build command failed: could not write {output_path}: {e}")
        return 1

    logger.info(f"Successfully generated {output_path} with {len(registry)} tools.")
    return 0


def run_start(settings: Settings, tools: Optional[str], config: Optional[str]) -> int:
    # Imported here so `build` works without loading the MCP stack.
    from server.mcp_server import start_server

    logger.info(f"Starting gas-mcp-bridge v{_package_version()}")
    if config:
        logger.info(f"Using MCP GAS config: {config}")
    start_server(settings, tools_path=tools, config_path=config)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gas-mcp-bridge",
        description="Model Context Protocol bridge for annotated remote tools",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build mcp.tools.json from source annotations")
    build.add_argument("--root", default=".", help="Directory to scan (default: .)")
    build.add_argument("--output", help="Registry file to write (default: mcp.tools.json)")

    start = subparsers.add_parser("start", help="Start the MCP server over stdio")
    start.add_argument("--config", help="Path to .mcp-gas.json (default: ./.mcp-gas.json)")
    start.add_argument("--tools", help="Path to mcp.tools.json (default: ./mcp.tools.json)")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()

    configure_logging(settings.log_level)

    if args.command == "build":
        return run_build(settings, args.root, args.output)
    return run_start(settings, args.tools, args.config)


# =============================================================================
# Script entry point
# =============================================================================
if __name__ == "__main__":
    sys.exit(main())
