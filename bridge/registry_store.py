# =============================================================================
# bridge/registry_store.py  —  mcp.tools.json persistence
# =============================================================================
#
# File layout (array order = registry order):
#
#   {
#     "tools": [
#       { "name": "...", "description": "...", "path": "...", "schema": {...} }
#     ]
#   }
#
# save_registry() is used by `build`; load_registry() by `start`.  Loading
# never fails: a missing or broken file means "serve the echo tool".
# =============================================================================

import json
import logging
from pathlib import Path
from typing import Union

from bridge.models import Registry, ToolDefinition, echo_registry

logger = logging.getLogger(__name__)


def registry_to_json(registry: Registry) -> str:
    return json.dumps(
        {"tools": [tool.to_dict() for tool in registry.values()]},
        indent=2,
        ensure_ascii=False,
    )


def save_registry(registry: Registry, path: Union[str, Path]) -> Path:
    """Write registry to path and return the path written."""
    target = Path(path)
    target.write_text(registry_to_json(registry) + "\n", encoding="utf-8")
    logger.info(f"Wrote {len(registry)} tools to {target}")
    return target


def load_registry(path: Union[str, Path]) -> Registry:
    """Read a registry file, falling back to the echo registry.

    Entries that are not valid tool objects are skipped with a warning.
    An empty "tools" array is returned as an empty registry: it can only have
    been written on purpose (MCP_MODE=empty).
    """
    source = Path(path)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(f"{source} not found. Using default echo tool.")
        return echo_registry()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {source}: {e}. Using default echo tool.")
        return echo_registry()

    entries = data.get("tools") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        logger.warning(f"{source} has no 'tools' array. Using default echo tool.")
        return echo_registry()

    registry: Registry = {}
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping tools[{index}] in {source}: not an object.")
            continue
        try:
            tool = ToolDefinition.from_dict(entry)
        except ValueError as e:
            logger.warning(f"Skipping tools[{index}] in {source}: {e}")
            continue
        registry[tool.name] = tool

    logger.info(f"Loaded {len(registry)} tools from {source}")
    return registry
