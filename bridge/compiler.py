# =============================================================================
# bridge/compiler.py  —  Tool Registry Compiler
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns the scanner's RawToolDeclarations into a Registry of validated
#   ToolDefinitions, then decides what an EMPTY registry should become.
#
# VALIDATION (per declaration, in order):
#   1. name must be a non-empty string          → else skipped with a warning
#   2. schema must be a mapping                 → else skipped with a warning
#      (a JSON-Schema meta-check also runs, but only warns)
#   3. routing key = path, or the source file when path is missing
#   4. insert under name; a later declaration replaces an earlier one
#
# EMPTY REGISTRY POLICY (CompileMode):
#   STRICT  →  NoToolDefinitionsError
#   EMPTY   →  the empty registry, as-is (used for smoke tests)
#   DEFAULT →  a registry holding only the built-in echo tool
# =============================================================================

from enum import Enum
import logging
from pathlib import Path
from typing import Iterable, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from bridge.annotations import find_tools
from bridge.exceptions import NoToolDefinitionsError
from bridge.models import RawToolDeclaration, Registry, ToolDefinition, echo_registry

logger = logging.getLogger(__name__)


class CompileMode(str, Enum):
    DEFAULT = "default"
    STRICT = "strict"
    EMPTY = "empty"

    @classmethod
    def from_flags(cls, strict: bool = False, empty: bool = False) -> "CompileMode":
        """Strict beats empty; neither flag means DEFAULT."""
        if strict:
            return cls.STRICT
        if empty:
            return cls.EMPTY
        return cls.DEFAULT


def check_schema(tool_name: str, schema: dict, source_location: str) -> bool:
    """Advisory JSON-Schema check.  Logs a warning and returns False on failure."""
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        logger.warning(f'Invalid JSON Schema for tool "{tool_name}" in {source_location}.')
        logger.warning(e.message)
        return False
    return True


def process_tools(raw_tools: Iterable[RawToolDeclaration]) -> Registry:
    """Validate raw declarations and build the registry (last one wins)."""
    registry: Registry = {}

    for raw in raw_tools:
        if not isinstance(raw.name, str) or not raw.name:
            logger.warning(
                f"Skipping tool in {raw.source_location} due to missing or invalid name."
            )
            continue

        if not isinstance(raw.schema, dict):
            logger.warning(
                f'Skipping tool "{raw.name}" in {raw.source_location} '
                "due to missing or invalid schema."
            )
            continue
        check_schema(raw.name, raw.schema, raw.source_location)

        routing_key = raw.path if isinstance(raw.path, str) and raw.path else raw.source_location

        if raw.name in registry:
            logger.info(f'Tool "{raw.name}" redeclared in {raw.source_location}; keeping the later one.')

        # Overwriting keeps the slot of the first declaration of this name.
        registry[raw.name] = ToolDefinition(
            name=raw.name,
            routing_key=routing_key,
            schema=raw.schema,
            description=raw.description if isinstance(raw.description, str) else "",
        )

    logger.info(f"Processed {len(registry)} valid tool definitions.")
    return registry


def apply_empty_policy(registry: Registry, mode: CompileMode = CompileMode.DEFAULT) -> Registry:
    """Return registry unchanged unless it is empty; then apply mode."""
    if registry:
        return registry

    logger.warning("No valid tool definitions found in project.")
    if mode is CompileMode.STRICT:
        raise NoToolDefinitionsError()
    if mode is CompileMode.EMPTY:
        logger.info("MCP_MODE=empty, generating empty tools file.")
        return {}

    logger.info('No tools found, creating default "echo" tool.')
    return echo_registry()


def compile_registry(
    raw_tools: Iterable[RawToolDeclaration],
    mode: CompileMode = CompileMode.DEFAULT,
) -> Registry:
    return apply_empty_policy(process_tools(raw_tools), mode)


def generate(root: Union[str, Path] = ".", mode: CompileMode = CompileMode.DEFAULT) -> Registry:
    """Scan root for annotations and compile them into a registry.

    Raises:
        NoToolDefinitionsError: in STRICT mode when nothing usable was found.
    """
    return compile_registry(find_tools(root), mode)
