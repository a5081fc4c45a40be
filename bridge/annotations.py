# =============================================================================
# bridge/annotations.py  —  Annotation Scanner
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Walks a project tree and pulls tool declarations out of comments like:
#
#       /* @mcp
#        * name: sheet.appendRow
#        * description: Append one row to a sheet
#        * path: sheet.appendRow
#        * schema:
#        *   type: object
#        *   properties:
#        *     values: { type: array, items: { type: string } }
#        *   required: [values]
#        */
#
# HOW IT WORKS (two stages, both pure functions on strings):
#   1. extract_blocks()   →  find every `/* @mcp ... */` body in a file
#   2. normalize_block()  →  drop the ` * ` continuation markers
#      parse_block()      →  YAML-parse the result into a RawToolDeclaration
#
#   iter_declarations() glues the stages to the file walk.  A file that can't
#   be read, or a block that isn't valid YAML, is logged and skipped; the scan
#   itself never fails.
#
# ORDERING:
#   Each directory's files are visited by name before its subdirectories
#   (also by name), and blocks in the order they appear.  The compiler's "last one
#   wins" duplicate rule depends on this order, so it must be deterministic.
# =============================================================================

import logging
import os
import re
import textwrap
from pathlib import Path
from typing import Iterator, Union

import yaml

from bridge.exceptions import AnnotationParseError
from bridge.models import RawToolDeclaration

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".js", ".ts", ".gs")
IGNORED_DIRS = frozenset({"node_modules", "dist", "build"})

# `/*` or `/**`, optional whitespace, the @mcp sentinel, then everything up to
# the first closing `*/`.
_ANNOTATION_RE = re.compile(r"/\*\*?\s*@mcp\b(.*?)\*/", re.DOTALL)

# Leading block-comment continuation marker: "  * " → ""
_CONTINUATION_RE = re.compile(r"^\s*\* ?")


# =============================================================================
# Stage 1: block extraction
# =============================================================================
def extract_blocks(text: str) -> list[str]:
    """Return the body of every `@mcp` block comment in text, in order."""
    return [match.group(1) for match in _ANNOTATION_RE.finditer(text)]


# =============================================================================
# Stage 2: normalization + YAML parsing
# =============================================================================
def normalize_block(body: str) -> str:
    """Strip comment continuation markers and common indentation.

    Only the marker itself is removed, so YAML nesting written after the
    marker (" *   type: object") keeps its relative indentation.
    """
    lines = [_CONTINUATION_RE.sub("", line, count=1) for line in body.splitlines()]
    return textwrap.dedent("\n".join(lines)).strip()


def parse_block(body: str, source_location: str) -> RawToolDeclaration:
    """Parse one block body into a RawToolDeclaration.

    Raises:
        AnnotationParseError: if the normalized body is not valid YAML.
    """
    try:
        data = yaml.safe_load(normalize_block(body))
    except yaml.YAMLError as e:
        raise AnnotationParseError(source_location, str(e)) from e
    return RawToolDeclaration.from_mapping(data, source_location)


# =============================================================================
# File walk
# =============================================================================
def iter_source_files(root: Union[str, Path] = ".") -> Iterator[Path]:
    """Yield every source file under root in a stable order.

    Skips node_modules/, dist/, build/ and anything whose name starts with
    a dot (.git/, .clasp.json, ...).
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in IGNORED_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.startswith(".") or not filename.endswith(SOURCE_EXTENSIONS):
                continue
            yield Path(dirpath, filename).resolve()


def scan_file(path: Path) -> Iterator[RawToolDeclaration]:
    """Yield the declarations of one file; unreadable files yield nothing."""
    source_location = str(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read file {path.name}: {e}")
        return

    for body in extract_blocks(content):
        if not body.strip():
            continue
        try:
            yield parse_block(body, source_location)
        except AnnotationParseError as e:
            logger.warning(str(e))


def iter_declarations(root: Union[str, Path] = ".") -> Iterator[RawToolDeclaration]:
    """Lazily yield a RawToolDeclaration for every `@mcp` block under root."""
    for path in iter_source_files(root):
        yield from scan_file(path)


def find_tools(root: Union[str, Path] = ".") -> list[RawToolDeclaration]:
    """Scan root and return every raw declaration found, in scan order."""
    files = list(iter_source_files(root))
    logger.info(f"Found {len(files)} source files to scan...")

    declarations = [declaration for path in files for declaration in scan_file(path)]
    logger.info(f"Found {len(declarations)} raw tool definitions.")
    return declarations
