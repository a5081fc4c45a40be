# =============================================================================
# bridge/__init__.py
# =============================================================================
# This package contains ALL of the bridge's own logic:
#
#   annotations.py    →  find `/* @mcp ... */` blocks in source files
#   compiler.py       →  turn raw declarations into a Registry
#   registry_store.py →  read/write mcp.tools.json
#   remote_client.py  →  call the remote execution endpoint (retry/timeout)
#   dispatch.py       →  local echo handler vs. remote handler per tool
#   config.py         →  environment switches and .mcp-gas.json loading
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP.  The MCP wiring lives in
#   server/, which depends on bridge/ and never the other way around.
# =============================================================================
