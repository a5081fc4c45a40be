# =============================================================================
# server/__init__.py
# =============================================================================
# The MCP layer.  mcp_server.py is the only module in the project that
# imports FastMCP; it turns the registry built by bridge/ into live tools.
# =============================================================================
