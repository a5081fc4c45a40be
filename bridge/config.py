# =============================================================================
# bridge/config.py  —  Environment Switches & Endpoint Configuration
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   1. Reads every environment switch the bridge understands into one frozen
#      Settings object (the entry point calls load_dotenv() first, so a .env
#      file in the project works the same as exported variables).
#   2. Loads .mcp-gas.json, the file written by the discovery step, into a
#      RemoteEndpointConfig.
#
# ENVIRONMENT SWITCHES:
#   MCP_STRICT=1            →  build fails when no tools are declared
#   MCP_MODE=empty          →  build writes an empty registry instead of echo
#   MCP_TIMEOUT_MS=30000    →  per-attempt timeout for remote calls
#   MCP_RETRY=0             →  extra attempts after the first failure
#   GAS_API_TOKEN           →  bearer token; overrides apiToken in the file
#   MCP_GAS_CONFIG_PATH     →  location of .mcp-gas.json
#   MCP_TOOLS_PATH          →  location of mcp.tools.json
#   MCP_LOG_LEVEL=INFO      →  log level for the server and CLI
#
# This is the ONLY module that reads os.environ.  Everything downstream
# receives explicit values (e.g. the compiler gets a CompileMode).
# =============================================================================

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
import sys
from typing import Mapping, Optional

from bridge.compiler import CompileMode
from bridge.models import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS, RemoteEndpointConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".mcp-gas.json"
DEFAULT_TOOLS_PATH = "mcp.tools.json"


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring {key}={raw!r}: not an integer, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Every environment-driven switch, read once."""

    strict: bool = False
    empty_mode: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    api_token: Optional[str] = None
    config_path: str = DEFAULT_CONFIG_PATH
    tools_path: str = DEFAULT_TOOLS_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            strict=env.get("MCP_STRICT", "") == "1",
            empty_mode=env.get("MCP_MODE", "").lower() == "empty",
            timeout_ms=_env_int(env, "MCP_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            max_retries=_env_int(env, "MCP_RETRY", DEFAULT_MAX_RETRIES),
            api_token=env.get("GAS_API_TOKEN") or None,
            config_path=env.get("MCP_GAS_CONFIG_PATH") or DEFAULT_CONFIG_PATH,
            tools_path=env.get("MCP_TOOLS_PATH") or DEFAULT_TOOLS_PATH,
            log_level=(env.get("MCP_LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def compile_mode(self) -> CompileMode:
        return CompileMode.from_flags(strict=self.strict, empty=self.empty_mode)


def configure_logging(level: str = "INFO") -> None:
    """Send all logs to STDERR.

    STDOUT is the MCP transport when the server runs; anything else written
    there corrupts the JSON-RPC stream.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [MCP] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # One INFO line per remote POST is noise next to the server's own logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)


# =============================================================================
# .mcp-gas.json loading
# =============================================================================
# Expected shape (written by the discovery collaborator):
#   {
#     "scriptId": "...",
#     "deploymentId": "...",
#     "gasUrl": "https://script.google.com/macros/s/<id>/exec",
#     "apiToken": "..."          (optional)
#   }
# "endpointUrl" is accepted in place of "gasUrl".
# =============================================================================
def load_endpoint_config(
    path: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Optional[RemoteEndpointConfig]:
    """Load the remote endpoint configuration, or None if it is unusable.

    A missing, unreadable or incomplete file is not fatal: the server still
    starts (the echo tool keeps working) but every remote tool will fail
    with a configuration error when invoked.

    Args:
        path: Location of the config file.  Defaults to settings.config_path.
        settings: Environment switches supplying the token override, the
            timeout and the retry count.  Defaults to Settings.from_env().

    Returns:
        A RemoteEndpointConfig, or None.
    """
    settings = settings or Settings.from_env()
    config_path = Path(path or settings.config_path)

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning(
            f"{config_path} not found. Echo tool will work, but remote tools will fail."
        )
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(
            f"Could not read {config_path}: {e}. "
            "Echo tool will work, but remote tools will fail."
        )
        return None

    if not isinstance(data, dict):
        logger.warning(f"{config_path} does not contain a JSON object. Remote tools will fail.")
        return None

    endpoint_url = data.get("gasUrl") or data.get("endpointUrl")
    if not isinstance(endpoint_url, str) or not endpoint_url:
        logger.warning(f"{config_path} has no 'gasUrl'. Remote tools will fail.")
        return None

    file_token = data.get("apiToken")
    access_token = settings.api_token or (file_token if isinstance(file_token, str) and file_token else None)

    try:
        config = RemoteEndpointConfig(
            endpoint_url=endpoint_url,
            access_token=access_token,
            timeout_ms=settings.timeout_ms,
            max_retries=settings.max_retries,
            script_id=data.get("scriptId"),
            deployment_id=data.get("deploymentId"),
        )
    except ValueError as e:
        logger.warning(f"Invalid endpoint settings: {e}. Remote tools will fail.")
        return None

    logger.info(
        f"Loaded endpoint config from {config_path} "
        f"(timeout={config.timeout_ms}ms, retries={config.max_retries}, "
        f"token={'yes' if config.access_token else 'no'})"
    )
    return config
