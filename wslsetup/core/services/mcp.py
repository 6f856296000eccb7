"""
Assistant tool servers — the ``mcp.json`` document and its registration.

The document is handed verbatim to the assistant runtime; the setup
pipeline never reads it. ``wslsetup mcp register`` is the one consumer
here: it turns each entry into a ``claude mcp add`` call, skipping
servers the assistant already knows.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
from pathlib import Path
from string import Template

from pydantic import BaseModel, Field

from wslsetup.adapters.registry import AdapterRegistry
from wslsetup.core.config.loader import ConfigError
from wslsetup.core.engine.pipeline import NVM_PREAMBLE
from wslsetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)

DEFAULT_MCP_PATH = Path(__file__).resolve().parent.parent / "data" / "mcp.json"
ASSISTANT_CLI = "claude"


class McpServer(BaseModel):
    """One tool server entry."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


def load_mcp_servers(path: Path | None = None) -> list[McpServer]:
    """Read ``{"mcpServers": {name: {command, args, env}}}``.

    Raises:
        ConfigError: missing file, bad JSON or bad entries.
    """
    path = path or DEFAULT_MCP_PATH
    if not path.is_file():
        raise ConfigError(f"MCP document not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    servers = data.get("mcpServers") if isinstance(data, dict) else None
    if not isinstance(servers, dict):
        raise ConfigError(f"Expected an 'mcpServers' mapping in {path}")

    result = []
    for name, entry in servers.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"Server '{name}' in {path} must be a mapping")
        try:
            result.append(McpServer.model_validate({"name": name, **entry}))
        except Exception as e:
            raise ConfigError(f"Invalid server '{name}' in {path}: {e}") from e
    return result


def expand_arg(value: str, home: Path) -> str:
    """Expand ``~`` and ``$VAR``/``${VAR}`` with HOME pinned to ``home``."""
    expanded = Template(value).safe_substitute({**os.environ, "HOME": str(home)})
    if expanded == "~":
        return str(home)
    if expanded.startswith("~/"):
        return str(home / expanded[2:])
    return expanded


def register_command(server: McpServer, home: Path, scope: str = "user") -> str:
    """Build ``claude mcp add -s <scope> [-e K=V] <name> -- <command> <args>``."""
    parts = [ASSISTANT_CLI, "mcp", "add", "-s", scope]
    for key, value in sorted(server.env.items()):
        parts += ["-e", f"{key}={expand_arg(value, home)}"]
    parts += [server.name, "--", server.command]
    parts += [expand_arg(arg, home) for arg in server.args]
    return shlex.join(parts)


def register_servers(
    servers: list[McpServer],
    registry: AdapterRegistry,
    home: Path,
    scope: str = "user",
    dry_run: bool = False,
    nvm_dir: Path | None = None,
) -> list[Receipt]:
    """Register each server unless ``claude mcp get <name>`` already finds it.

    Stops at the first failed registration, like the setup pipeline.
    """
    receipts: list[Receipt] = []
    env = {"HOME": str(home), "NVM_DIR": str(nvm_dir or home / ".nvm")}

    for server in servers:
        probe = registry.execute_action(
            Action(
                id=f"mcp:{server.name}:probe",
                adapter="shell",
                step="mcp",
                description=f"check {server.name}",
                params={
                    "command": shlex.join([ASSISTANT_CLI, "mcp", "get", server.name]),
                    "preamble": NVM_PREAMBLE,
                },
            ),
            working_dir=str(home),
            env=env,
        )
        if probe.ok:
            logger.info("MCP server '%s' already registered", server.name)
            receipts.append(Receipt.skip(
                adapter="shell",
                action_id=f"mcp:{server.name}:add",
                reason=f"'{server.name}' already registered",
            ))
            continue

        receipt = registry.execute_action(
            Action(
                id=f"mcp:{server.name}:add",
                adapter="shell",
                step="mcp",
                description=f"register {server.name}",
                params={
                    "command": register_command(server, home, scope),
                    "preamble": NVM_PREAMBLE,
                },
            ),
            working_dir=str(home),
            env=env,
            dry_run=dry_run,
        )
        receipts.append(receipt)
        if receipt.failed:
            logger.error("Registering '%s' failed: %s", server.name, receipt.error)
            break

    return receipts
