"""MCP Server for Videohub routing presets.

Provides access to Blackmagic Videohub crosspoint routers over the
ASCII control protocol on TCP port 9990.

Tools exposed:
- list_hubs: List all configured hubs
- read_hub: Read labels and routing from a hub
- list_presets: List stored presets with descriptions
- show_preset: Show a stored preset
- save_preset: Read a hub and store its state as a preset
- delete_preset: Delete a stored preset
- compare_preset: Compare a preset with a hub's live routing
- apply_preset: Write a preset's routing to a hub
"""
import asyncio
import json
import logging
import os
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.inventory import HubInventory
from .hub_engine.diff import summarize_compare, differing_outputs
from .hub_engine.engine import HubSession
from .hub_engine.parser import device_info
from .preset_store import PresetStore
from .utils.logging_config import setup_logging, timed_section

logger = logging.getLogger(__name__)

# Globals (initialized on first use)
inventory: Optional[HubInventory] = None
preset_store: Optional[PresetStore] = None
sessions: dict[str, HubSession] = {}


def get_inventory() -> HubInventory:
    """Get or create the hub inventory."""
    global inventory
    if inventory is None:
        inventory = HubInventory(os.environ.get("VIDEOHUB_CONFIG"))
    return inventory


def get_preset_store() -> PresetStore:
    """Get or create the preset store."""
    global preset_store
    if preset_store is None:
        preset_store = PresetStore()
    return preset_store


def get_session(hub_id: Optional[str] = None) -> HubSession:
    """Get or create the session for a hub (the default hub if None)."""
    inv = get_inventory()
    hub_id = hub_id or inv.default_hub_id
    if hub_id not in sessions:
        sessions[hub_id] = HubSession(inv.get_hub(hub_id), get_preset_store(), hub_id=hub_id)
    return sessions[hub_id]


def json_result(data: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2))]


# Create MCP server
server = Server("mcp-videohub")


def tool_schema(required: tuple = (), **properties) -> dict:
    """JSON schema for a tool taking the given named properties."""
    return {"type": "object", "properties": properties, "required": list(required)}


HUB_ID = {
    "type": "string",
    "description": "Hub ID (e.g., 'videohub-40x40'); default hub if omitted",
}
PRESET_NAME = {
    "type": "string",
    "description": "Preset name (file stem, e.g., 'sunday-service')",
}


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_hubs",
            description="List all configured Videohubs with their addresses",
            inputSchema=tool_schema(),
        ),
        Tool(
            name="read_hub",
            description="Read input labels, output labels and routing from a Videohub",
            inputSchema=tool_schema(
                hub_id=HUB_ID,
                include_preamble={
                    "type": "boolean",
                    "description": "Include device info from the protocol preamble",
                    "default": False,
                },
            ),
        ),
        Tool(
            name="list_presets",
            description="List stored routing presets with their descriptions",
            inputSchema=tool_schema(),
        ),
        Tool(
            name="show_preset",
            description="Show the labels and routing stored in a preset",
            inputSchema=tool_schema(("name",), name=PRESET_NAME),
        ),
        Tool(
            name="save_preset",
            description="Read a Videohub and store its labels and routing as a preset",
            inputSchema=tool_schema(
                ("name",),
                hub_id=HUB_ID,
                name=PRESET_NAME,
                description={"type": "string", "description": "Preset description", "default": ""},
                overwrite={"type": "boolean", "description": "Replace an existing preset", "default": False},
            ),
        ),
        Tool(
            name="delete_preset",
            description="Delete a stored preset",
            inputSchema=tool_schema(("name",), name=PRESET_NAME),
        ),
        Tool(
            name="compare_preset",
            description="Compare a preset's routing with a Videohub's live routing, per output",
            inputSchema=tool_schema(("name",), hub_id=HUB_ID, name=PRESET_NAME),
        ),
        Tool(
            name="apply_preset",
            description=(
                "Write a preset's routing to a Videohub, one crosspoint at a time. "
                "Labels are not written."
            ),
            inputSchema=tool_schema(
                ("name",),
                hub_id=HUB_ID,
                name=PRESET_NAME,
                dry_run={
                    "type": "boolean",
                    "description": "Only list the routes that would be sent",
                    "default": False,
                },
            ),
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    hub_id = arguments.get("hub_id")

    async with timed_section(f"tool:{name}", hub_id=hub_id):
        try:
            if name == "list_hubs":
                return await handle_list_hubs(get_inventory())

            elif name == "read_hub":
                return await handle_read_hub(
                    get_session(hub_id),
                    arguments.get("include_preamble", False)
                )

            elif name == "list_presets":
                return await handle_list_presets(get_preset_store())

            elif name == "show_preset":
                return await handle_show_preset(get_preset_store(), arguments["name"])

            elif name == "save_preset":
                return await handle_save_preset(
                    get_session(hub_id),
                    arguments["name"],
                    arguments.get("description", ""),
                    arguments.get("overwrite", False)
                )

            elif name == "delete_preset":
                return await handle_delete_preset(arguments["name"])

            elif name == "compare_preset":
                return await handle_compare_preset(get_session(hub_id), arguments["name"])

            elif name == "apply_preset":
                return await handle_apply_preset(
                    get_session(hub_id),
                    arguments["name"],
                    arguments.get("dry_run", False)
                )

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


# === TOOL HANDLERS ===

async def handle_list_hubs(inv: HubInventory) -> list[TextContent]:
    """List all configured hubs."""
    hubs = []
    for hub_id in inv.get_hub_ids():
        config = inv.get_hub_config(hub_id)
        hubs.append({
            "id": hub_id,
            "name": config.get("name", hub_id),
            "host": config.get("host"),
            "port": config.get("port"),
            "default": hub_id == inv.default_hub_id,
        })
    return json_result({"hubs": hubs})


async def handle_read_hub(session: HubSession, include_preamble: bool) -> list[TextContent]:
    result = await session.read_hub()
    data = {"hub_id": session.hub_id, **result.state.to_dict()}
    if include_preamble:
        data["device_info"] = device_info(result.preamble)
    return json_result(data)


async def handle_list_presets(store: PresetStore) -> list[TextContent]:
    presets = [{"name": p.name, "description": p.description} for p in store.list_presets()]
    return json_result({"presets": presets, "count": len(presets)})


async def handle_show_preset(store: PresetStore, name: str) -> list[TextContent]:
    state = store.load(name)
    return json_result({"name": store.preset_path(name).stem, **state.to_dict()})


async def handle_save_preset(
    session: HubSession,
    name: str,
    description: str,
    overwrite: bool,
) -> list[TextContent]:
    """Read the hub first so the preset reflects its current state."""
    await session.read_hub()
    path = session.save_preset(name, description, overwrite=overwrite)
    return json_result({
        "success": True,
        "hub_id": session.hub_id,
        "preset": path.stem,
        "path": str(path),
        "routes": len(session.live.routing),
    })


async def handle_delete_preset(name: str) -> list[TextContent]:
    store = get_preset_store()
    stem = store.preset_path(name).stem
    deleted = store.delete(name)
    if deleted:
        # Unload it from any session that had it loaded
        for session in sessions.values():
            if session.preset_name == stem:
                session.preset.reset()
                session.preset_name = None
    return json_result({"success": deleted, "preset": stem})


async def handle_compare_preset(session: HubSession, name: str) -> list[TextContent]:
    session.load_preset(name)
    await session.read_hub()
    rows = session.compare()
    return json_result({
        "hub_id": session.hub_id,
        "preset": session.preset_name,
        "summary": summarize_compare(rows),
        "differing_outputs": [o + 1 for o in differing_outputs(rows)],
        "rows": [row.to_dict() for row in rows],
    })


async def handle_apply_preset(session: HubSession, name: str, dry_run: bool) -> list[TextContent]:
    session.load_preset(name)
    result = await session.apply_preset(dry_run=dry_run)
    return json_result({
        "hub_id": session.hub_id,
        "preset": session.preset_name,
        **result.to_dict(),
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    inv = get_inventory()
    resources = []

    for hub_id in inv.get_hub_ids():
        config = inv.get_hub_config(hub_id)
        resources.append(Resource(
            uri=AnyUrl(f"videohub://{hub_id}/state"),
            name=f"{config.get('name', hub_id)} State",
            description=f"Labels and routing of {hub_id}",
            mimeType="application/json",
        ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    # Parse URI: videohub://hub_id/state
    uri_str = str(uri)
    if uri_str.startswith("videohub://"):
        parts = uri_str[len("videohub://"):].split("/")
        if len(parts) >= 2 and parts[1] == "state":
            result = await handle_read_hub(get_session(parts[0]), False)
            return result[0].text

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
