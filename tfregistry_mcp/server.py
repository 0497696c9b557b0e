"""A Model Context Protocol server speaking JSON-RPC over line-delimited streams."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TextIO

SERVER_NAME = "terraform-mcp-server"

LATEST_PROTOCOL_VERSION = "2025-03-26"
SUPPORTED_PROTOCOL_VERSIONS = (LATEST_PROTOCOL_VERSION, "2024-11-05")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

ToolHandler = Callable[[dict], str]
ResourceHandler = Callable[[str], "list[TextResourceContents]"]

_TEMPLATE_VAR = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ToolError(Exception):
    """Raised by a tool or resource handler when a call cannot be served."""


class _RpcError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class Tool:
    """A tool offered to clients."""

    name: str
    description: str = ""
    input_schema: dict = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    annotations: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        result = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.annotations:
            result["annotations"] = self.annotations
        return result


@dataclass
class Resource:
    """A fixed resource offered to clients."""

    uri: str
    name: str
    description: str = ""
    mime_type: str = ""

    def to_dict(self) -> dict:
        result = {"uri": self.uri, "name": self.name}
        if self.description:
            result["description"] = self.description
        if self.mime_type:
            result["mimeType"] = self.mime_type
        return result


@dataclass
class ResourceTemplate:
    """A parameterised resource whose URI carries {variables}."""

    uri_template: str
    name: str
    description: str = ""
    mime_type: str = ""

    def to_dict(self) -> dict:
        result = {"uriTemplate": self.uri_template, "name": self.name}
        if self.description:
            result["description"] = self.description
        if self.mime_type:
            result["mimeType"] = self.mime_type
        return result

    def matches(self, uri: str) -> dict[str, str] | None:
        """Return the template variables bound by ``uri``, or None if it does not fit."""
        pattern = []
        position = 0
        for match in _TEMPLATE_VAR.finditer(self.uri_template):
            pattern.append(re.escape(self.uri_template[position : match.start()]))
            pattern.append(f"(?P<{match.group(1)}>[^/]+)")
            position = match.end()
        pattern.append(re.escape(self.uri_template[position:]))
        found = re.fullmatch("".join(pattern), uri)
        return found.groupdict() if found else None


@dataclass
class TextResourceContents:
    """Text content returned when a resource is read."""

    uri: str
    mime_type: str
    text: str

    def to_dict(self) -> dict:
        return {"uri": self.uri, "mimeType": self.mime_type, "text": self.text}


class MCPServer:
    """Registry of tools and resources with a JSON-RPC dispatcher."""

    def __init__(
        self,
        name: str,
        version: str,
        *,
        tool_capabilities: bool = True,
        resource_subscribe: bool = True,
        resource_list_changed: bool = True,
        logging_enabled: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.tool_capabilities = tool_capabilities
        self.resource_subscribe = resource_subscribe
        self.resource_list_changed = resource_list_changed
        self.logging_enabled = logging_enabled
        self.logger = logger or logging.getLogger(__name__)
        self.log_level: str | None = None
        self._tools: dict[str, tuple[Tool, ToolHandler]] = {}
        self._resources: dict[str, tuple[Resource, ResourceHandler]] = {}
        self._templates: dict[str, tuple[ResourceTemplate, ResourceHandler]] = {}
        self._methods: dict[str, Callable[[dict], Any]] = {
            "initialize": self._initialize,
            "ping": lambda params: {},
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/templates/list": self._list_templates,
            "resources/read": self._read_resource,
            "logging/setLevel": self._set_level,
        }

    def add_tool(self, tool: Tool, handler: ToolHandler) -> None:
        self._tools[tool.name] = (tool, handler)

    def add_resource(self, resource: Resource, handler: ResourceHandler) -> None:
        self._resources[resource.uri] = (resource, handler)

    def add_resource_template(
        self, template: ResourceTemplate, handler: ResourceHandler
    ) -> None:
        self._templates[template.uri_template] = (template, handler)

    def handle_message(self, message: Any) -> dict | None:
        """Answer one decoded JSON-RPC message; notifications get None."""
        if not isinstance(message, dict):
            return _error(None, INVALID_REQUEST, "Invalid Request")
        msg_id = message.get("id")
        method = message.get("method")
        if not isinstance(method, str):
            return _error(msg_id, INVALID_REQUEST, "Invalid Request")
        if "id" not in message:
            return None
        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return _error(msg_id, INVALID_PARAMS, "params must be an object")
        handler = self._methods.get(method)
        if handler is None:
            return _error(msg_id, METHOD_NOT_FOUND, f"Method {method} not found")
        try:
            result = handler(params)
        except _RpcError as exc:
            return _error(msg_id, exc.code, exc.message)
        except Exception as exc:  # handler failures become JSON-RPC errors
            self.logger.error("Error handling %s: %s", method, exc)
            return _error(msg_id, INTERNAL_ERROR, str(exc))
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def serve(self, reader: TextIO, writer: TextIO) -> None:
        """Answer newline-delimited messages from ``reader`` until it ends."""
        for line in reader:
            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                response = _error(None, PARSE_ERROR, "Parse error")
            else:
                response = self.handle_message(message)
            if response is not None:
                writer.write(json.dumps(response) + "\n")
                writer.flush()

    def _initialize(self, params: dict) -> dict:
        requested = params.get("protocolVersion")
        protocol = (
            requested
            if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        capabilities: dict[str, Any] = {}
        if self.tool_capabilities:
            capabilities["tools"] = {"listChanged": True}
        if self.resource_subscribe or self.resource_list_changed:
            capabilities["resources"] = {
                "subscribe": self.resource_subscribe,
                "listChanged": self.resource_list_changed,
            }
        if self.logging_enabled:
            capabilities["logging"] = {}
        return {
            "protocolVersion": protocol,
            "capabilities": capabilities,
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _list_tools(self, params: dict) -> dict:
        tools = sorted(self._tools.values(), key=lambda entry: entry[0].name)
        return {"tools": [tool.to_dict() for tool, _ in tools]}

    def _call_tool(self, params: dict) -> dict:
        name = params.get("name")
        entry = self._tools.get(name) if isinstance(name, str) else None
        if entry is None:
            raise _RpcError(INVALID_PARAMS, f"tool '{name}' not found")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise _RpcError(INVALID_PARAMS, "arguments must be an object")
        text = entry[1](arguments)
        return {"content": [{"type": "text", "text": text}], "isError": False}

    def _list_resources(self, params: dict) -> dict:
        return {"resources": [res.to_dict() for res, _ in self._resources.values()]}

    def _list_templates(self, params: dict) -> dict:
        return {
            "resourceTemplates": [
                template.to_dict() for template, _ in self._templates.values()
            ]
        }

    def _read_resource(self, params: dict) -> dict:
        uri = params.get("uri")
        if not isinstance(uri, str):
            raise _RpcError(INVALID_PARAMS, "uri must be a string")
        handler = None
        if uri in self._resources:
            handler = self._resources[uri][1]
        else:
            for template, template_handler in self._templates.values():
                if template.matches(uri) is not None:
                    handler = template_handler
                    break
        if handler is None:
            raise _RpcError(INVALID_PARAMS, f"handler not found for resource URI '{uri}'")
        return {"contents": [item.to_dict() for item in handler(uri)]}

    def _set_level(self, params: dict) -> dict:
        if not self.logging_enabled:
            raise _RpcError(METHOD_NOT_FOUND, "Logging is not enabled")
        level = params.get("level")
        if not isinstance(level, str):
            raise _RpcError(INVALID_PARAMS, "level must be a string")
        self.log_level = level
        return {}


def _error(msg_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


def new_server(version: str) -> MCPServer:
    """Create the Terraform MCP server with tools, resources and logging enabled."""
    return MCPServer(
        SERVER_NAME,
        version,
        tool_capabilities=True,
        resource_subscribe=True,
        resource_list_changed=True,
        logging_enabled=True,
    )