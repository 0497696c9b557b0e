"""Terraform module search and module detail formatting."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import quote

import requests

from .registry import RegistryError, send_registry_call
from .types import ModuleSummary, ModuleVersionDetails

MODULE_BASE_PATH = "registry://modules"

# Characters kept as they are when a value is escaped for a URL path segment.
_PATH_SAFE = "$&+,;=:@"

_ZERO_TIME = "0001-01-01 00:00:00 +0000 UTC"

logger = logging.getLogger(__name__)


def _fail(context: str, err: object) -> RegistryError:
    message = f"{context}: {err}"
    logger.error("Error in %s", message)
    return RegistryError(message)


def search_modules(
    session: requests.Session, module_query: str, current_offset: int = 0
) -> bytes:
    """Search the registry for modules; an empty query lists all modules."""
    if module_query:
        escaped = quote(module_query, safe=_PATH_SAFE)
        uri = f"modules/search?q='{escaped}'&offset={current_offset}"
    else:
        uri = f"modules?offset={current_offset}"
    try:
        return send_registry_call(session, "GET", uri)
    except RegistryError as exc:
        raise RegistryError(
            f"getting module(s) for: {module_query}, call error: {exc}"
        ) from exc


def get_module_details(
    session: requests.Session, module_id: str, current_offset: int = 0
) -> bytes:
    """Fetch the raw details of one module version."""
    uri = f"modules/{module_id}" if module_id else "modules"
    uri = f"{uri}?offset={current_offset}"
    try:
        return send_registry_call(session, "GET", uri)
    except RegistryError as exc:
        raise RegistryError(
            f"getting module(s) for: {module_id}, please provide a different "
            "provider name like aws, azurerm or google etc"
        ) from exc


def _go_time(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d} "
        f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    minutes_total = int(offset.total_seconds()) // 60
    sign = "-" if minutes_total < 0 else "+"
    hours, minutes = divmod(abs(minutes_total), 60)
    zone = f"{sign}{hours:02d}{minutes:02d}"
    name = "UTC" if minutes_total == 0 else zone
    return f"{text} {zone} {name}"


def _go_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        number = float(value)
        if number.is_integer() and abs(number) < 1e21:
            return str(int(number))
        return repr(number)
    if isinstance(value, list):
        return "[" + " ".join(_go_value(item) for item in value) + "]"
    if isinstance(value, dict):
        items = " ".join(
            f"{key}:{_go_value(item)}" for key, item in sorted(value.items())
        )
        return f"map[{items}]"
    return str(value)


def _bool_text(flag: bool) -> str:
    return "true" if flag else "false"


def format_module_list(response: bytes, module_query: str) -> str:
    """Render a module search response as text, most downloaded first."""
    try:
        data = json.loads(response)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        raw = data.get("modules")
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ValueError("field 'modules': expected a list")
        modules = [ModuleSummary.from_dict(item) for item in raw]
    except ValueError as exc:
        raise _fail("unmarshalling modules", exc) from exc

    if not modules:
        raise RegistryError(f"no modules found for query: {module_query}")

    modules.sort(key=lambda module: module.downloads, reverse=True)

    parts = [
        f"Available Terraform Modules (top matches) for {module_query}\n\n"
        " Each result includes:\n",
        "- moduleID: The module ID (format: namespace/name/provider-name/module-version)\n",
        "- Name: The name of the module\n",
        "- Description: A short description of the module\n",
        "- Downloads: The total number of times the module has been downloaded\n",
        "- Verified: Verification status of the module\n",
        "- Published: The date and time when the module was published\n",
        "\n\n---\n\n",
    ]
    for module in modules:
        parts.append(
            f"- moduleID: {module.id}\n"
            f"- Name: {module.name}\n"
            f"- Description: {module.description}\n"
            f"- Downloads: {module.downloads}\n"
            f"- Verified: {_bool_text(module.verified)}\n"
            f"- Published: {_go_time(module.published_at)}\n"
            "---\n\n"
        )
    return "".join(parts)


def format_module_details(response: bytes) -> str:
    """Render the details of one module version as markdown."""
    try:
        details = ModuleVersionDetails.from_dict(json.loads(response))
    except ValueError as exc:
        raise _fail("unmarshalling module details", exc) from exc

    parts = [
        f"# {MODULE_BASE_PATH}/{details.namespace}/{details.name}\n\n",
        f"**Description:** {details.description}\n\n",
        f"**Module Version:** {details.version}\n\n",
        f"**Namespace:** {details.namespace}\n\n",
        f"**Source:** {details.source}\n\n",
    ]

    root = details.root
    if root.inputs:
        parts.append("### Inputs\n\n")
        parts.append("| Name | Type | Description | Default | Required |\n")
        parts.append("|---|---|---|---|---|\n")
        for item in root.inputs:
            parts.append(
                f"| {item.name} | {item.type} | {item.description} | "
                f"`{_go_value(item.default)}` | {_bool_text(item.required)} |\n"
            )
        parts.append("\n")

    if root.outputs:
        parts.append("### Outputs\n\n")
        parts.append("| Name | Description |\n")
        parts.append("|---|---|\n")
        for output in root.outputs:
            parts.append(f"| {output.name} | {output.description} |\n")
        parts.append("\n")

    if root.provider_dependencies:
        parts.append("### Provider Dependencies\n\n")
        parts.append("| Name | Namespace | Source | Version |\n")
        parts.append("|---|---|---|---|\n")
        for dep in root.provider_dependencies:
            parts.append(
                f"| {dep.name} | {dep.namespace} | {dep.source} | {dep.version} |\n"
            )
        parts.append("\n")

    if details.examples:
        parts.append("### Examples\n\n")
        for example in details.examples:
            parts.append(f"#### {example.name}\n\n")
            if example.readme:
                parts.append("**Readme:**\n\n")
                parts.append(example.readme)
                parts.append("\n\n")
        parts.append("\n")

    return "".join(parts)