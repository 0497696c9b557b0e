"""MCP tools for looking up Terraform provider documentation and modules."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

import requests

from .modules import (
    format_module_details,
    format_module_list,
    get_module_details,
    search_modules,
)
from .registry import (
    RegistryError,
    VALID_PROVIDER_DATA_TYPES,
    contains_slug,
    get_provider_docs_v2,
    is_v2_provider_data_type,
    resolve_provider_details,
    send_registry_call,
)
from .server import MCPServer, Tool, ToolError
from .types import ProviderDoc

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict], str]

DEFAULT_ERROR_GUIDE = (
    "please check the provider name, provider namespace or the provider version "
    "you're looking for, perhaps the provider is published under a different "
    "namespace or company name"
)

_LISTING_INTRO = (
    "Each result includes:\n- providerDocID: tfprovider-compatible identifier\n"
    "- Title: Service or resource name\n- Category: Type of document\n"
    "For best results, select libraries based on the serviceSlug match and "
    "category of information requested.\n\n---\n\n"
)


def _fail(context: str, err: object = None) -> ToolError:
    if err is None:
        logger.error("Error in %s", context)
        return ToolError(context)
    message = f"{context}: {err}"
    logger.error("Error in %s", message)
    return ToolError(message)


def _schema(properties: dict[str, dict], required: list[str]) -> dict:
    return {"type": "object", "properties": properties, "required": required}


def _parse_docs(body: bytes) -> list[ProviderDoc]:
    data = json.loads(body)
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    docs = data.get("docs")
    if docs is None:
        return []
    if not isinstance(docs, list):
        raise ValueError("field 'docs': expected a list")
    return [ProviderDoc.from_dict(item) for item in docs]


def _parse_doc_content(body: bytes) -> str:
    data = json.loads(body)
    for key in ("data", "attributes"):
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object before {key!r}")
        data = data.get(key) or {}
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object for 'attributes'")
    content = data.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        raise ValueError("field 'content': expected a string")
    return content


def resolve_provider_doc_id(session: requests.Session) -> tuple[Tool, ToolHandler]:
    """Build the tool that lists candidate document IDs for a provider service."""
    tool = Tool(
        name="resolveProviderDocID",
        description=(
            "This tool retrieves a list of potential documents based on the serviceSlug "
            "and providerDataType provided. You MUST call this function before "
            "'getProviderDocs' to obtain a valid tfprovider-compatible providerDocID. "
            "Use the most relevant single word as the search query for serviceSlug, if "
            "unsure about the serviceSlug, use the providerName for its value. When "
            "selecting the best match, consider: - Title similarity to the query - "
            "Category relevance Return the selected providerDocID and explain your "
            "choice. If there are multiple good matches, mention this but proceed with "
            "the most relevant one."
        ),
        input_schema=_schema(
            {
                "providerName": {
                    "type": "string",
                    "description": "The name of the Terraform provider to perform the "
                    "read or deployment operation",
                },
                "providerNamespace": {
                    "type": "string",
                    "description": "The publisher of the Terraform provider, typically "
                    "the name of the company, or their GitHub organization name that "
                    "created the provider",
                },
                "serviceSlug": {
                    "type": "string",
                    "description": "The slug of the service you want to deploy or read "
                    "using the Terraform provider, prefer using a single word, use "
                    "underscores for multiple words and if unsure about the "
                    "serviceSlug, use the providerName for its value",
                },
                "providerDataType": {
                    "type": "string",
                    "description": "The type of the document to retrieve, for general "
                    "information use 'guides', for deploying resources use "
                    "'resources', for reading pre-deployed resources use "
                    "'data-sources', for functions use 'functions', and for overview "
                    "of the provider use 'overview'",
                    "enum": list(VALID_PROVIDER_DATA_TYPES),
                    "default": "resources",
                },
                "providerVersion": {
                    "type": "string",
                    "description": "The version of the Terraform provider to retrieve "
                    "in the format 'x.y.z', or 'latest' to get the latest version",
                },
            },
            ["providerName", "providerNamespace", "serviceSlug"],
        ),
        annotations={
            "title": "Identify the most relevant provider document ID for a "
            "Terraform service",
            "readOnlyHint": True,
        },
    )

    def handler(arguments: dict) -> str:
        detail = resolve_provider_details(arguments, session, DEFAULT_ERROR_GUIDE)

        service_slug = arguments.get("serviceSlug")
        if not isinstance(service_slug, str) or not service_slug:
            raise _fail("serviceSlug is required and must be a string")

        data_type = arguments.get("providerDataType")
        if not isinstance(data_type, str) or not data_type:
            data_type = "resources"
        detail.provider_data_type = data_type

        if is_v2_provider_data_type(data_type):
            try:
                content = get_provider_docs_v2(session, detail)
            except RegistryError as exc:
                raise _fail(
                    f"No {data_type} documentation found for provider "
                    f"'{detail.provider_name}' in the '{detail.provider_namespace}' "
                    f"namespace, {DEFAULT_ERROR_GUIDE}",
                    exc,
                ) from exc
            return f"# {detail.provider_name} provider docs\n\n{content}"

        uri = (
            f"providers/{detail.provider_namespace}/{detail.provider_name}/"
            f"{detail.provider_version}"
        )
        try:
            body = send_registry_call(session, "GET", uri)
        except RegistryError as exc:
            raise _fail(
                f'Error getting the "{detail.provider_name}" provider, with version '
                f'"{detail.provider_version}" in the {detail.provider_namespace} '
                f"namespace, {DEFAULT_ERROR_GUIDE}"
            ) from exc

        try:
            docs = _parse_docs(body)
        except ValueError as exc:
            raise _fail("unmarshalling provider docs", exc) from exc

        matches = [
            doc
            for doc in docs
            if doc.language == "hcl"
            and doc.category == data_type
            and (
                contains_slug(doc.slug, service_slug)
                or contains_slug(f"{detail.provider_name}_{doc.slug}", service_slug)
            )
        ]
        if not matches:
            raise _fail(
                f"No documentation found for serviceSlug {service_slug}, provide a more "
                "relevant serviceSlug if unsure, use the providerName for its value"
            )

        header = (
            f"Available Documentation (top matches) for {data_type} in Terraform "
            f"provider {detail.provider_namespace}/{detail.provider_name} version: "
            f"{detail.provider_version}\n\n"
        )
        entries = "".join(
            f"- providerDocID: {doc.id}\n- Title: {doc.title}\n"
            f"- Category: {doc.category}\n---\n"
            for doc in matches
        )
        return header + _LISTING_INTRO + entries

    return tool, handler


def get_provider_docs(session: requests.Session) -> tuple[Tool, ToolHandler]:
    """Build the tool that fetches one provider document by its ID."""
    tool = Tool(
        name="getProviderDocs",
        description=(
            "Fetches up-to-date documentation for a specific service from a Terraform "
            "provider. You must call 'resolveProviderDocID' first to obtain the exact "
            "tfprovider-compatible providerDocID required to use this tool."
        ),
        input_schema=_schema(
            {
                "providerDocID": {
                    "type": "string",
                    "description": "Exact tfprovider-compatible providerDocID, (e.g., "
                    "'8894603', '8906901') retrieved from 'resolveProviderDocID'",
                }
            },
            ["providerDocID"],
        ),
        annotations={
            "title": "Fetch detailed Terraform provider documentation using a "
            "document ID",
            "openWorldHint": True,
        },
    )

    def handler(arguments: dict) -> str:
        doc_id = arguments.get("providerDocID")
        if not isinstance(doc_id, str) or not doc_id:
            raise ToolError("providerDocID is required and must be a string")
        try:
            body = send_registry_call(session, "GET", f"provider-docs/{doc_id}", "v2")
        except RegistryError as exc:
            raise _fail(
                f"Error fetching provider-docs/{doc_id}, please make sure providerDocID "
                "is valid and the resolveProviderDocID tool has run prior",
                exc,
            ) from exc
        try:
            return _parse_doc_content(body)
        except ValueError as exc:
            raise _fail(f"error unmarshalling provider-docs/{doc_id}", exc) from exc

    return tool, handler


def search_modules_tool(session: requests.Session) -> tuple[Tool, ToolHandler]:
    """Build the tool that searches the registry for modules."""
    tool = Tool(
        name="searchModules",
        description=(
            "Resolves a Terraform module name to obtain a compatible moduleID for the "
            "moduleDetails tool and returns a list of matching Terraform modules. You "
            "MUST call this function before 'moduleDetails' to obtain a valid and "
            "compatible moduleID. When selecting the best match, consider: - Name "
            "similarity to the query - Description relevance - Verification status "
            "(verified) - Download counts (popularity) Return the selected moduleID and "
            "explain your choice. If there are multiple good matches, mention this but "
            "proceed with the most relevant one. If no modules were found, reattempt "
            "the search with a new moduleName query."
        ),
        input_schema=_schema(
            {
                "moduleQuery": {
                    "type": "string",
                    "description": "The query to search for Terraform modules.",
                },
                "currentOffset": {
                    "type": "number",
                    "description": "Current offset for pagination",
                    "minimum": 0,
                    "default": 0,
                },
            },
            ["moduleQuery"],
        ),
        annotations={
            "title": "Search and match Terraform modules based on name and relevance",
            "openWorldHint": True,
        },
    )

    def handler(arguments: dict) -> str:
        query = arguments.get("moduleQuery")
        raw_offset: Any = arguments.get("currentOffset")
        offset = 0
        if isinstance(raw_offset, (int, float)) and not isinstance(raw_offset, bool):
            offset = int(raw_offset)

        if not isinstance(query, str):
            raise _fail("error finding the module name;")
        try:
            response = search_modules(session, query, offset)
        except RegistryError as exc:
            raise _fail(f"no module(s) found for moduleName: {query}", exc) from exc
        try:
            text = format_module_list(response, query)
        except RegistryError as exc:
            raise _fail(f"unmarshalling modules for moduleName: {query}", exc) from exc
        if not text:
            raise _fail(f"getting module(s), none found! query used: {query}; error: ")
        return text

    return tool, handler


def module_details(session: requests.Session) -> tuple[Tool, ToolHandler]:
    """Build the tool that describes one module version."""
    tool = Tool(
        name="moduleDetails",
        description=(
            "Fetches up-to-date documentation on how to use a Terraform module. You "
            "must call 'searchModules' first to obtain the exact valid and compatible "
            "moduleID required to use this tool."
        ),
        input_schema=_schema(
            {
                "moduleID": {
                    "type": "string",
                    "description": "Exact valid and compatible moduleID retrieved from "
                    "searchModules (e.g., "
                    "'squareops/terraform-kubernetes-mongodb/mongodb/2.1.1', "
                    "'GoogleCloudPlatform/vertex-ai/google/0.2.0')",
                }
            },
            ["moduleID"],
        ),
        annotations={
            "title": "Retrieve documentation for a specific Terraform module",
            "openWorldHint": True,
        },
    )

    def handler(arguments: dict) -> str:
        module_id = arguments.get("moduleID")
        if not isinstance(module_id, str) or not module_id:
            raise _fail(
                "moduleID is required and must be a valid string. It represents the "
                "ID of the module to retrieve detailed information about"
            )
        try:
            response = get_module_details(session, module_id, 0)
        except RegistryError as exc:
            raise _fail(f"no module(s) found for {module_id},") from exc
        try:
            text = format_module_details(response)
        except RegistryError as exc:
            raise _fail("unmarshalling module details", exc) from exc
        if not text:
            raise _fail(
                "getting module(s), none found!  please provider a different "
                "moduleProvider"
            )
        return text

    return tool, handler


def init_tools(server: MCPServer, session: requests.Session) -> None:
    """Register every registry tool on ``server``."""
    server.add_tool(*resolve_provider_doc_id(session))
    server.add_tool(*get_provider_docs(session))
    server.add_tool(*search_modules_tool(session))
    server.add_tool(*module_details(session))