"""MCP resources and resource templates for Terraform providers."""

from __future__ import annotations

import logging
from collections.abc import Callable

import requests

from .registry import (
    PROVIDER_BASE_PATH,
    RegistryError,
    extract_provider_name_and_version,
    get_latest_provider_version,
    get_provider_list,
    get_provider_overview_docs,
    get_provider_version_id,
    is_valid_provider_version_format,
)
from .server import MCPServer, Resource, ResourceTemplate, TextResourceContents

logger = logging.getLogger(__name__)

ResourceHandler = Callable[[str], "list[TextResourceContents]"]


def _fail(context: str, err: object) -> RegistryError:
    message = f"{context}: {err}"
    logger.error("Error in %s", message)
    return RegistryError(message)


def provider_resource_template_handler(session: requests.Session, resource_uri: str) -> str:
    """Return the overview documentation of the provider named by ``resource_uri``."""
    try:
        namespace, name, version = extract_provider_name_and_version(resource_uri)
    except ValueError as exc:
        raise _fail("Provider Resource: error getting provider details", exc) from exc
    logger.debug("Extracted namespace: %s, name: %s, version: %s", namespace, name, version)

    if version in ("", "latest") or not is_valid_provider_version_format(version):
        try:
            version = get_latest_provider_version(session, namespace, name)
        except RegistryError as exc:
            raise _fail(
                f"Provider Resource: error getting {namespace}/{name} latest provider version",
                exc,
            ) from exc

    provider_version_uri = f"{PROVIDER_BASE_PATH}/{namespace}/name/{name}/version/{version}"
    logger.debug("Provider resource template - providerVersionUri: %s", provider_version_uri)

    try:
        version_id = get_provider_version_id(session, namespace, name, version)
    except RegistryError as exc:
        raise _fail("getting provider details", exc) from exc
    logger.debug(
        "Provider resource template - Provider version id providerVersionID: %s, "
        "providerVersionUri: %s",
        version_id,
        provider_version_uri,
    )

    try:
        docs = get_provider_overview_docs(session, version_id)
    except RegistryError as exc:
        raise _fail("getting provider details", exc) from exc
    logger.debug("Provider resource template - Provider docs providerVersionID: %s", version_id)
    return docs


def provider_resource(
    session: requests.Session, resource_uri: str, description: str, provider_type: str
) -> tuple[Resource, ResourceHandler]:
    """Build a resource listing the overview of every provider of one tier."""
    resource = Resource(
        uri=resource_uri,
        name=description,
        description=description,
        mime_type="text/markdown",
    )

    def handler(uri: str) -> list[TextResourceContents]:
        try:
            providers = get_provider_list(session, provider_type)
        except RegistryError as exc:
            raise _fail(
                f"Provider Resource: error getting {provider_type} provider list", exc
            ) from exc

        contents = []
        for provider in providers:
            namespace, name, version = extract_provider_name_and_version(
                f"{PROVIDER_BASE_PATH}/{provider['namespace']}/name/"
                f"{provider['name']}/version/latest"
            )
            logger.debug(
                "Extracted namespace: %s, name: %s, version: %s", namespace, name, version
            )
            try:
                version_number = get_latest_provider_version(session, namespace, name)
            except RegistryError as exc:
                raise _fail(
                    f"Provider Resource: error getting {namespace}/{name} provider version ",
                    exc,
                ) from exc

            version_uri = (
                f"{PROVIDER_BASE_PATH}/{namespace}/name/{name}/version/{version_number}"
            )
            logger.debug("Provider resource - providerVersionUri: %s", version_uri)
            try:
                docs = provider_resource_template_handler(session, version_uri)
            except RegistryError as exc:
                raise _fail(
                    f"Provider Resource: error with provider template handler "
                    f"{namespace}/{name} provider version {version_number} details",
                    exc,
                ) from exc
            contents.append(
                TextResourceContents(
                    uri=version_uri,
                    mime_type="text/markdown",
                    text=f"# {provider['name']} Provider \n\n {docs}",
                )
            )
        return contents

    return resource, handler


def provider_resource_template(
    session: requests.Session, resource_uri: str, description: str
) -> tuple[ResourceTemplate, ResourceHandler]:
    """Build a template resource giving one provider version's overview."""
    template = ResourceTemplate(
        uri_template=resource_uri,
        name=description,
        description="Describes details for a Terraform provider",
        mime_type="application/json",
    )

    def handler(uri: str) -> list[TextResourceContents]:
        logger.debug("Provider resource template - resourceURI: %s", uri)
        try:
            docs = provider_resource_template_handler(session, uri)
        except RegistryError as exc:
            raise _fail("Provider Resource: error getting provider details", exc) from exc
        return [TextResourceContents(uri=resource_uri, mime_type="text/markdown", text=docs)]

    return template, handler


def register_resources(server: MCPServer, session: requests.Session) -> None:
    """Add the official and partner provider lists to ``server``."""
    server.add_resource(
        *provider_resource(
            session,
            f"{PROVIDER_BASE_PATH}providers/official",
            "Official Providers list",
            "official",
        )
    )
    server.add_resource(
        *provider_resource(
            session,
            f"{PROVIDER_BASE_PATH}providers/partner",
            "Partner Providers list",
            "partner",
        )
    )


def register_resource_templates(server: MCPServer, session: requests.Session) -> None:
    """Add the provider details template to ``server``."""
    server.add_resource_template(
        *provider_resource_template(
            session,
            f"{PROVIDER_BASE_PATH}/{{namespace}}/name/{{name}}/version/{{version}}",
            "Provider details",
        )
    )