"""HTTP access to the public Terraform registry and provider helpers."""

from __future__ import annotations

import itertools
import json
import logging
import re
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import requests

from .server import ToolError
from .types import ProviderDetail, ProviderDocData

REGISTRY_BASE_URL = "https://registry.terraform.io"
PROVIDER_BASE_PATH = "registry://providers"

VALID_PROVIDER_DATA_TYPES = ("resources", "data-sources", "functions", "guides", "overview")
V2_PROVIDER_DATA_TYPES = ("guides", "functions", "overview")

_SEMVER_RE = re.compile(r"v?(\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?)", re.ASCII)

logger = logging.getLogger(__name__)


class RegistryError(ToolError):
    """Raised when the registry cannot answer a request."""


def _fail(context: str, err: object = None) -> RegistryError:
    if err is None:
        logger.error("Error in %s", context)
        return RegistryError(context)
    message = f"{context}: {err}"
    logger.error("Error in %s", message)
    return RegistryError(message)


@contextmanager
def _wrapped(context: str) -> Iterator[None]:
    try:
        yield
    except (RegistryError, ValueError) as exc:
        raise _fail(context, exc) from exc


def _decode(body: bytes) -> dict:
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _obj(data: Mapping, key: str) -> Mapping:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"field {key!r}: expected an object")
    return value


def _list(data: Mapping, key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r}: expected a list")
    return value


def _text(data: Mapping, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string")
    return value


def new_registry_client() -> requests.Session:
    """Create an HTTP session that honours proxy settings from the environment."""
    session = requests.Session()
    session.trust_env = True
    return session


def send_registry_call(
    session: requests.Session, method: str, uri: str, api_version: str = "v1"
) -> bytes:
    """Send a request to the registry API and return the raw response body."""
    url = f"{REGISTRY_BASE_URL}/{api_version}/{uri}"
    logger.debug("Requested URL: %s", url)
    try:
        response = session.request(method, url)
    except requests.RequestException as exc:
        raise RegistryError(str(exc)) from exc
    with response:
        if response.status_code != 200:
            raise RegistryError("error: 404 Not Found")
        body = response.content
        logger.debug("Response status: %s %s", response.status_code, response.reason)
    logger.debug("Response body: %s", body.decode("utf-8", errors="replace"))
    return body


def send_paginated_registry_call(
    session: requests.Session, uri_prefix: str
) -> list[ProviderDocData]:
    """Collect the ``data`` entries of every page until an empty page is met."""
    results: list[ProviderDocData] = []
    for page in itertools.count(1):
        uri = f"{uri_prefix}&page[number]={page}"
        with _wrapped(f"calling paginated registry API (page {page})"):
            body = send_registry_call(session, "GET", uri, "v2")
        with _wrapped(f"unmarshalling page {page}"):
            docs = [ProviderDocData.from_dict(item) for item in _list(_decode(body), "data")]
        if not docs:
            break
        results.extend(docs)
    return results


def get_provider_list(session: requests.Session, provider_type: str) -> list[dict[str, str]]:
    """List the providers of a registry tier such as ``official`` or ``partner``."""
    uri = f"providers?filter[tier]={provider_type}"
    with _wrapped(f"{provider_type} provider API request"):
        body = send_registry_call(session, "GET", uri, "v2")
    with _wrapped(f"{provider_type} providers request unmarshalling"):
        providers = []
        for entry in _list(_decode(body), "data"):
            if not isinstance(entry, Mapping):
                raise ValueError("provider entry: expected an object")
            attributes = _obj(entry, "attributes")
            namespace = _text(attributes, "namespace")
            providers.append(
                {
                    "name": _text(attributes, "name"),
                    "namespace": namespace,
                    "description": namespace,
                    "downloads": namespace,
                }
            )
    return providers


def get_provider_version_id(
    session: requests.Session, namespace: str, name: str, version: str
) -> str:
    """Return the registry's identifier of one provider version."""
    uri = f"providers/{namespace}/{name}?include=provider-versions"
    with _wrapped("provider version ID request"):
        body = send_registry_call(session, "GET", uri, "v2")
    with _wrapped("provider version ID request unmarshalling"):
        included = _list(_decode(body), "included")
        for entry in included:
            if not isinstance(entry, Mapping):
                raise ValueError("included entry: expected an object")
            if _text(_obj(entry, "attributes"), "version") == version:
                return _text(entry, "id")
    raise RegistryError(f"provider version {version} not found")


def get_provider_overview_docs(session: requests.Session, provider_version_id: str) -> str:
    """Return the overview pages of a provider version joined together."""
    uri = (
        f"provider-docs?filter[provider-version]={provider_version_id}"
        "&filter[category]=overview&filter[slug]=index"
    )
    with _wrapped("getting provider docs overview"):
        body = send_registry_call(session, "GET", uri, "v2")
    with _wrapped("getting provider docs request unmarshalling"):
        pages = [ProviderDocData.from_dict(item) for item in _list(_decode(body), "data")]
    parts = []
    for page in pages:
        with _wrapped("getting provider resource docs looping"):
            parts.append(get_provider_resource_docs(session, page.id))
    return "".join(parts)


def _doc_content(body: bytes) -> str:
    return _text(_obj(_obj(_decode(body), "data"), "attributes"), "content")


def get_provider_resource_docs(session: requests.Session, provider_docs_id: str) -> str:
    """Return the markdown content of one provider document."""
    with _wrapped("Error getting provider resource docs "):
        body = send_registry_call(session, "GET", f"provider-docs/{provider_docs_id}", "v2")
    with _wrapped("Error unmarshalling provider resource docs"):
        return _doc_content(body)


def extract_provider_name_and_version(uri: str) -> tuple[str, str, str]:
    """Split ``registry://providers/<ns>/name/<name>/version/<v>`` into its parts."""
    prefix = f"{PROVIDER_BASE_PATH}/"
    if uri.startswith(prefix):
        uri = uri[len(prefix):]
    parts = uri.split("/")
    if len(parts) < 5:
        raise ValueError(f"malformed provider URI: {uri!r}")
    return parts[0], parts[2], parts[4]


def construct_provider_version_uri(
    provider_namespace: Any, provider_name: str, provider_version: Any
) -> str:
    """Build the resource URI of a provider version."""
    return (
        f"{PROVIDER_BASE_PATH}/{provider_namespace}/providers/"
        f"{provider_name}/versions/{provider_version}"
    )


def get_latest_provider_version(
    session: requests.Session, provider_namespace: Any, provider_name: Any
) -> str:
    """Return the newest published version of a provider."""
    uri = f"providers/{provider_namespace}/{provider_name}"
    with _wrapped("latest provider version API request"):
        body = send_registry_call(session, "GET", uri, "v1")
    with _wrapped("provider versions request unmarshalling"):
        version = _text(_decode(body), "version")
    logger.debug("Fetched latest provider version: %s", version)
    return version


def get_provider_resource_details_v2(
    session: requests.Session, provider_detail: ProviderDetail, service_slug: str
) -> str:
    """Join the content of every document that matches a slug and category."""
    with _wrapped("getting provider version ID"):
        version_id = get_provider_version_id(
            session,
            provider_detail.provider_namespace,
            provider_detail.provider_name,
            provider_detail.provider_version,
        )
    uri_prefix = (
        f"provider-docs?filter[provider-version]={version_id}"
        f"&filter[category]={provider_detail.provider_data_type}"
        f"&filter[slug]={service_slug}&filter[language]=hcl"
    )
    docs = send_paginated_registry_call(session, uri_prefix)
    parts = []
    for doc in docs:
        try:
            body = send_registry_call(session, "GET", f"provider-docs/{doc.id}", "v2")
        except RegistryError as exc:
            logger.error("Error fetching provider-docs/%s: %s", doc.id, exc)
            continue
        try:
            parts.append(_doc_content(body))
        except ValueError as exc:
            logger.error("Error unmarshalling provider-docs/%s: %s", doc.id, exc)
    return "".join(parts)


def _listing_header(provider_detail: ProviderDetail) -> str:
    return (
        f"Available Documentation (top matches) for {provider_detail.provider_data_type} "
        f"in Terraform provider {provider_detail.provider_namespace}/"
        f"{provider_detail.provider_name} version: {provider_detail.provider_version}\n\n"
        "Each result includes:\n- providerDocID: tfprovider-compatible identifier\n"
        "- Title: Service or resource name\n- Category: Type of document\n"
        "For best results, select libraries based on the serviceSlug match and "
        "category of information requested.\n\n---\n\n"
    )


def get_provider_docs_v2(session: requests.Session, provider_detail: ProviderDetail) -> str:
    """List a provider's documents of one category; overviews come back in full."""
    with _wrapped("getting provider version ID"):
        version_id = get_provider_version_id(
            session,
            provider_detail.provider_namespace,
            provider_detail.provider_name,
            provider_detail.provider_version,
        )
    category = provider_detail.provider_data_type
    if category == "overview":
        return get_provider_overview_docs(session, version_id)

    uri_prefix = (
        f"provider-docs?filter[provider-version]={version_id}"
        f"&filter[category]={category}&filter[language]=hcl"
    )
    docs = send_paginated_registry_call(session, uri_prefix)
    if not docs:
        raise RegistryError(
            f"no {category} documentation found for provider version {version_id}"
        )
    entries = "".join(
        f"- providerDocID: {doc.id}\n- Title: {doc.title}\n- Category: {doc.category}\n---\n"
        for doc in docs
    )
    return _listing_header(provider_detail) + entries


def contains_slug(source_name: str, slug: str) -> bool:
    """Tell whether ``slug`` occurs literally anywhere in ``source_name``."""
    return slug in source_name


def is_valid_provider_version_format(version: str) -> bool:
    """Accept versions such as ``1.0.0``, ``v1.0.0`` or ``1.0.0-beta``."""
    return _SEMVER_RE.fullmatch(version) is not None


def is_valid_provider_data_type(provider_data_type: str) -> bool:
    return provider_data_type in VALID_PROVIDER_DATA_TYPES


def is_v2_provider_data_type(data_type: str) -> bool:
    return data_type in V2_PROVIDER_DATA_TYPES


def resolve_provider_details(
    arguments: Mapping, session: requests.Session, default_error_guide: str
) -> ProviderDetail:
    """Work out provider, namespace, version and data type from tool arguments."""
    provider_name = arguments.get("providerName")
    if not isinstance(provider_name, str) or not provider_name:
        raise RegistryError("providerName is required and must be a string")

    provider_namespace = arguments.get("providerNamespace")
    if not isinstance(provider_namespace, str) or not provider_namespace:
        logger.debug(
            'Error getting latest provider version in "%s" namespace, '
            "trying the hashicorp namespace",
            provider_namespace or "",
        )
        provider_namespace = "hashicorp"

    provider_version = arguments.get("providerVersion")
    provider_data_type = arguments.get("providerDataType")

    if isinstance(provider_version, str) and is_valid_provider_version_format(provider_version):
        version_value = provider_version
    else:
        try:
            version_value = get_latest_provider_version(
                session, provider_namespace, provider_name
            )
        except RegistryError as exc:
            version_value = ""
            logger.debug(
                "Error getting latest provider version in %s namespace: %s",
                provider_namespace,
                exc,
            )

    if not version_value:
        fallback = "hashicorp"
        try:
            version_value = get_latest_provider_version(session, fallback, provider_name)
        except RegistryError as exc:
            tried = fallback
            if provider_namespace != fallback:
                tried = f'"{provider_namespace}" or the "{fallback}"'
            shown_version = "" if provider_version is None else provider_version
            raise _fail(
                f'Error getting the "{provider_name}" provider, with version '
                f'"{shown_version}" in the {tried} namespace, {default_error_guide}'
            ) from exc
        provider_namespace = fallback

    data_type_value = ""
    if isinstance(provider_data_type, str) and is_valid_provider_data_type(provider_data_type):
        data_type_value = provider_data_type

    return ProviderDetail(
        provider_name=provider_name,
        provider_namespace=provider_namespace,
        provider_version=version_value,
        provider_data_type=data_type_value,
    )