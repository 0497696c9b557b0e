import pytest
import requests
import responses

from tfregistry_mcp.registry import (
    PROVIDER_BASE_PATH,
    REGISTRY_BASE_URL,
    RegistryError,
    construct_provider_version_uri,
    contains_slug,
    extract_provider_name_and_version,
    get_latest_provider_version,
    get_provider_docs_v2,
    get_provider_list,
    get_provider_overview_docs,
    get_provider_resource_details_v2,
    get_provider_resource_docs,
    get_provider_version_id,
    is_v2_provider_data_type,
    is_valid_provider_data_type,
    is_valid_provider_version_format,
    new_registry_client,
    resolve_provider_details,
    send_paginated_registry_call,
    send_registry_call,
)
from tfregistry_mcp.server import ToolError
from tfregistry_mcp.types import ProviderDetail

GUIDE = "check the provider name"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def session():
    return requests.Session()


def _add(rsps, version, uri, payload, status=200):
    rsps.add(responses.GET, f"{REGISTRY_BASE_URL}/{version}/{uri}", json=payload, status=status)


def _doc(doc_id, title="", category=""):
    return {"type": "provider-docs", "id": doc_id,
            "attributes": {"title": title, "category": category}}


def _content(text):
    return {"data": {"attributes": {"content": text}}}


def test_new_registry_client_uses_environment():
    client = new_registry_client()
    assert isinstance(client, requests.Session)
    assert client.trust_env is True


def test_send_registry_call_defaults_to_v1(rsps, session):
    _add(rsps, "v1", "providers/hashicorp/aws", {"version": "5.0.0"})
    body = send_registry_call(session, "GET", "providers/hashicorp/aws")
    assert body == b'{"version": "5.0.0"}'


def test_send_registry_call_uses_given_version(rsps, session):
    _add(rsps, "v2", "provider-docs/42", {"ok": True})
    assert b"ok" in send_registry_call(session, "GET", "provider-docs/42", "v2")


def test_send_registry_call_non_ok_status(rsps, session):
    _add(rsps, "v1", "providers/x/y", {}, status=500)
    with pytest.raises(RegistryError, match="error: 404 Not Found"):
        send_registry_call(session, "GET", "providers/x/y")


def test_registry_error_is_tool_error(rsps, session):
    with pytest.raises(ToolError):
        send_registry_call(session, "GET", "unregistered")


def test_paginated_call_collects_until_empty_page(rsps, session):
    prefix = "provider-docs?filter[provider-version]=7&filter[category]=guides"
    _add(rsps, "v2", f"{prefix}&page[number]=1", {"data": [_doc("a"), _doc("b")]})
    _add(rsps, "v2", f"{prefix}&page[number]=2", {"data": [_doc("c")]})
    _add(rsps, "v2", f"{prefix}&page[number]=3", {"data": []})
    docs = send_paginated_registry_call(session, prefix)
    assert [doc.id for doc in docs] == ["a", "b", "c"]


def test_paginated_call_reports_failing_page(rsps, session):
    prefix = "provider-docs?filter[slug]=x"
    _add(rsps, "v2", f"{prefix}&page[number]=1", {"data": [_doc("a")]})
    with pytest.raises(RegistryError, match=r"page 2"):
        send_paginated_registry_call(session, prefix)


def test_get_provider_list(rsps, session):
    payload = {"data": [
        {"attributes": {"name": "aws", "namespace": "hashicorp"}},
        {"attributes": {"name": "google", "namespace": "hashicorp"}},
    ]}
    _add(rsps, "v2", "providers?filter[tier]=official", payload)
    providers = get_provider_list(session, "official")
    assert [p["name"] for p in providers] == ["aws", "google"]
    assert all(p["namespace"] == "hashicorp" for p in providers)


def test_get_provider_list_bad_json(rsps, session):
    rsps.add(responses.GET, f"{REGISTRY_BASE_URL}/v2/providers?filter[tier]=partner",
             body="not json")
    with pytest.raises(RegistryError, match="partner providers request unmarshalling"):
        get_provider_list(session, "partner")


def test_get_provider_version_id_found(rsps, session):
    payload = {"included": [
        {"id": "100", "attributes": {"version": "4.0.0"}},
        {"id": "200", "attributes": {"version": "5.0.0"}},
    ]}
    _add(rsps, "v2", "providers/hashicorp/aws?include=provider-versions", payload)
    assert get_provider_version_id(session, "hashicorp", "aws", "5.0.0") == "200"


def test_get_provider_version_id_missing(rsps, session):
    _add(rsps, "v2", "providers/hashicorp/aws?include=provider-versions", {"included": []})
    with pytest.raises(RegistryError, match="provider version 9.9.9 not found"):
        get_provider_version_id(session, "hashicorp", "aws", "9.9.9")


def test_get_provider_resource_docs(rsps, session):
    _add(rsps, "v2", "provider-docs/55", _content("# page_title"))
    assert get_provider_resource_docs(session, "55") == "# page_title"


def test_get_provider_overview_docs_joins_pages(rsps, session):
    uri = ("provider-docs?filter[provider-version]=9&filter[category]=overview"
           "&filter[slug]=index")
    _add(rsps, "v2", uri, {"data": [_doc("1"), _doc("2")]})
    _add(rsps, "v2", "provider-docs/1", _content("first "))
    _add(rsps, "v2", "provider-docs/2", _content("second"))
    assert get_provider_overview_docs(session, "9") == "first " + "second"


def test_extract_provider_name_and_version():
    uri = f"{PROVIDER_BASE_PATH}/hashicorp/name/aws/version/latest"
    assert extract_provider_name_and_version(uri) == ("hashicorp", "aws", "latest")


def test_extract_provider_name_and_version_too_short():
    with pytest.raises(ValueError):
        extract_provider_name_and_version(f"{PROVIDER_BASE_PATH}/hashicorp/name")


def test_construct_provider_version_uri_round_trips_parts():
    uri = construct_provider_version_uri("hashicorp", "aws", "5.0.0")
    assert uri.startswith(f"{PROVIDER_BASE_PATH}/hashicorp/")
    assert extract_provider_name_and_version(uri) == ("hashicorp", "aws", "5.0.0")


def test_get_latest_provider_version(rsps, session):
    _add(rsps, "v1", "providers/hashicorp/consul", {"version": "2.21.0"})
    assert get_latest_provider_version(session, "hashicorp", "consul") == "2.21.0"


def test_get_latest_provider_version_error(rsps, session):
    _add(rsps, "v1", "providers/nobody/none", {}, status=404)
    with pytest.raises(RegistryError, match="latest provider version API request"):
        get_latest_provider_version(session, "nobody", "none")


@pytest.mark.parametrize(
    "source, slug, expected",
    [
        ("aws_s3_bucket", "s3", True),
        ("aws_s3_bucket", "aws_s3_bucket", True),
        ("aws_s3_bucket", "gcs", False),
        ("axb", "a.b", False),
        ("a.b", "a.b", True),
    ],
)
def test_contains_slug(source, slug, expected):
    assert contains_slug(source, slug) is expected


@pytest.mark.parametrize(
    "version, expected",
    [
        ("1.0.0", True),
        ("v1.2.3", True),
        ("1.0.0-beta", True),
        ("latest", False),
        ("1.0", False),
        ("1.0.0\n", False),
        ("1.0.0-beta.1", False),
    ],
)
def test_is_valid_provider_version_format(version, expected):
    assert is_valid_provider_version_format(version) is expected


def test_provider_data_types():
    for name in ("resources", "data-sources", "functions", "guides", "overview"):
        assert is_valid_provider_data_type(name)
    assert not is_valid_provider_data_type("modules")
    assert [t for t in ("resources", "guides", "functions", "overview", "data-sources")
            if is_v2_provider_data_type(t)] == ["guides", "functions", "overview"]


def test_resolve_requires_provider_name(session):
    with pytest.raises(RegistryError, match="providerName is required"):
        resolve_provider_details({}, session, GUIDE)


def test_resolve_with_valid_version_makes_no_call(rsps, session):
    detail = resolve_provider_details(
        {"providerName": "dns", "providerNamespace": "hashicorp",
         "providerVersion": "3.4.0", "providerDataType": "data-sources"},
        session, GUIDE,
    )
    assert detail == ProviderDetail("dns", "hashicorp", "3.4.0", "data-sources")
    assert len(rsps.calls) == 0


def test_resolve_fetches_latest_and_drops_bad_data_type(rsps, session):
    _add(rsps, "v1", "providers/pinecone-io/pinecone", {"version": "1.2.0"})
    detail = resolve_provider_details(
        {"providerName": "pinecone", "providerNamespace": "pinecone-io",
         "providerVersion": "latest", "providerDataType": "bogus"},
        session, GUIDE,
    )
    assert detail.provider_version == "1.2.0"
    assert detail.provider_namespace == "pinecone-io"
    assert detail.provider_data_type == ""


def test_resolve_falls_back_to_hashicorp(rsps, session):
    _add(rsps, "v1", "providers/hashicorp-malformed/vault", {}, status=404)
    _add(rsps, "v1", "providers/hashicorp/vault", {"version": "5.0.0"})
    detail = resolve_provider_details(
        {"providerName": "vault", "providerNamespace": "hashicorp-malformed"},
        session, GUIDE,
    )
    assert detail.provider_namespace == "hashicorp"
    assert detail.provider_version == "5.0.0"


def test_resolve_reports_both_namespaces(rsps, session):
    _add(rsps, "v1", "providers/acme/vaults", {}, status=404)
    _add(rsps, "v1", "providers/hashicorp/vaults", {}, status=404)
    with pytest.raises(RegistryError) as info:
        resolve_provider_details(
            {"providerName": "vaults", "providerNamespace": "acme"}, session, GUIDE
        )
    message = str(info.value)
    assert '"acme" or the "hashicorp"' in message
    assert message.endswith(GUIDE)


def _version_lookup(rsps):
    _add(rsps, "v2", "providers/hashicorp/aws?include=provider-versions",
         {"included": [{"id": "77", "attributes": {"version": "5.0.0"}}]})


def test_get_provider_docs_v2_lists_guides(rsps, session):
    _version_lookup(rsps)
    prefix = "provider-docs?filter[provider-version]=77&filter[category]=guides&filter[language]=hcl"
    _add(rsps, "v2", f"{prefix}&page[number]=1",
         {"data": [_doc("11", "Custom endpoints", "guides")]})
    _add(rsps, "v2", f"{prefix}&page[number]=2", {"data": []})
    detail = ProviderDetail("aws", "hashicorp", "5.0.0", "guides")
    text = get_provider_docs_v2(session, detail)
    assert text.startswith(
        "Available Documentation (top matches) for guides in Terraform provider "
        "hashicorp/aws version: 5.0.0"
    )
    assert "- providerDocID: 11\n- Title: Custom endpoints\n- Category: guides\n---\n" in text


def test_get_provider_docs_v2_empty_raises(rsps, session):
    _version_lookup(rsps)
    prefix = "provider-docs?filter[provider-version]=77&filter[category]=functions&filter[language]=hcl"
    _add(rsps, "v2", f"{prefix}&page[number]=1", {"data": []})
    detail = ProviderDetail("aws", "hashicorp", "5.0.0", "functions")
    with pytest.raises(RegistryError, match="no functions documentation found"):
        get_provider_docs_v2(session, detail)


def test_get_provider_docs_v2_overview(rsps, session):
    _version_lookup(rsps)
    uri = ("provider-docs?filter[provider-version]=77&filter[category]=overview"
           "&filter[slug]=index")
    _add(rsps, "v2", uri, {"data": [_doc("3")]})
    _add(rsps, "v2", "provider-docs/3", _content("overview text"))
    detail = ProviderDetail("aws", "hashicorp", "5.0.0", "overview")
    assert get_provider_docs_v2(session, detail) == "overview text"


def test_get_provider_resource_details_v2_skips_failures(rsps, session):
    _version_lookup(rsps)
    prefix = ("provider-docs?filter[provider-version]=77&filter[category]=resources"
              "&filter[slug]=s3&filter[language]=hcl")
    _add(rsps, "v2", f"{prefix}&page[number]=1", {"data": [_doc("1"), _doc("2")]})
    _add(rsps, "v2", f"{prefix}&page[number]=2", {"data": []})
    _add(rsps, "v2", "provider-docs/1", {}, status=404)
    _add(rsps, "v2", "provider-docs/2", _content("bucket docs"))
    detail = ProviderDetail("aws", "hashicorp", "5.0.0", "resources")
    assert get_provider_resource_details_v2(session, detail, "s3") == "bucket docs"


def test_get_provider_resource_details_v2_unknown_version(rsps, session):
    _version_lookup(rsps)
    detail = ProviderDetail("aws", "hashicorp", "0.0.1", "resources")
    with pytest.raises(RegistryError, match="getting provider version ID"):
        get_provider_resource_details_v2(session, detail, "s3")