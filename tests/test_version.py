from tfregistry_mcp import version
from tfregistry_mcp.version import get_human_version


def test_plain_version():
    assert get_human_version("1.2.3", "", "") == "1.2.3"


def test_prerelease_is_appended():
    assert get_human_version("1.2.3", "beta", "") == "1.2.3-beta"


def test_metadata_is_appended_after_prerelease():
    assert get_human_version("1.2.3", "rc1", "abc") == "1.2.3-rc1+abc"


def test_metadata_without_prerelease():
    assert get_human_version("2.0.0", "", "build7") == "2.0.0+build7"


def test_single_quotes_are_stripped():
    assert get_human_version("'1.0.0'", "'dev'", "") == "1.0.0-dev"


def test_defaults_come_from_module():
    result = get_human_version()
    assert result.startswith(version.VERSION)
    if version.VERSION_PRERELEASE:
        assert f"-{version.VERSION_PRERELEASE}" in result


def test_full_version_split_is_consistent():
    joined = version.VERSION
    if version.VERSION_PRERELEASE:
        joined += "-" + version.VERSION_PRERELEASE
    assert joined == version.FULL_VERSION.strip()