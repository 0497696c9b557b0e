"""Version information for the server."""

from __future__ import annotations

FULL_VERSION = "0.1.0-dev"

VERSION, _, VERSION_PRERELEASE = FULL_VERSION.strip().partition("-")

# Build metadata as described by semantic versioning.
VERSION_METADATA = ""

# Commit and date of the build; empty and epoch when not stamped.
GIT_COMMIT = ""
BUILD_DATE = "1970-01-01T00:00:01Z"


def get_human_version(
    version: str | None = None,
    prerelease: str | None = None,
    metadata: str | None = None,
) -> str:
    """Compose a display version such as ``1.2.3-beta+meta``.

    Arguments left as ``None`` fall back to the module's own values.
    """
    text = VERSION if version is None else version
    release = VERSION_PRERELEASE if prerelease is None else prerelease
    meta = VERSION_METADATA if metadata is None else metadata

    if release:
        text += f"-{release}"
    if meta:
        text += f"+{meta}"

    # Git information may wrap values in single quotes.
    return text.replace("'", "")