"""Data types for Terraform registry responses."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_TIME_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def _mapping(data: Any, what: str) -> Mapping:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


def _get(data: Mapping, key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise ValueError(
            f"field {key!r}: expected {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _str(data: Mapping, key: str) -> str:
    return _get(data, key, str, "")


def _int(data: Mapping, key: str) -> int:
    return _get(data, key, int, 0)


def _bool(data: Mapping, key: str) -> bool:
    return _get(data, key, bool, False)


def _str_list(data: Mapping, key: str) -> list[str]:
    items = _get(data, key, list, [])
    for item in items:
        if not isinstance(item, str):
            raise ValueError(f"field {key!r}: expected a list of strings")
    return list(items)


def _objects(data: Mapping, key: str, cls: Any) -> list:
    return [cls.from_dict(item) for item in _get(data, key, list, [])]


def _time(data: Mapping, key: str) -> datetime | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a timestamp string")
    match = _TIME_RE.match(value)
    if match is None:
        raise ValueError(f"field {key!r}: invalid timestamp {value!r}")
    base, fraction, zone = match.groups()
    fraction = (fraction or "")[:6].ljust(6, "0")
    if zone == "Z":
        zone = "+00:00"
    return datetime.fromisoformat(f"{base}.{fraction}{zone}")


@dataclass
class ProviderDetail:
    """A provider selected for a documentation lookup."""

    provider_name: str = ""
    provider_namespace: str = ""
    provider_version: str = ""
    provider_data_type: str = ""


@dataclass
class ModuleDetail:
    """A module's identifying parts."""

    module_name: str = ""
    module_namespace: str = ""
    module_provider: str = ""


@dataclass
class ProviderDoc:
    """One documentation entry of a v1 provider response."""

    id: str = ""
    title: str = ""
    path: str = ""
    slug: str = ""
    category: str = ""
    subcategory: str = ""
    language: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ProviderDoc:
        data = _mapping(data, "provider doc")
        return cls(
            id=_str(data, "id"),
            title=_str(data, "title"),
            path=_str(data, "path"),
            slug=_str(data, "slug"),
            category=_str(data, "category"),
            subcategory=_str(data, "subcategory"),
            language=_str(data, "language"),
        )


@dataclass
class ProviderDocData:
    """One documentation entry of a v2 provider-docs listing."""

    type: str = ""
    id: str = ""
    category: str = ""
    language: str = ""
    path: str = ""
    slug: str = ""
    subcategory: Any = None
    title: str = ""
    truncated: bool = False
    link: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ProviderDocData:
        data = _mapping(data, "provider doc data")
        attributes = _get(data, "attributes", Mapping, {})
        links = _get(data, "links", Mapping, {})
        return cls(
            type=_str(data, "type"),
            id=_str(data, "id"),
            category=_str(attributes, "category"),
            language=_str(attributes, "language"),
            path=_str(attributes, "path"),
            slug=_str(attributes, "slug"),
            subcategory=attributes.get("subcategory"),
            title=_str(attributes, "title"),
            truncated=_bool(attributes, "truncated"),
            link=_str(links, "self"),
        )


@dataclass
class ModuleSummary:
    """One module of a module listing or search."""

    id: str = ""
    owner: str = ""
    namespace: str = ""
    name: str = ""
    version: str = ""
    provider: str = ""
    description: str = ""
    source: str = ""
    tag: str = ""
    published_at: datetime | None = None
    downloads: int = 0
    verified: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> ModuleSummary:
        data = _mapping(data, "module")
        return cls(
            id=_str(data, "id"),
            owner=_str(data, "owner"),
            namespace=_str(data, "namespace"),
            name=_str(data, "name"),
            version=_str(data, "version"),
            provider=_str(data, "provider"),
            description=_str(data, "description"),
            source=_str(data, "source"),
            tag=_str(data, "tag"),
            published_at=_time(data, "published_at"),
            downloads=_int(data, "downloads"),
            verified=_bool(data, "verified"),
        )


@dataclass
class ModuleInput:
    """An input variable of a module."""

    name: str = ""
    type: str = ""
    description: str = ""
    default: Any = None
    required: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> ModuleInput:
        data = _mapping(data, "module input")
        return cls(
            name=_str(data, "name"),
            type=_str(data, "type"),
            description=_str(data, "description"),
            default=data.get("default"),
            required=_bool(data, "required"),
        )


@dataclass
class ModuleOutput:
    """An output value of a module."""

    name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ModuleOutput:
        data = _mapping(data, "module output")
        return cls(name=_str(data, "name"), description=_str(data, "description"))


@dataclass
class ModuleProviderDependency:
    """A provider that a module depends on."""

    name: str = ""
    namespace: str = ""
    source: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ModuleProviderDependency:
        data = _mapping(data, "provider dependency")
        return cls(
            name=_str(data, "name"),
            namespace=_str(data, "namespace"),
            source=_str(data, "source"),
            version=_str(data, "version"),
        )


@dataclass
class ModulePart:
    """The root, a submodule or an example of a module version."""

    path: str = ""
    name: str = ""
    readme: str = ""
    empty: bool = False
    inputs: list[ModuleInput] = field(default_factory=list)
    outputs: list[ModuleOutput] = field(default_factory=list)
    provider_dependencies: list[ModuleProviderDependency] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ModulePart:
        data = _mapping(data, "module part")
        return cls(
            path=_str(data, "path"),
            name=_str(data, "name"),
            readme=_str(data, "readme"),
            empty=_bool(data, "empty"),
            inputs=_objects(data, "inputs", ModuleInput),
            outputs=_objects(data, "outputs", ModuleOutput),
            provider_dependencies=_objects(
                data, "provider_dependencies", ModuleProviderDependency
            ),
        )


@dataclass
class ModuleVersionDetails:
    """The details of one module version."""

    id: str = ""
    owner: str = ""
    namespace: str = ""
    name: str = ""
    version: str = ""
    provider: str = ""
    provider_logo_url: str = ""
    description: str = ""
    source: str = ""
    tag: str = ""
    published_at: datetime | None = None
    downloads: int = 0
    verified: bool = False
    root: ModulePart = field(default_factory=ModulePart)
    submodules: list[ModulePart] = field(default_factory=list)
    examples: list[ModulePart] = field(default_factory=list)
    providers: list[str] = field(default_factory=list)
    versions: list[str] = field(default_factory=list)
    deprecation: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> ModuleVersionDetails:
        data = _mapping(data, "module version")
        return cls(
            id=_str(data, "id"),
            owner=_str(data, "owner"),
            namespace=_str(data, "namespace"),
            name=_str(data, "name"),
            version=_str(data, "version"),
            provider=_str(data, "provider"),
            provider_logo_url=_str(data, "provider_logo_url"),
            description=_str(data, "description"),
            source=_str(data, "source"),
            tag=_str(data, "tag"),
            published_at=_time(data, "published_at"),
            downloads=_int(data, "downloads"),
            verified=_bool(data, "verified"),
            root=ModulePart.from_dict(_get(data, "root", Mapping, {})),
            submodules=_objects(data, "submodules", ModulePart),
            examples=_objects(data, "examples", ModulePart),
            providers=_str_list(data, "providers"),
            versions=_str_list(data, "versions"),
            deprecation=data.get("deprecation"),
        )