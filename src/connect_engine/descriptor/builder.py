"""Assembles the add-on descriptor from per-component fragments.

Components never touch the descriptor directly. Each one hands the builder a
fragment (a partial descriptor document) and the builder merges all of them
once, in build(). After that the builder is sealed.
"""

import copy
import json
from typing import Any

from connect_engine.common.config import ConnectSettings
from connect_engine.descriptor.schemas import AddonDescriptor, Authentication, Vendor


def merge_fragment(target: dict[str, Any], fragment: dict[str, Any], path: str = "") -> None:
    """Merge `fragment` into `target` in place.

    Mappings merge key by key, lists concatenate, and equal scalars are
    accepted; two different scalars at the same path raise ValueError.
    """
    for key, value in fragment.items():
        where = f"{path}.{key}" if path else key
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif isinstance(target[key], dict) and isinstance(value, dict):
            merge_fragment(target[key], value, where)
        elif isinstance(target[key], list) and isinstance(value, list):
            target[key].extend(copy.deepcopy(value))
        elif target[key] != value:
            raise ValueError(f"Conflicting descriptor values at '{where}'")


class Descriptor:
    """Immutable descriptor document; every accessor returns a copy."""

    __slots__ = ("_document",)

    def __init__(self, document: dict[str, Any]):
        self._document = copy.deepcopy(document)

    def to_json(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    def dumps(self, indent: int | None = 2) -> str:
        return json.dumps(self._document, indent=indent)

    def __getitem__(self, key: str) -> Any:
        return copy.deepcopy(self._document[key])

    def __contains__(self, key: str) -> bool:
        return key in self._document


class DescriptorBuilder:
    def __init__(self, base: AddonDescriptor):
        self._base = base
        self._fragments: list[dict[str, Any]] = []
        self._descriptor: Descriptor | None = None

    @classmethod
    def from_settings(cls, settings: ConnectSettings) -> "DescriptorBuilder":
        vendor = None
        if settings.vendor_name:
            vendor = Vendor(name=settings.vendor_name, url=settings.vendor_url)
        base = AddonDescriptor(
            key=settings.addon_key,
            name=settings.addon_name,
            description=settings.addon_description,
            vendor=vendor,
            authentication=Authentication(type=settings.authentication_type),
            baseUrl=settings.addon_base_url,
            scopes=list(settings.scopes),
            enableLicensing=settings.enable_licensing,
            links={"self": settings.descriptor_url},
        )
        return cls(base)

    @property
    def sealed(self) -> bool:
        return self._descriptor is not None

    def add(self, fragment: dict[str, Any]) -> "DescriptorBuilder":
        if self.sealed:
            raise RuntimeError("Descriptor already built; fragments can no longer be added")
        self._fragments.append(copy.deepcopy(fragment))
        return self

    def build(self) -> Descriptor:
        if self._descriptor is None:
            document = self._base.to_document()
            for fragment in self._fragments:
                merge_fragment(document, fragment)
            self._descriptor = Descriptor(document)
        return self._descriptor
