"""
Resource resolvers: turn a logical module path into source URLs for the installer.

URL shapes produced here:
- `file:///abs/path` for plain directories and files
- `jar:file:///abs/archive.zip!/internal/path` for zip archive entry ranges
- `bundle://<bundle-id>/<path>` for entries served by a `BundleProvider`
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Iterator, Mapping
from importlib import resources
from pathlib import Path
from typing import Protocol, runtime_checkable

BUNDLE_SCHEME = "bundle"


def clean_resource_path(path: str) -> str:
    return path.replace("\\", "/").strip("/")


def archive_members(names: Iterable[str], path: str) -> list[str]:
    """Archive entry names equal to `path` or located under it."""
    path = clean_resource_path(path)
    if not path:
        return list(names)
    prefix = path + "/"
    return [name for name in names if name.rstrip("/") == path or name.startswith(prefix)]


@runtime_checkable
class BundleProvider(Protocol):
    """Host-provided enumeration API of one bundle."""

    def list_entries(self, path: str) -> list[str]: ...
    def read_entry(self, name: str) -> bytes | None: ...


@runtime_checkable
class ResourceResolver(Protocol):
    """Produces zero or more source URLs for a logical resource path."""

    def get_resources(self, path: str) -> Iterable[str]: ...


class DirectoryResolver:
    """Looks the path up below each root directory, in order."""

    def __init__(self, *roots: str | Path):
        self.roots = [Path(root).expanduser().resolve() for root in roots]

    def get_resources(self, path: str) -> Iterator[str]:
        relative = clean_resource_path(path)
        for root in self.roots:
            candidate = root / relative if relative else root
            if candidate.exists():
                yield candidate.as_uri()


class ArchiveResolver:
    """Looks the path up inside zip archives."""

    def __init__(self, *archives: str | Path):
        self.archives = [Path(archive).expanduser().resolve() for archive in archives]

    def get_resources(self, path: str) -> Iterator[str]:
        relative = clean_resource_path(path)
        for archive in self.archives:
            with zipfile.ZipFile(archive) as zf:
                found = archive_members(zf.namelist(), relative)
            if found:
                yield f"jar:{archive.as_uri()}!/{relative}"


class PackageResolver:
    """Looks the path up in the data files of an importable Python package."""

    def __init__(self, package: str):
        self.package = package

    def get_resources(self, path: str) -> Iterator[str]:
        entry = resources.files(self.package)
        for part in clean_resource_path(path).split("/"):
            if part:
                entry = entry / part
        if isinstance(entry, Path):
            if entry.exists():
                yield entry.resolve().as_uri()
        elif isinstance(entry, zipfile.Path):
            if entry.exists():
                archive = Path(entry.root.filename).resolve()
                yield f"jar:{archive.as_uri()}!/{entry.at.rstrip('/')}"


class MappingBundle:
    """In-memory bundle: entry name -> bytes. Directory entries end with `/`."""

    def __init__(self, files: Mapping[str, bytes | str]):
        self.files = {
            clean_resource_path(name): data.encode("utf-8") if isinstance(data, str) else bytes(data)
            for name, data in files.items()
        }

    def list_entries(self, path: str) -> list[str]:
        path = clean_resource_path(path)
        prefix = path + "/" if path else ""
        entries: set[str] = set()
        for name in self.files:
            if name == path:
                entries.add(name)
                continue
            if not name.startswith(prefix):
                continue
            entries.add(name)
            parts = name[len(prefix):].split("/")[:-1]
            for depth in range(1, len(parts) + 1):
                entries.add(prefix + "/".join(parts[:depth]) + "/")
        return sorted(entries)

    def read_entry(self, name: str) -> bytes | None:
        return self.files.get(clean_resource_path(name))


class BundleResolver:
    """Resolves paths against named bundles, yielding `bundle://` URLs."""

    def __init__(self, bundles: Mapping[str, BundleProvider]):
        self.bundles = dict(bundles)

    def get_bundle(self, bundle_id: str) -> BundleProvider | None:
        return self.bundles.get(bundle_id)

    def get_resources(self, path: str) -> Iterator[str]:
        relative = clean_resource_path(path)
        for bundle_id, bundle in self.bundles.items():
            if bundle.list_entries(relative) or bundle.read_entry(relative) is not None:
                yield f"{BUNDLE_SCHEME}://{bundle_id}/{relative}"


class ChainResolver:
    """Concatenates the URLs of several resolvers."""

    def __init__(self, *resolvers: ResourceResolver):
        self.resolvers = list(resolvers)

    def get_resources(self, path: str) -> Iterator[str]:
        for resolver in self.resolvers:
            yield from resolver.get_resources(path)

    def get_bundle(self, bundle_id: str) -> BundleProvider | None:
        for resolver in self.resolvers:
            getter = getattr(resolver, "get_bundle", None)
            bundle = getter(bundle_id) if getter else None
            if bundle is not None:
                return bundle
        return None
