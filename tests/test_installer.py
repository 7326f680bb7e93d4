"""Tests for module installation from directory, archive, package and bundle sources."""

import zipfile
from pathlib import Path

import pytest

from nodebridge.runtime.installer import ModuleInstaller
from nodebridge.runtime.resolvers import (
    ArchiveResolver,
    BundleResolver,
    ChainResolver,
    DirectoryResolver,
    MappingBundle,
    PackageResolver,
    archive_members,
)
from nodebridge.utils.exceptions import ModuleInstallError


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


def _files(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


def test_directory_module_is_merged_into_working_dir(tmp_path, working_dir):
    module = tmp_path / "src" / "less"
    (module / "lib").mkdir(parents=True)
    (module / "index.js").write_text("main", encoding="utf-8")
    (module / "lib" / "parser.js").write_text("parser", encoding="utf-8")

    urls = ModuleInstaller(working_dir).install(DirectoryResolver(tmp_path / "src"), "less")

    assert urls == [module.resolve().as_uri()]
    assert _files(working_dir) == ["index.js", "lib/parser.js"]


def test_single_file_is_copied_into_working_dir(tmp_path, working_dir):
    (tmp_path / "tools").mkdir()
    (tmp_path / "tools" / "helper.js").write_text("helper", encoding="utf-8")

    ModuleInstaller(working_dir).install(DirectoryResolver(tmp_path), "/tools/helper.js")

    assert (working_dir / "helper.js").read_text(encoding="utf-8") == "helper"


def test_archive_entries_under_path_keep_their_structure(tmp_path, working_dir):
    archive = tmp_path / "modules.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("node_modules/uglify/", "")
        zf.writestr("node_modules/uglify/index.js", "uglify")
        zf.writestr("node_modules/uglify/lib/ast.js", "ast")
        zf.writestr("node_modules/uglify-extra/index.js", "not me")
        zf.writestr("other/readme.txt", "skip")

    resolver = ArchiveResolver(archive)
    urls = ModuleInstaller(working_dir).install(resolver, "node_modules/uglify")

    assert urls == [f"jar:{archive.resolve().as_uri()}!/node_modules/uglify"]
    assert _files(working_dir) == ["index.js", "lib/ast.js"]


def test_archive_members_match_whole_path_segments():
    names = ["a/b/", "a/b/c.js", "a/bc/d.js", "a/b"]
    assert archive_members(names, "/a/b") == ["a/b/", "a/b/c.js", "a/b"]
    assert archive_members(names, "") == names


def test_module_at_archive_root_is_installed(tmp_path, working_dir):
    archive = tmp_path / "module.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("index.js", "main")
        zf.writestr("lib/", "")
        zf.writestr("lib/util.js", "util")

    urls = ModuleInstaller(working_dir).install(ArchiveResolver(archive), "")

    assert urls == [f"jar:{archive.resolve().as_uri()}!/"]
    assert _files(working_dir) == ["index.js", "lib/util.js"]


def test_bundle_entries_are_enumerated(working_dir):
    bundle = MappingBundle({
        "modules/coffee/index.js": "coffee",
        "modules/coffee/lib/nodes.js": "nodes",
        "modules/other.js": "other",
    })
    resolver = BundleResolver({"com.example.coffee": bundle})

    urls = ModuleInstaller(working_dir).install(resolver, "modules/coffee")

    assert urls == ["bundle://com.example.coffee/modules/coffee"]
    assert _files(working_dir) == ["index.js", "lib/nodes.js"]
    assert (working_dir / "lib").is_dir()


class LookupOnlyBundle:
    """Bundle whose enumeration yields nothing, so only direct lookups work."""

    def __init__(self, files):
        self.files = files

    def list_entries(self, path):
        return []

    def read_entry(self, name):
        return self.files.get(name)


def test_bundle_falls_back_to_single_entry_lookup(working_dir):
    resolver = BundleResolver({"b1": LookupOnlyBundle({"scripts/run.js": b"run"})})

    ModuleInstaller(working_dir).install(resolver, "scripts/run.js")

    assert (working_dir / "run.js").read_bytes() == b"run"


def test_script_is_renamed_to_index(tmp_path, working_dir):
    (tmp_path / "mod").mkdir()
    (tmp_path / "mod" / "util.js").write_text("util", encoding="utf-8")
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "cli.js").write_text("entry", encoding="utf-8")

    ModuleInstaller(working_dir).install(DirectoryResolver(tmp_path), "mod", script="bin/cli.js")

    assert _files(working_dir) == ["index.js", "util.js"]
    assert (working_dir / "index.js").read_text(encoding="utf-8") == "entry"


def test_unsupported_scheme_is_rejected(working_dir):
    class HttpResolver:
        def get_resources(self, path):
            return [f"http://example.com/{path}"]

    with pytest.raises(ModuleInstallError, match="Unsupported url schema: http://example.com/mod"):
        ModuleInstaller(working_dir).install(HttpResolver(), "mod")


def test_unresolvable_path_raises(tmp_path, working_dir):
    with pytest.raises(ModuleInstallError, match="No resources found"):
        ModuleInstaller(working_dir).install(DirectoryResolver(tmp_path), "missing")


def test_package_resolver_reads_package_data(working_dir):
    resolver = PackageResolver("nodebridge")

    ModuleInstaller(working_dir).install(resolver, "resources/v0.10.24/ipc.js")

    assert "ipc-ready" in (working_dir / "ipc.js").read_text(encoding="utf-8")


def test_chain_resolver_installs_every_source(tmp_path, working_dir):
    (tmp_path / "first" / "mod").mkdir(parents=True)
    (tmp_path / "first" / "mod" / "a.js").write_text("a", encoding="utf-8")
    bundle = MappingBundle({"mod/b.js": "b"})
    resolver = ChainResolver(DirectoryResolver(tmp_path / "first"), BundleResolver({"bb": bundle}))

    ModuleInstaller(working_dir).install(resolver, "mod")

    assert _files(working_dir) == ["a.js", "b.js"]
    assert resolver.get_bundle("bb") is bundle
    assert resolver.get_bundle("nope") is None


def test_archive_entry_cannot_escape_working_dir(tmp_path, working_dir):
    archive = tmp_path / "evil.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("mod/../../escape.js", "x")

    with pytest.raises(ModuleInstallError):
        ModuleInstaller(working_dir).install_url(f"jar:{archive.as_uri()}!/mod")
