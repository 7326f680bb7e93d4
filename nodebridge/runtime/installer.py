"""Install extension-module resource trees into the runtime working directory."""

from __future__ import annotations

import shutil
import zipfile
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from loguru import logger

from nodebridge.runtime.resolvers import (
    BundleProvider,
    ResourceResolver,
    archive_members,
    clean_resource_path,
)
from nodebridge.utils.exceptions import ModuleInstallError

ENTRY_POINT = "index.js"
ARCHIVE_SCHEMES = ("jar", "zip")
BUNDLE_SCHEMES = ("bundle", "bundleentry", "bundleresource")


def _file_url_path(url: str) -> Path:
    parsed = urlparse(url)
    return Path(url2pathname(unquote(parsed.path)))


class ModuleInstaller:
    """Copies resources resolved for a logical path into `working_dir`."""

    def __init__(self, working_dir: Path):
        self.working_dir = Path(working_dir)

    def install(self, resolver: ResourceResolver, path: str, script: str | None = None) -> list[str]:
        """
        Install everything `resolver` yields for `path`; return the URLs used.

        With `script`, that resource is installed too and renamed to `index.js`.
        """
        urls = self._install_path(resolver, path)
        if script:
            self._install_path(resolver, script)
            installed = self.working_dir / PurePosixPath(clean_resource_path(script)).name
            if not installed.is_file():
                raise ModuleInstallError(f"Entry script is not a file: {script}", url=script)
            installed.replace(self.working_dir / ENTRY_POINT)
            logger.debug("Installed entry script {} as {}", script, ENTRY_POINT)
        return urls

    def _install_path(self, resolver: ResourceResolver, path: str) -> list[str]:
        urls = list(resolver.get_resources(path))
        if not urls:
            raise ModuleInstallError(f"No resources found for module path: {path}", url=path)
        for url in urls:
            self.install_url(url, resolver)
        return urls

    def install_url(self, url: str, resolver: ResourceResolver | None = None) -> None:
        scheme = urlparse(url).scheme.lower()
        try:
            if scheme == "file":
                self._copy_from_folder(url)
            elif scheme in ARCHIVE_SCHEMES:
                self._copy_from_archive(url)
            elif scheme in BUNDLE_SCHEMES:
                self._copy_from_bundle(url, resolver)
            else:
                raise ModuleInstallError(f"Unsupported url schema: {url}", url=url)
        except (OSError, zipfile.BadZipFile) as e:
            raise ModuleInstallError(f"Failed to install {url}: {e}", url=url) from e
        logger.debug("Installed module resources from {}", url)

    def _copy_from_folder(self, url: str) -> None:
        source = _file_url_path(url)
        if source.is_dir():
            shutil.copytree(source, self.working_dir, dirs_exist_ok=True)
        else:
            shutil.copy2(source, self.working_dir / source.name)

    def _copy_from_archive(self, url: str) -> None:
        body = url.split(":", 1)[1]
        if "!" not in body:
            raise ModuleInstallError(f"Invalid archive url (missing '!'): {url}", url=url)
        archive_url, internal = body.split("!", 1)
        internal = clean_resource_path(internal)
        archive = _file_url_path(archive_url) if archive_url.startswith("file:") else Path(archive_url)
        with zipfile.ZipFile(archive) as zf:
            for name in archive_members(zf.namelist(), internal):
                if name.endswith("/"):
                    continue
                self._write(self._relative_target(name, internal), zf.read(name))

    def _copy_from_bundle(self, url: str, resolver: ResourceResolver | None) -> None:
        parsed = urlparse(url)
        getter = getattr(resolver, "get_bundle", None)
        bundle: BundleProvider | None = getter(parsed.netloc) if getter else None
        if bundle is None:
            raise ModuleInstallError(f"Unknown bundle '{parsed.netloc}' for {url}", url=url)
        path = clean_resource_path(unquote(parsed.path))
        entries = bundle.list_entries(path)
        if not entries:
            data = bundle.read_entry(path)
            if data is None:
                raise ModuleInstallError(f"Bundle entry not found: {url}", url=url)
            self._write(PurePosixPath(path).name, data)
            return
        for entry in entries:
            if entry.endswith("/"):
                if entry.rstrip("/") != path:
                    (self.working_dir / self._relative_target(entry, path)).mkdir(parents=True, exist_ok=True)
                continue
            relative = self._relative_target(entry, path)
            data = bundle.read_entry(entry)
            if data is not None:
                self._write(relative, data)

    @staticmethod
    def _relative_target(name: str, base: str) -> str:
        """`base/lib/a.js` -> `lib/a.js`; an entry equal to `base` keeps its file name."""
        stripped = name.rstrip("/")
        if stripped == base:
            return PurePosixPath(stripped).name
        return name[len(base) + 1:] if base else name

    def _write(self, relative: str, data: bytes) -> None:
        target = (self.working_dir / relative).resolve()
        if not target.is_relative_to(self.working_dir.resolve()):
            raise ModuleInstallError(f"Refusing to install outside the working directory: {relative}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
