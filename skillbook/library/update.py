"""Library updates: check the remote manifest, back up, replace files."""

from __future__ import annotations

import io
import logging
import re
import shutil
import tarfile
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Optional, Union

import httpx

from skillbook.core.errors import (
    ErrorCategory,
    ManifestError,
    UpdateError,
    classify_error,
)
from skillbook.core.logging import log_update
from skillbook.library.manifest import (
    MANIFEST_FILENAME,
    VersionManifest,
    load_manifest,
    parse_manifest,
)

logger = logging.getLogger(__name__)

BACKUP_STAMP_FORMAT = "%Y%m%dT%H%M%S%f"


def backup_name_pattern(library_name: str) -> re.Pattern:
    """Match ``<library>-<version>-<stamp>`` for one library only.

    The version must be semver or "unversioned", so a sibling such as
    ``lib-foo`` never shows up among the backups of ``lib``.
    """
    return re.compile(
        rf"{re.escape(library_name)}-(?P<version>unversioned|\d+\.\d+\.\d+[0-9A-Za-z.+-]*)"
        r"-(?P<stamp>\d{8}T\d{12})"
    )


@dataclass
class UpdateStatus:
    """Result of comparing local and remote manifests."""
    current: Optional[str]
    latest: str
    update_available: bool


@dataclass
class UpdateResult:
    """What an update run did."""
    previous: Optional[str]
    installed: Optional[str]
    backup_path: Optional[Path] = None
    replaced: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.replaced)


class LibraryUpdater:
    """Downloads a library tarball and swaps it in with a backup."""

    def __init__(
        self,
        library_dir: Path,
        backups_dir: Path,
        manifest_url: Optional[str],
        tarball_url: Optional[str],
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            library_dir: Library to update in place
            backups_dir: Where backups are written
            manifest_url: URL of the remote version.json
            tarball_url: URL of the library tarball
            timeout: HTTP timeout in seconds
            client: HTTP client to use (one is created per request if omitted)
        """
        self.library_dir = Path(library_dir)
        self.backups_dir = Path(backups_dir)
        self.manifest_url = manifest_url
        self.tarball_url = tarball_url
        self.timeout = timeout
        self._client = client

    # --- HTTP ---

    def _get(self, url: Optional[str], what: str) -> bytes:
        if not url:
            raise UpdateError(f"No {what} URL configured", ErrorCategory.INVALID_INPUT)
        try:
            if self._client is not None:
                response = self._client.get(url)
                response.raise_for_status()
                return response.content
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            classified = classify_error(e)
            raise UpdateError(f"Failed to fetch {what} from {url}: {classified.message}", classified.category) from e

    # --- check ---

    def current_version(self) -> Optional[str]:
        """Installed version, or None when the manifest is missing or unreadable."""
        try:
            return load_manifest(self.library_dir).version
        except FileNotFoundError:
            return None
        except (ManifestError, UnicodeDecodeError) as e:
            logger.warning("Ignoring local manifest: %s", e)
            return None

    def fetch_remote_manifest(self) -> VersionManifest:
        data = self._get(self.manifest_url, "manifest")
        try:
            return parse_manifest(data.decode("utf-8"))
        except (ManifestError, UnicodeDecodeError) as e:
            raise UpdateError(f"Remote manifest is invalid: {e}", ErrorCategory.INVALID_INPUT) from e

    def check(self) -> UpdateStatus:
        """Compare installed and remote versions (string equality)."""
        current = self.current_version()
        remote = self.fetch_remote_manifest()
        available = current is None or not remote.same_version(current)
        log_update("check", str(current), remote.version)
        return UpdateStatus(current=current, latest=remote.version, update_available=available)

    # --- apply ---

    def apply(self, force: bool = False) -> UpdateResult:
        """Download and install the remote library.

        Does nothing when versions already match unless ``force`` is set.
        The library is backed up first and restored if replacement fails.

        Raises:
            UpdateError: On download, extraction or replacement failure
        """
        status = self.check()
        if not status.update_available and not force:
            logger.info("Library already at %s", status.current)
            return UpdateResult(previous=status.current, installed=status.current)

        data = self._get(self.tarball_url, "tarball")

        with tempfile.TemporaryDirectory(prefix="skillbook-update-") as tmp:
            root = self._extract(data, Path(tmp) / "extract")
            manifest_path = root / MANIFEST_FILENAME
            if not manifest_path.exists():
                raise UpdateError("Tarball does not contain version.json", ErrorCategory.INVALID_INPUT)
            try:
                new_manifest = parse_manifest(manifest_path.read_text(encoding="utf-8"))
            except ManifestError as e:
                raise UpdateError(f"Tarball manifest is invalid: {e}", ErrorCategory.INVALID_INPUT) from e

            backup_path = self.backup() if self._has_content() else None

            try:
                replaced = self._replace(root)
            except Exception as e:
                log_update("apply", str(status.current), new_manifest.version, error=str(e))
                if backup_path is not None:
                    logger.warning("Update failed, restoring %s", backup_path)
                    self.restore(backup_path)
                if isinstance(e, UpdateError):
                    raise
                classified = classify_error(e)
                raise UpdateError(f"Failed to install update: {classified.message}", classified.category) from e

        log_update("apply", str(status.current), new_manifest.version)
        return UpdateResult(
            previous=status.current,
            installed=new_manifest.version,
            backup_path=backup_path,
            replaced=replaced,
        )

    def _extract(self, data: bytes, dest: Path) -> Path:
        """Extract regular files and directories; return the content root."""
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
                for member in tar.getmembers():
                    relative = self._safe_member_path(member.name)
                    if relative is None:
                        continue
                    target = dest.joinpath(*relative.parts)
                    if member.isdir():
                        target.mkdir(parents=True, exist_ok=True)
                    elif member.isfile():
                        target.parent.mkdir(parents=True, exist_ok=True)
                        source = tar.extractfile(member)
                        if source is None:
                            continue
                        with source, open(target, "wb") as out:
                            shutil.copyfileobj(source, out)
                    else:
                        logger.debug("Skipping non-regular tar member %s", member.name)
        except tarfile.TarError as e:
            raise UpdateError(f"Downloaded tarball is unreadable: {e}", ErrorCategory.INVALID_INPUT) from e

        entries = list(dest.iterdir())
        if len(entries) == 1 and entries[0].is_dir():
            return entries[0]
        return dest

    @staticmethod
    def _safe_member_path(name: str) -> Optional[PurePosixPath]:
        """Relative path of a tar member, or None for the archive root.

        Raises:
            UpdateError: If the member would escape the destination
        """
        path = PurePosixPath(name)
        if path.is_absolute() or name.startswith("\\") or ".." in path.parts:
            raise UpdateError(f"Unsafe path in tarball: {name}", ErrorCategory.INVALID_INPUT)
        parts = [p for p in path.parts if p not in ("", ".")]
        if not parts:
            return None
        return PurePosixPath(*parts)

    def _has_content(self) -> bool:
        return self.library_dir.exists() and any(self.library_dir.iterdir())

    def _replace(self, root: Path) -> list[str]:
        """Swap each top-level entry of ``root`` into the library."""
        self.library_dir.mkdir(parents=True, exist_ok=True)
        replaced = []
        for entry in sorted(root.iterdir()):
            target = self.library_dir / entry.name
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            shutil.move(str(entry), str(target))
            replaced.append(entry.name)
        return replaced

    # --- backups ---

    def backup(self) -> Path:
        """Copy the library into a new timestamped backup directory."""
        version = self.current_version() or "unversioned"
        stamp = datetime.now().strftime(BACKUP_STAMP_FORMAT)
        target = self.backups_dir / f"{self.library_dir.name}-{version}-{stamp}"
        self.backups_dir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.library_dir, target)
        logger.info("Backed up %s to %s", self.library_dir, target)
        return target

    def list_backups(self) -> list[Path]:
        """Backups of this library, newest first."""
        if not self.backups_dir.exists():
            return []
        pattern = backup_name_pattern(self.library_dir.name)
        backups = [
            p for p in self.backups_dir.iterdir()
            if p.is_dir() and pattern.fullmatch(p.name)
        ]
        return sorted(backups, key=lambda p: pattern.fullmatch(p.name).group("stamp"), reverse=True)

    def restore(self, backup: Union[Path, str]) -> Path:
        """Replace the library with a backup (a path or a backup name).

        Raises:
            UpdateError: If the backup does not exist
        """
        backup_path = Path(backup)
        if not backup_path.is_absolute() and not backup_path.exists():
            backup_path = self.backups_dir / backup_path
        if not backup_path.is_dir():
            raise UpdateError(f"Backup not found: {backup}", ErrorCategory.NOT_FOUND)

        if self.library_dir.exists():
            shutil.rmtree(self.library_dir)
        shutil.copytree(backup_path, self.library_dir)
        logger.info("Restored %s from %s", self.library_dir, backup_path)
        return self.library_dir
