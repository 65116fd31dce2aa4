"""Filesystem-backed artifact store with per-file property sidecars.

Storage layout::

    {base_path}/{repo}/{path}                      artifact bytes
    {base_path}/.properties/{repo}/{path}.json     property multimap

Release repositories are write-once: ``copy`` and ``deploy`` refuse to
overwrite an existing file unless ``allow_overwrite`` is set.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Mapping
from pathlib import Path

from releaseforge.core.hasher import canonical_json_bytes, file_checksums
from releaseforge.core.layout import get_layout
from releaseforge.core.result import Err, Ok, Result
from releaseforge.models.repo import FileInfo, LayoutInfo, RepoPath, StorageFault

logger = logging.getLogger(__name__)

_PROPERTIES_DIR = ".properties"


class FileSystemRepository:
    """Local artifact store rooted at ``base_path``.

    Parameters
    ----------
    base_path:
        Root directory holding one sub-directory per repository.
    layouts:
        Repository key -> layout name.  Unlisted repositories use
        ``default_layout``.
    allow_overwrite:
        Permit ``copy``/``deploy`` onto an existing file.
    """

    def __init__(
        self,
        base_path: Path,
        *,
        layouts: Mapping[str, str] | None = None,
        default_layout: str = "maven-2-default",
        allow_overwrite: bool = False,
    ) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._layouts = dict(layouts or {})
        self._default_layout = default_layout
        self._allow_overwrite = allow_overwrite

    def _file(self, repo_path: RepoPath) -> Path:
        if repo_path.is_root:
            return self._base / repo_path.repo
        return self._base / repo_path.repo / repo_path.path

    def _sidecar(self, repo_path: RepoPath) -> Path:
        return self._base / _PROPERTIES_DIR / repo_path.repo / f"{repo_path.path}.json"

    def _sidecar_dir(self, repo_path: RepoPath) -> Path:
        return self._base / _PROPERTIES_DIR / repo_path.repo / repo_path.path

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _check_target(self, dst: RepoPath) -> StorageFault | None:
        if dst.is_root:
            return StorageFault(message=f"Cannot write to repository root {dst}")
        target = self._file(dst)
        if target.is_dir():
            return StorageFault(message=f"Target {dst} is a folder")
        if target.exists() and not self._allow_overwrite:
            return StorageFault(message=f"Target {dst} already exists")
        return None

    def copy(self, src: RepoPath, dst: RepoPath) -> Result[None, StorageFault]:
        source = self._file(src)
        if not source.is_file():
            return Err(StorageFault(message=f"Source {src} not found"))
        fault = self._check_target(dst)
        if fault is not None:
            return Err(fault)
        try:
            target = self._file(dst)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            return Err(StorageFault(message=f"Failed to copy {src} to {dst}", cause=exc))
        logger.debug("Copied %s to %s", src, dst)
        return Ok(None)

    def deploy(self, dst: RepoPath, content: bytes | str) -> Result[None, StorageFault]:
        fault = self._check_target(dst)
        if fault is not None:
            return Err(fault)
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            target = self._file(dst)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            return Err(StorageFault(message=f"Failed to deploy {dst}", cause=exc))
        logger.debug("Deployed %d bytes to %s", len(data), dst)
        return Ok(None)

    def delete(self, path: RepoPath) -> Result[None, StorageFault]:
        """Delete a file or a whole folder, including property sidecars."""
        if path.is_root:
            return Err(StorageFault(message=f"Refusing to delete repository root {path}"))
        target = self._file(path)
        try:
            if target.is_dir():
                shutil.rmtree(target)
                shutil.rmtree(self._sidecar_dir(path), ignore_errors=True)
            elif target.exists():
                target.unlink()
                self._sidecar(path).unlink(missing_ok=True)
            else:
                return Err(StorageFault(message=f"{path} not found"))
        except OSError as exc:
            return Err(StorageFault(message=f"Failed to delete {path}", cause=exc))
        return Ok(None)

    def set_property(self, path: RepoPath, key: str, *values: str) -> None:
        """Replace the values stored under *key*."""
        if not self._file(path).is_file():
            raise FileNotFoundError(f"Cannot set property on missing file {path}")
        props = self.get_properties(path)
        props[key] = [str(v) for v in values]
        sidecar = self._sidecar(path)
        sidecar.parent.mkdir(parents=True, exist_ok=True)
        sidecar.write_bytes(canonical_json_bytes(props))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, path: RepoPath) -> bool:
        return self._file(path).exists()

    def list_children(self, path: RepoPath) -> list[RepoPath]:
        folder = self._file(path)
        if not folder.is_dir():
            return []
        return [path.child(entry.name) for entry in sorted(folder.iterdir())]

    def get_content(self, path: RepoPath) -> str:
        target = self._file(path)
        if not target.is_file():
            raise FileNotFoundError(f"Artifact not found: {path}")
        return target.read_text(encoding="utf-8")

    def get_properties(self, path: RepoPath) -> dict[str, list[str]]:
        sidecar = self._sidecar(path)
        if not sidecar.exists():
            return {}
        raw = json.loads(sidecar.read_text(encoding="utf-8"))
        return {key: list(values) for key, values in raw.items()}

    def get_file_info(self, path: RepoPath) -> FileInfo | None:
        target = self._file(path)
        if not target.is_file():
            return None
        sha1, md5 = file_checksums(target)
        return FileInfo(repo_path=path, sha1=sha1, md5=md5, size=target.stat().st_size)

    def get_layout_info(self, path: RepoPath) -> LayoutInfo:
        layout = get_layout(self._layouts.get(path.repo, self._default_layout))
        return layout.parse(path.path)

    def search_by_properties(self, criteria: Mapping[str, str]) -> list[FileInfo]:
        """Return files whose properties contain every ``key=value`` pair."""
        root = self._base / _PROPERTIES_DIR
        if not root.is_dir():
            return []
        found: list[FileInfo] = []
        for sidecar in sorted(root.rglob("*.json")):
            props = json.loads(sidecar.read_text(encoding="utf-8"))
            if not all(value in props.get(key, []) for key, value in criteria.items()):
                continue
            relative = sidecar.relative_to(root).as_posix()
            repo, _, rel_path = relative.partition("/")
            info = self.get_file_info(RepoPath.create(repo, rel_path[: -len(".json")]))
            if info is not None:
                found.append(info)
        return found
