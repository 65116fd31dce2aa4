"""Repository layouts: derive module coordinates from artifact paths.

Two layouts are supported:

``maven-2-default``
    ``[orgPath]/[module]/[baseRev](-[folderItegRev])/[module]-[baseRev](-[fileItegRev])(-[classifier]).[ext]``
    with ``SNAPSHOT`` folder revisions and ``SNAPSHOT`` or
    ``yyyyMMdd.HHmmss-N`` file revisions.

``ivy-default``
    ``[org]/[module]/[baseRev](-[folderItegRev])/[type]s/[module](-[classifier])-[baseRev](-[fileItegRev]).[ext]``
    with 14-digit timestamp integration revisions.  Descriptors live under
    ``ivys/ivy-[baseRev](-[fileItegRev]).xml``.

A path that does not fit yields ``INVALID_LAYOUT``.
"""

from __future__ import annotations

import abc
import re

from releaseforge.models.repo import INVALID_LAYOUT, LayoutInfo

_MAVEN_FILE_INTEGRATION = re.compile(r"-(SNAPSHOT|\d{8}\.\d{6}-\d+)")
_IVY_FOLDER = re.compile(r"(?P<base>.+?)-(?P<integ>\d{14})")
_IVY_FILE_INTEGRATION = re.compile(r"-(\d{14})")
_TAIL = re.compile(r"(?:-(?P<classifier>[^.]+))?\.(?P<ext>.+)")


class UnknownLayoutError(KeyError):
    """Raised when a repository is configured with an unknown layout name."""


class RepositoryLayout(abc.ABC):
    """Parses repository-relative paths into ``LayoutInfo``."""

    name: str = ""

    @abc.abstractmethod
    def parse(self, path: str) -> LayoutInfo:
        ...


class Maven2Layout(RepositoryLayout):
    name = "maven-2-default"
    snapshot_marker = "SNAPSHOT"

    def parse(self, path: str) -> LayoutInfo:
        tokens = path.strip("/").split("/")
        if len(tokens) < 4:
            return INVALID_LAYOUT
        file_name, version_dir, module = tokens[-1], tokens[-2], tokens[-3]
        organization = ".".join(tokens[:-3])

        suffix = f"-{self.snapshot_marker}"
        integration = version_dir.endswith(suffix)
        base = version_dir[: -len(suffix)] if integration else version_dir
        if not base or not file_name.startswith(f"{module}-{base}"):
            return INVALID_LAYOUT

        rest = file_name[len(module) + 1 + len(base):]
        file_integration = ""
        if integration:
            m = _MAVEN_FILE_INTEGRATION.match(rest)
            if m is None:
                return INVALID_LAYOUT
            file_integration = m.group(1)
            rest = rest[m.end():]

        tail = _TAIL.fullmatch(rest)
        if tail is None:
            return INVALID_LAYOUT

        return LayoutInfo(
            valid=True,
            integration=integration,
            organization=organization,
            module=module,
            base_revision=base,
            folder_integration_revision=self.snapshot_marker if integration else "",
            file_integration_revision=file_integration,
            classifier=tail.group("classifier") or "",
            ext=tail.group("ext"),
        )


class IvyLayout(RepositoryLayout):
    name = "ivy-default"

    def parse(self, path: str) -> LayoutInfo:
        tokens = path.strip("/").split("/")
        if len(tokens) != 5:
            return INVALID_LAYOUT
        organization, module, version_dir, type_dir, file_name = tokens
        if not type_dir.endswith("s"):
            return INVALID_LAYOUT

        folder = _IVY_FOLDER.fullmatch(version_dir)
        if folder is not None:
            base, folder_integration = folder.group("base"), folder.group("integ")
        else:
            base, folder_integration = version_dir, ""
        integration = bool(folder_integration)

        prefix = "ivy" if type_dir == "ivys" and file_name.startswith("ivy-") else module
        if not file_name.startswith(prefix):
            return INVALID_LAYOUT
        rest = file_name[len(prefix):]

        marker = f"-{base}"
        idx = rest.find(marker)
        if idx < 0:
            return INVALID_LAYOUT
        classifier = rest[1:idx] if idx > 0 else ""
        rest = rest[idx + len(marker):]

        file_integration = ""
        if integration:
            m = _IVY_FILE_INTEGRATION.match(rest)
            if m is None:
                return INVALID_LAYOUT
            file_integration = m.group(1)
            rest = rest[m.end():]

        if not rest.startswith(".") or len(rest) < 2:
            return INVALID_LAYOUT

        return LayoutInfo(
            valid=True,
            integration=integration,
            organization=organization,
            module=module,
            base_revision=base,
            folder_integration_revision=folder_integration,
            file_integration_revision=file_integration,
            classifier=classifier,
            ext=rest[1:],
        )


LAYOUTS: dict[str, RepositoryLayout] = {
    layout.name: layout for layout in (Maven2Layout(), IvyLayout())
}


def get_layout(name: str) -> RepositoryLayout:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise UnknownLayoutError(
            f"Unknown repository layout {name!r}. Known: {sorted(LAYOUTS)}"
        ) from None
