"""Release rewriting of dependency-manifest documents (Maven POM, Ivy).

Documents are parsed with defusedxml (no entity expansion, no external
resources) into plain ElementTree elements, edited in place and serialized
back.  Element text and tails are kept, so indentation and comments survive
the round trip; namespace prefixes declared by the source are written back
literally.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from typing import NamedTuple
from xml.etree import ElementTree as ET

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import DefusedXMLParser

from releaseforge.core.contracts import ArtifactStore
from releaseforge.core.errors import PromotionError, metadata_rewrite_error
from releaseforge.core.path_mapper import stage_version_of
from releaseforge.core.result import Err, Ok, Result, is_err
from releaseforge.core.version_resolver import VersionResolver, truncate_at_hyphen
from releaseforge.models.build import ArtifactKind
from releaseforge.models.promotion import PromotionContext
from releaseforge.models.repo import FileInfo, LayoutInfo, RepoPath

logger = logging.getLogger(__name__)

_XML_DECLARATION = re.compile(r"^\s*(<\?xml[^>]*\?>)")
_NAMESPACE_DECLARATION = re.compile(r"""xmlns(?::([\w.-]+))?\s*=\s*["']([^"']+)["']""")


class InnerDependency(NamedTuple):
    """A staged file from the same build that a module depends on."""

    file: FileInfo
    layout: LayoutInfo


# ---------------------------------------------------------------------------
# XML plumbing
# ---------------------------------------------------------------------------


def parse_document(text: str) -> ET.Element:
    """Parse *text* keeping comments; raises ``ParseError`` or a defusedxml error."""
    parser = DefusedXMLParser(target=ET.TreeBuilder(insert_comments=True))
    parser.feed(text)
    return parser.close()


def _declared_prefixes(source: str) -> dict[str, str]:
    """Namespace URI -> prefix, first declaration wins for either side."""
    prefixes: dict[str, str] = {}
    for prefix, uri in _NAMESPACE_DECLARATION.findall(source):
        if uri not in prefixes and prefix not in prefixes.values():
            prefixes[uri] = prefix
    return prefixes


def _literal_name(name: str, prefixes: Mapping[str, str], *, attribute: bool = False) -> str:
    """Turn ``{uri}local`` into ``prefix:local`` (or ``local`` for the default)."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    prefix = prefixes.get(uri)
    if prefix is None or (attribute and not prefix):
        return name
    return f"{prefix}:{local}" if prefix else local


def serialize_document(root: ET.Element, source: str) -> str:
    """Serialize *root*, restoring the source's declaration and namespace prefixes.

    The source's prefixes are written as literal names on a copy of the tree,
    with their ``xmlns`` declarations on the copy's root.  ElementTree's
    process-wide prefix registry is never touched.
    """
    prefixes = _declared_prefixes(source)
    tree = copy.deepcopy(root)
    for element in tree.iter():
        if isinstance(element.tag, str):
            element.tag = _literal_name(element.tag, prefixes)
        attributes = [(_literal_name(k, prefixes, attribute=True), v) for k, v in element.items()]
        element.attrib.clear()
        element.attrib.update(attributes)
    declarations = {f"xmlns:{p}" if p else "xmlns": uri for uri, p in prefixes.items()}
    attributes = {**declarations, **tree.attrib}
    tree.attrib.clear()
    tree.attrib.update(attributes)

    body = ET.tostring(tree, encoding="unicode")
    declaration = _XML_DECLARATION.match(source)
    if declaration is not None:
        body = f"{declaration.group(1)}\n{body}"
    if source.endswith("\n") and not body.endswith("\n"):
        body += "\n"
    return body


def _qualifier(root: ET.Element) -> Callable[[str], str]:
    """Return a function qualifying local names with the root's namespace."""
    if root.tag.startswith("{"):
        uri = root.tag[1:].split("}", 1)[0]
        return lambda name: f"{{{uri}}}{name}"
    return lambda name: name


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _append_child(parent: ET.Element, tag: str, text: str) -> ET.Element:
    """Append an element, reusing the sibling indentation."""
    child = ET.SubElement(parent, tag)
    child.text = text
    if len(parent) > 1:
        previous = parent[-2]
        child.tail = previous.tail
        previous.tail = parent[-3].tail if len(parent) > 2 else parent.text
    return child


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


def rewrite_pom(
    text: str,
    inner_dependencies: Sequence[InnerDependency],
    snapshot_expression: str,
    resolver: VersionResolver = truncate_at_hyphen,
) -> str:
    """Return the POM with project, parent and inner dependency versions released."""
    root = parse_document(text)
    q = _qualifier(root)

    for path in (q("version"), f"{q('parent')}/{q('version')}"):
        element = root.find(path)
        if element is not None and _text(element):
            element.text = resolver(_text(element), snapshot_expression)

    entries = root.findall(f"{q('dependencies')}/{q('dependency')}") + root.findall(
        f"{q('dependencyManagement')}/{q('dependencies')}/{q('dependency')}"
    )
    for inner in inner_dependencies:
        layout = inner.layout
        for entry in entries:
            if _text(entry.find(q("groupId"))) != layout.organization:
                continue
            if _text(entry.find(q("artifactId"))) != layout.module:
                continue
            version = entry.find(q("version"))
            current = _text(version) or layout.folder_revision
            released = resolver(current, snapshot_expression)
            if version is None:
                _append_child(entry, q("version"), released)
            else:
                version.text = released

    return serialize_document(root, text)


def rewrite_ivy(
    text: str,
    inner_dependencies: Sequence[InnerDependency],
    snapshot_expression: str,
    publication: str,
    resolver: VersionResolver = truncate_at_hyphen,
) -> str:
    """Return the Ivy descriptor released: revision, status, publication, inner revs."""
    root = parse_document(text)
    q = _qualifier(root)

    info = root.find(q("info"))
    if info is None:
        raise ValueError("Ivy descriptor has no <info> element")
    info.set("revision", resolver(info.get("revision", ""), snapshot_expression))
    info.set("status", "release")
    info.set("publication", publication)

    entries = root.findall(f"{q('dependencies')}/{q('dependency')}")
    for inner in inner_dependencies:
        repo_path = inner.file.repo_path
        stage_version = stage_version_of(repo_path, inner.layout)
        if inner.layout.valid:
            org, name = inner.layout.organization, inner.layout.module
        else:
            org = repo_path.path.split("/", 1)[0]
            name = inner.file.name.split("-", 1)[0]
        for entry in entries:
            if (
                entry.get("org") == org
                and entry.get("rev") == stage_version
                and entry.get("name") == name
            ):
                entry.set("rev", resolver(stage_version, snapshot_expression))

    return serialize_document(root, text)


# ---------------------------------------------------------------------------
# Store-facing rewriter
# ---------------------------------------------------------------------------


class MetadataRewriter:
    """Reads a staged manifest, rewrites it and deploys it to the release path."""

    def __init__(
        self,
        store: ArtifactStore,
        resolver: VersionResolver = truncate_at_hyphen,
    ) -> None:
        self._store = store
        self._resolver = resolver

    def _render(
        self,
        kind: ArtifactKind,
        text: str,
        inner: Sequence[InnerDependency],
        ctx: PromotionContext,
    ) -> str:
        match kind:
            case ArtifactKind.POM:
                return rewrite_pom(text, inner, ctx.snapshot_expression, self._resolver)
            case ArtifactKind.IVY:
                return rewrite_ivy(
                    text, inner, ctx.snapshot_expression, ctx.publication, self._resolver
                )
            case ArtifactKind.OPAQUE:
                raise ValueError("opaque artifacts are copied, not rewritten")

    def rewrite_and_deploy(
        self,
        kind: ArtifactKind,
        staged_path: RepoPath,
        release_path: RepoPath,
        inner_dependencies: Sequence[InnerDependency],
        ctx: PromotionContext,
    ) -> Result[None, PromotionError]:
        try:
            source = self._store.get_content(staged_path)
            rendered = self._render(kind, source, inner_dependencies, ctx)
        except (ET.ParseError, DefusedXmlException, ValueError, OSError) as exc:
            return Err(
                metadata_rewrite_error(
                    f"Failed to rewrite {kind.value} descriptor {staged_path}", cause=exc
                )
            )

        deployed = self._store.deploy(release_path, rendered)
        if is_err(deployed):
            fault = deployed.error
            return Err(
                metadata_rewrite_error(
                    f"Failed to deploy release {kind.value} descriptor to {release_path}: "
                    f"{fault.message}",
                    cause=fault.cause,
                )
            )
        logger.info("Deployed release %s descriptor %s", kind.value, release_path)
        return Ok(None)
