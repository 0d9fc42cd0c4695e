"""Coordinate extractor for Maven repository layouts.

Files are expected at
``<group path>/<artifactId>/<version>/<artifactId>-<version>[-<classifier>].<ext>``
relative to the repository base directory. When the sibling POM exists it is
read for the packaging type, name and description; main jars are opened for
their class listing and, for Maven plugins, the plugin descriptor.
"""

from __future__ import annotations

import hashlib
import logging
import re
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from repodex.artifacts.base_extractor import BaseExtractor
from repodex.artifacts.models import ArtifactDescriptor
from repodex.exceptions import ExtractionError, NotAnArtifactError

_SIDECAR_SUFFIXES = {".sha1", ".sha256", ".sha512", ".md5", ".asc", ".lastupdated"}
_IGNORED_NAMES = {"_remote.repositories", "_maven.repositories", "resolver-status.properties"}
_COMPOUND_EXTENSIONS = ("tar.gz", "tar.bz2", "tar.xz")
_SHA1_RE = re.compile(r"^[0-9a-fA-F]{40}$")
_SNAPSHOT = "-SNAPSHOT"
_ARCHIVE_EXTENSIONS = {"jar", "war", "ear"}
PLUGIN_DESCRIPTOR = "META-INF/maven/plugin.xml"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PomInfo:
    """The handful of POM elements the index cares about."""

    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: str = "jar"
    name: Optional[str] = None
    description: Optional[str] = None


def _local(tag: str) -> str:
    # "{http://maven.apache.org/POM/4.0.0}artifactId" -> "artifactId"
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def read_pom(path: Path) -> PomInfo:
    """Parse the coordinate-related elements of a POM file."""
    try:
        root = ET.parse(path).getroot()
    except (ET.ParseError, OSError) as exc:
        raise ExtractionError(path, f"unreadable POM: {exc}") from exc
    if _local(root.tag) != "project":
        raise ExtractionError(path, f"unexpected POM root element <{_local(root.tag)}>")

    version = _child_text(root, "version")
    if version is None:
        for child in root:
            if _local(child.tag) == "parent":
                version = _child_text(child, "version")
    return PomInfo(
        artifact_id=_child_text(root, "artifactId"),
        version=version,
        packaging=_child_text(root, "packaging") or "jar",
        name=_child_text(root, "name"),
        description=_child_text(root, "description"),
    )


@dataclass(slots=True)
class JarContents:
    """Class listing of a jar and, for Maven plugins, its descriptor data."""

    class_names: Tuple[str, ...] = ()
    plugin_prefix: Optional[str] = None
    plugin_goals: Optional[Tuple[str, ...]] = None


def _class_names(entries: Iterable[str]) -> Tuple[str, ...]:
    names: List[str] = []
    for entry in entries:
        # nested and multi-release classes are not part of the jar's public listing
        if not entry.endswith(".class") or "$" in entry or entry.startswith("META-INF/"):
            continue
        name = entry[: -len(".class")].replace("/", ".")
        if name.rsplit(".", 1)[-1] in ("module-info", "package-info"):
            continue
        names.append(name)
    return tuple(sorted(names))


def _read_plugin_descriptor(path: Path, data: bytes) -> Tuple[Optional[str], Tuple[str, ...]]:
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise ExtractionError(path, f"unreadable plugin descriptor: {exc}") from exc
    goals: List[str] = []
    for child in root:
        if _local(child.tag) != "mojos":
            continue
        for mojo in child:
            goal = _child_text(mojo, "goal")
            if goal:
                goals.append(goal)
    return _child_text(root, "goalPrefix"), tuple(goals)


def read_jar_contents(path: Path, *, plugin: bool = False) -> JarContents:
    """List the top-level classes of a jar.

    With ``plugin`` set, ``META-INF/maven/plugin.xml`` is read for the goal
    prefix and the goals of its mojos.
    """
    try:
        with zipfile.ZipFile(path) as archive:
            entries = archive.namelist()
            contents = JarContents(class_names=_class_names(entries))
            if plugin and PLUGIN_DESCRIPTOR in entries:
                contents.plugin_prefix, contents.plugin_goals = _read_plugin_descriptor(
                    path, archive.read(PLUGIN_DESCRIPTOR)
                )
    except (zipfile.BadZipFile, OSError) as exc:
        raise ExtractionError(path, f"unreadable archive: {exc}") from exc
    return contents


def sha1_file(path: Path) -> str:
    """Compute SHA-1 in chunked reads."""
    digest = hashlib.sha1()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(1024 * 128)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


class MavenLayoutExtractor(BaseExtractor):
    """Extractor for Maven-layout repositories."""

    def __init__(
        self,
        *,
        repository_id: Optional[str] = None,
        compute_sha1: bool = True,
        index_jar_contents: bool = True,
    ) -> None:
        self.repository_id = repository_id
        self.compute_sha1 = compute_sha1
        self.index_jar_contents = index_jar_contents

    def can_extract(self, path: Path) -> bool:
        name = path.name
        if name.startswith(".") or name in _IGNORED_NAMES:
            return False
        if name.startswith("maven-metadata") and name.endswith(".xml"):
            return False
        return path.suffix.lower() not in _SIDECAR_SUFFIXES

    def extract(self, path: Path, base_dir: Path) -> ArtifactDescriptor:
        if not self.can_extract(path):
            raise NotAnArtifactError(str(path))
        try:
            parts = path.relative_to(base_dir).parts
        except ValueError as exc:
            raise ExtractionError(path, f"not inside repository {base_dir}") from exc
        if len(parts) < 4:
            raise NotAnArtifactError(str(path))

        *group_parts, artifact_id, version_dir, filename = parts
        group_id = ".".join(group_parts)
        version, classifier, extension = self._split_filename(path, filename, artifact_id, version_dir)

        pom_path = path.with_name(f"{artifact_id}-{version}.pom")
        pom: Optional[PomInfo] = None
        if pom_path.is_file():
            pom = read_pom(pom_path)
            self._check_pom(pom_path, pom, artifact_id, version, version_dir)

        if extension == "pom" and classifier is None:
            if pom is None or pom.packaging != "pom":
                # companion POM of a jar/war/...; the main artifact carries it
                raise NotAnArtifactError(str(path))
            packaging = "pom"
        elif classifier is None and pom is not None and pom.packaging != "pom":
            packaging = pom.packaging
        else:
            packaging = extension

        try:
            stat = path.stat()
        except OSError as exc:
            raise ExtractionError(path, f"cannot stat: {exc}") from exc

        contents = None
        if classifier is None and extension in _ARCHIVE_EXTENSIONS:
            contents = self._jar_contents(path, packaging)

        return ArtifactDescriptor(
            group_id=group_id,
            artifact_id=artifact_id,
            version=version,
            packaging=packaging,
            classifier=classifier,
            extension=extension,
            size=stat.st_size,
            last_modified=int(stat.st_mtime * 1000),
            sha1=self._sha1(path),
            name=pom.name if pom else None,
            description=pom.description if pom else None,
            repository_id=self.repository_id,
            class_names=contents.class_names if contents else None,
            plugin_prefix=contents.plugin_prefix if contents else None,
            plugin_goals=contents.plugin_goals if contents else None,
        )

    def _split_filename(
        self, path: Path, filename: str, artifact_id: str, version_dir: str
    ) -> tuple[str, Optional[str], str]:
        """Split ``filename`` into (version, classifier, extension)."""
        version = version_dir
        prefix = f"{artifact_id}-{version_dir}"
        if not filename.startswith(prefix) and version_dir.endswith(_SNAPSHOT):
            # timestamped snapshot: lib-1.0-20240101.120000-3.jar in 1.0-SNAPSHOT/
            base = re.escape(f"{artifact_id}-{version_dir[: -len(_SNAPSHOT)]}")
            match = re.match(rf"{base}-(\d{{8}}\.\d{{6}}-\d+)", filename)
            if match:
                version = f"{version_dir[: -len(_SNAPSHOT)]}-{match.group(1)}"
                prefix = f"{artifact_id}-{version}"
        if not filename.startswith(prefix):
            raise ExtractionError(path, f"file name does not start with {prefix!r}")

        rest = filename[len(prefix) :]
        if rest.startswith("."):
            extension = rest[1:]
            if not extension:
                raise ExtractionError(path, "missing file extension")
            return version, None, extension
        if not rest.startswith("-"):
            raise ExtractionError(path, f"unexpected text after {prefix!r}: {rest!r}")

        rest = rest[1:]
        for compound in _COMPOUND_EXTENSIONS:
            if rest.endswith("." + compound):
                classifier, extension = rest[: -len(compound) - 1], compound
                break
        else:
            classifier, dot, extension = rest.rpartition(".")
            if not dot:
                raise ExtractionError(path, "missing file extension")
        if not classifier or not extension:
            raise ExtractionError(path, "empty classifier or extension")
        return version, classifier, extension

    @staticmethod
    def _check_pom(pom_path: Path, pom: PomInfo, artifact_id: str, version: str, version_dir: str) -> None:
        if pom.artifact_id and pom.artifact_id != artifact_id:
            raise ExtractionError(
                pom_path, f"POM artifactId {pom.artifact_id!r} does not match path {artifact_id!r}"
            )
        if pom.version and pom.version not in (version, version_dir):
            raise ExtractionError(pom_path, f"POM version {pom.version!r} does not match path {version!r}")

    def _jar_contents(self, path: Path, packaging: str) -> Optional[JarContents]:
        if not self.index_jar_contents:
            return None
        try:
            return read_jar_contents(path, plugin=packaging == "maven-plugin")
        except ExtractionError as exc:
            # the coordinates are still valid without the listing
            logger.warning("jar contents not indexed; %s", exc)
            return None

    def _sha1(self, path: Path) -> Optional[str]:
        sidecar = path.with_name(path.name + ".sha1")
        if sidecar.is_file():
            try:
                text = sidecar.read_text(encoding="ascii", errors="ignore").split()
            except OSError:
                text = []
            if text and _SHA1_RE.match(text[0]):
                return text[0].lower()
        if not self.compute_sha1:
            return None
        try:
            return sha1_file(path)
        except OSError as exc:
            raise ExtractionError(path, f"cannot read: {exc}") from exc
