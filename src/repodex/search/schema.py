"""Index document schema shared by indexing and both query modes.

Each coordinate is indexed twice: as an untokenized keyword field used for
exact matching, and as an analyzed text field used by free-text queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from whoosh.analysis import Analyzer, StandardAnalyzer
from whoosh.fields import ID, STORED, TEXT, Schema

from repodex.artifacts.models import ArtifactDescriptor

COORDINATES: Tuple[str, ...] = ("group_id", "artifact_id", "version", "packaging", "classifier")
STORED_ATTRIBUTES: Tuple[str, ...] = (
    "extension",
    "size",
    "last_modified",
    "sha1",
    "name",
    "description",
    "repository_id",
    "class_names",
    "plugin_prefix",
    "plugin_goals",
)


def _as_tuple(value: Optional[Iterable[str]]) -> Optional[Tuple[str, ...]]:
    return tuple(value) if value is not None else None


def default_analyzer() -> Analyzer:
    # Lowercase, split on word boundaries; keep short tokens and stop words
    return StandardAnalyzer(stoplist=None, minsize=1)


@dataclass(frozen=True)
class IndexFields:
    """Field names and analyzer used for artifact documents.

    ``keyword`` maps each coordinate to its exact-match field; ``text`` maps it
    to its analyzed field. The text field names form the fixed set searched by
    free-text queries.
    """

    uid: str = "uid"
    keyword: Mapping[str, str] = field(
        default_factory=lambda: {
            "group_id": "g",
            "artifact_id": "a",
            "version": "v",
            "packaging": "p",
            "classifier": "c",
        }
    )
    text: Mapping[str, str] = field(
        default_factory=lambda: {
            "group_id": "group",
            "artifact_id": "artifact",
            "version": "version",
            "packaging": "packaging",
            "classifier": "classifier",
        }
    )
    analyzer: Analyzer = field(default_factory=default_analyzer, compare=False)

    def __post_init__(self) -> None:
        # read-only views
        object.__setattr__(self, "keyword", MappingProxyType(dict(self.keyword)))
        object.__setattr__(self, "text", MappingProxyType(dict(self.text)))

    @property
    def searchable(self) -> Tuple[str, ...]:
        return tuple(self.text[c] for c in COORDINATES)

    def make_schema(self) -> Schema:
        schema = Schema()
        schema.add(self.uid, ID(stored=True, unique=True))
        for coordinate in COORDINATES:
            schema.add(self.keyword[coordinate], ID(stored=True))
            schema.add(self.text[coordinate], TEXT(analyzer=self.analyzer))
        schema.add("extension", STORED())
        schema.add("size", STORED())
        schema.add("last_modified", STORED())
        schema.add("sha1", ID(stored=True))
        schema.add("name", STORED())
        schema.add("description", STORED())
        schema.add("repository_id", STORED())
        schema.add("class_names", STORED())
        schema.add("plugin_prefix", STORED())
        schema.add("plugin_goals", STORED())
        return schema

    def to_document(self, descriptor: ArtifactDescriptor) -> Dict[str, Any]:
        """Build the keyword arguments for ``writer.update_document``."""
        doc: Dict[str, Any] = {self.uid: descriptor.uid}
        for coordinate in COORDINATES:
            value = getattr(descriptor, coordinate)
            if value is None:
                # no term at all, so "classifier is absent" is queryable
                continue
            doc[self.keyword[coordinate]] = value
            doc[self.text[coordinate]] = value
        for name in STORED_ATTRIBUTES:
            value = getattr(descriptor, name)
            if value is not None:
                doc[name] = value
        return doc

    def from_stored(self, stored: Mapping[str, Any]) -> ArtifactDescriptor:
        """Rebuild a descriptor from a hit's stored fields."""
        return ArtifactDescriptor(
            group_id=stored[self.keyword["group_id"]],
            artifact_id=stored[self.keyword["artifact_id"]],
            version=stored[self.keyword["version"]],
            packaging=stored[self.keyword["packaging"]],
            classifier=stored.get(self.keyword["classifier"]),
            extension=stored.get("extension"),
            size=stored.get("size"),
            last_modified=stored.get("last_modified"),
            sha1=stored.get("sha1"),
            name=stored.get("name"),
            description=stored.get("description"),
            repository_id=stored.get("repository_id"),
            class_names=_as_tuple(stored.get("class_names")),
            plugin_prefix=stored.get("plugin_prefix"),
            plugin_goals=_as_tuple(stored.get("plugin_goals")),
        )


DEFAULT_FIELDS = IndexFields()
