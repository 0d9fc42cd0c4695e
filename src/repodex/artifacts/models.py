"""Artifact coordinate data structures.

An artifact is identified by its coordinate tuple
``(group_id, artifact_id, version, classifier, packaging)``. Everything else a
descriptor carries (size, checksums, POM metadata) is informational and is
replaced whenever the same coordinates are indexed again.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True, slots=True)
class ArtifactDescriptor:
    """Canonical unit indexed and searched.

    Attributes
    ----------
    group_id, artifact_id, version: str
        Required coordinates.
    packaging: str
        Packaging type, e.g. "jar", "pom", "war".
    classifier: str | None
        Optional classifier such as "sources". ``None`` means the artifact has
        no classifier; an empty string is normalised to ``None``.
    """

    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    classifier: Optional[str] = None

    extension: Optional[str] = field(default=None, compare=False)
    size: Optional[int] = field(default=None, compare=False)
    last_modified: Optional[int] = field(default=None, compare=False)  # epoch millis
    sha1: Optional[str] = field(default=None, compare=False)
    name: Optional[str] = field(default=None, compare=False)
    description: Optional[str] = field(default=None, compare=False)
    repository_id: Optional[str] = field(default=None, compare=False)
    # jar contents: top-level class names; plugin prefix and goals for maven-plugin jars
    class_names: Optional[Tuple[str, ...]] = field(default=None, compare=False)
    plugin_prefix: Optional[str] = field(default=None, compare=False)
    plugin_goals: Optional[Tuple[str, ...]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for attr in ("group_id", "artifact_id", "version"):
            if not getattr(self, attr):
                raise ValueError(f"ArtifactDescriptor.{attr} is required")
        if not self.packaging:
            raise ValueError("ArtifactDescriptor.packaging must not be empty")
        if self.classifier == "":
            object.__setattr__(self, "classifier", None)

    @property
    def coordinates(self) -> Tuple[str, str, str, Optional[str], str]:
        return (self.group_id, self.artifact_id, self.version, self.classifier, self.packaging)

    @property
    def uid(self) -> str:
        """Unique document key: one indexed document per coordinate tuple.

        JSON keeps an absent classifier (``null``) apart from any string and
        quotes separators inside coordinates.
        """
        return json.dumps(self.coordinates, separators=(",", ":"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "version": self.version,
            "packaging": self.packaging,
            "classifier": self.classifier,
            "extension": self.extension,
            "size": self.size,
            "last_modified": self.last_modified,
            "sha1": self.sha1,
            "name": self.name,
            "description": self.description,
            "repository_id": self.repository_id,
            "class_names": list(self.class_names) if self.class_names is not None else None,
            "plugin_prefix": self.plugin_prefix,
            "plugin_goals": list(self.plugin_goals) if self.plugin_goals is not None else None,
        }

    def __str__(self) -> str:
        gav = f"{self.group_id}:{self.artifact_id}:{self.version}"
        if self.classifier:
            return f"{gav}:{self.classifier}:{self.packaging}"
        return f"{gav}:{self.packaging}"


@dataclass(frozen=True, slots=True)
class ArtifactPattern:
    """Partial coordinates used to match indexed artifacts.

    Unset fields are wildcards, so ``ArtifactPattern(version="1.0")`` matches
    every indexed artifact whose version is "1.0".
    """

    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    packaging: Optional[str] = None
    classifier: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.criteria():
            raise ValueError("ArtifactPattern needs at least one coordinate")

    def criteria(self) -> Dict[str, str]:
        """Return the coordinates that are set, keyed by coordinate name."""
        values = {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "version": self.version,
            "packaging": self.packaging,
            "classifier": self.classifier,
        }
        return {k: v for k, v in values.items() if v}

    def __str__(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self.criteria().items())
