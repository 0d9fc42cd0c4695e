from pathlib import Path
from typing import Iterator, Optional

import pytest

from repodex.indexing.repository_indexer import RepositoryIndexer
from repodex.search.whoosh_backend import WhooshBackend

# ---------- Helpers ----------


def pom_xml(
    artifact_id: str,
    version: str,
    *,
    group_id: str = "com.example",
    packaging: str = "jar",
    name: Optional[str] = None,
) -> str:
    name_el = f"<name>{name}</name>" if name else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        "<modelVersion>4.0.0</modelVersion>"
        f"<groupId>{group_id}</groupId>"
        f"<artifactId>{artifact_id}</artifactId>"
        f"<version>{version}</version>"
        f"<packaging>{packaging}</packaging>"
        f"{name_el}"
        "</project>"
    )


def write_artifact(
    repo: Path,
    group_id: str,
    artifact_id: str,
    version: str,
    *,
    classifier: Optional[str] = None,
    extension: str = "jar",
    content: bytes = b"PK\x03\x04 fake jar",
) -> Path:
    """Write one file at its Maven-layout location and return its path."""
    directory = repo.joinpath(*group_id.split("."), artifact_id, version)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = f"-{classifier}" if classifier else ""
    path = directory / f"{artifact_id}-{version}{suffix}.{extension}"
    path.write_bytes(content)
    return path


def write_pom(repo: Path, group_id: str, artifact_id: str, version: str, **kwargs: str) -> Path:
    directory = repo.joinpath(*group_id.split("."), artifact_id, version)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{artifact_id}-{version}.pom"
    path.write_text(pom_xml(artifact_id, version, group_id=group_id, **kwargs), encoding="utf-8")
    return path


# ---------- Fixtures ----------


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def index_dir(tmp_path: Path) -> Path:
    return tmp_path / "index"


@pytest.fixture
def backend() -> WhooshBackend:
    return WhooshBackend()


@pytest.fixture
def indexer(repo_dir: Path, index_dir: Path, backend: WhooshBackend) -> Iterator[RepositoryIndexer]:
    idx = RepositoryIndexer("releases", repo_dir, index_dir, backend=backend)
    yield idx
    idx.close()
