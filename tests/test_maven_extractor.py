import hashlib
import io
import logging
import zipfile
from pathlib import Path
from typing import Dict

import pytest
from conftest import write_artifact, write_pom

from repodex.artifacts.maven_extractor import MavenLayoutExtractor, read_jar_contents, read_pom
from repodex.exceptions import ExtractionError, NotAnArtifactError


@pytest.fixture
def extractor() -> MavenLayoutExtractor:
    return MavenLayoutExtractor(repository_id="releases")


def test_main_jar_with_pom(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0", content=b"abc")
    write_pom(repo_dir, "com.example", "lib", "1.0", name="Example Lib")

    d = extractor.extract(jar, repo_dir)

    assert d.coordinates == ("com.example", "lib", "1.0", None, "jar")
    assert d.extension == "jar"
    assert d.size == 3
    assert d.sha1 == hashlib.sha1(b"abc").hexdigest()
    assert d.name == "Example Lib"
    assert d.repository_id == "releases"
    assert d.last_modified and d.last_modified > 0


def test_jar_without_pom_takes_extension_as_packaging(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    war = write_artifact(repo_dir, "org.acme.web", "shop", "2.1", extension="war")
    d = extractor.extract(war, repo_dir)
    assert d.group_id == "org.acme.web"
    assert d.packaging == "war"
    assert d.name is None


def test_pom_packaging_applies_to_main_artifact(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    jar = write_artifact(repo_dir, "com.example", "plugin", "1.0")
    write_pom(repo_dir, "com.example", "plugin", "1.0", packaging="maven-plugin")
    assert extractor.extract(jar, repo_dir).packaging == "maven-plugin"


def test_classified_artifact(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    src = write_artifact(repo_dir, "com.example", "lib", "1.0", classifier="sources")
    write_pom(repo_dir, "com.example", "lib", "1.0", packaging="bundle")
    d = extractor.extract(src, repo_dir)
    assert d.classifier == "sources"
    # classified files are packaged by extension, not by the POM
    assert d.packaging == "jar"


def test_compound_extension(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    dist = write_artifact(repo_dir, "com.example", "app", "3.0", classifier="bin", extension="tar.gz")
    d = extractor.extract(dist, repo_dir)
    assert (d.classifier, d.packaging, d.extension) == ("bin", "tar.gz", "tar.gz")


def test_companion_pom_is_not_an_artifact(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    write_artifact(repo_dir, "com.example", "lib", "1.0")
    pom = write_pom(repo_dir, "com.example", "lib", "1.0")
    with pytest.raises(NotAnArtifactError):
        extractor.extract(pom, repo_dir)


def test_parent_pom_is_an_artifact(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    pom = write_pom(repo_dir, "com.example", "parent", "5", packaging="pom")
    d = extractor.extract(pom, repo_dir)
    assert d.coordinates == ("com.example", "parent", "5", None, "pom")


@pytest.mark.parametrize(
    "name",
    [
        "lib-1.0.jar.sha1",
        "lib-1.0.jar.md5",
        "lib-1.0.jar.asc",
        "maven-metadata.xml",
        "maven-metadata-central.xml",
        "_remote.repositories",
        ".DS_Store",
    ],
)
def test_sidecar_files_are_skipped_by_name(name: str, extractor: MavenLayoutExtractor) -> None:
    assert extractor.can_extract(Path("com/example/lib/1.0") / name) is False


def test_shallow_file_is_not_an_artifact(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    readme = repo_dir / "README.txt"
    readme.write_text("hello", encoding="utf-8")
    with pytest.raises(NotAnArtifactError):
        extractor.extract(readme, repo_dir)


def test_misnamed_file_is_malformed(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    directory = repo_dir / "com" / "example" / "lib" / "1.0"
    directory.mkdir(parents=True)
    stray = directory / "other-2.0.jar"
    stray.write_bytes(b"x")
    with pytest.raises(ExtractionError) as info:
        extractor.extract(stray, repo_dir)
    assert info.value.path == stray


def test_missing_extension_is_malformed(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    directory = repo_dir / "com" / "example" / "lib" / "1.0"
    directory.mkdir(parents=True)
    bare = directory / "lib-1.0-sources"
    bare.write_bytes(b"x")
    with pytest.raises(ExtractionError):
        extractor.extract(bare, repo_dir)


def test_broken_pom_makes_artifact_malformed(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0")
    (jar.parent / "lib-1.0.pom").write_text("<project><artifactId>lib", encoding="utf-8")
    with pytest.raises(ExtractionError):
        extractor.extract(jar, repo_dir)


def test_pom_with_other_coordinates_is_malformed(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0")
    (jar.parent / "lib-1.0.pom").write_text(
        "<project><artifactId>lib</artifactId><version>9.9</version></project>", encoding="utf-8"
    )
    with pytest.raises(ExtractionError):
        extractor.extract(jar, repo_dir)


def test_sha1_sidecar_is_preferred(repo_dir: Path) -> None:
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0")
    (jar.parent / "lib-1.0.jar.sha1").write_text("ABCDEF0123456789ABCDEF0123456789ABCDEF01  lib-1.0.jar\n")
    d = MavenLayoutExtractor(compute_sha1=False).extract(jar, repo_dir)
    assert d.sha1 == "abcdef0123456789abcdef0123456789abcdef01"


def test_timestamped_snapshot(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    directory = repo_dir / "com" / "example" / "lib" / "1.1-SNAPSHOT"
    directory.mkdir(parents=True)
    jar = directory / "lib-1.1-20240102.030405-7.jar"
    jar.write_bytes(b"x")
    d = extractor.extract(jar, repo_dir)
    assert d.version == "1.1-20240102.030405-7"
    assert d.classifier is None


def test_read_pom_inherits_parent_version(tmp_path: Path) -> None:
    pom = tmp_path / "child.pom"
    pom.write_text(
        "<project><parent><groupId>g</groupId><artifactId>p</artifactId><version>7</version></parent>"
        "<artifactId>child</artifactId><description>Child module</description></project>",
        encoding="utf-8",
    )
    info = read_pom(pom)
    assert info.version == "7"
    assert info.packaging == "jar"
    assert info.description == "Child module"


# ---------- Jar contents ----------


def jar_bytes(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


PLUGIN_XML = b"""<?xml version="1.0"?>
<plugin>
  <groupId>com.example</groupId>
  <artifactId>deploy-maven-plugin</artifactId>
  <goalPrefix>deploy</goalPrefix>
  <mojos>
    <mojo><goal>push</goal></mojo>
    <mojo><goal>rollback</goal></mojo>
  </mojos>
</plugin>
"""


def test_main_jar_lists_top_level_classes(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    content = jar_bytes(
        {
            "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
            "com/example/lib/Client.class": b"",
            "com/example/lib/Client$Builder.class": b"",
            "com/example/lib/package-info.class": b"",
            "com/example/lib/Api.class": b"",
            "META-INF/versions/11/com/example/lib/Client.class": b"",
        }
    )
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0", content=content)

    d = extractor.extract(jar, repo_dir)

    assert d.class_names == ("com.example.lib.Api", "com.example.lib.Client")
    assert d.plugin_prefix is None
    assert d.plugin_goals is None


def test_maven_plugin_descriptor(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    content = jar_bytes(
        {
            "com/example/deploy/PushMojo.class": b"",
            "META-INF/maven/plugin.xml": PLUGIN_XML,
        }
    )
    jar = write_artifact(repo_dir, "com.example", "deploy-maven-plugin", "1.0", content=content)
    write_pom(repo_dir, "com.example", "deploy-maven-plugin", "1.0", packaging="maven-plugin")

    d = extractor.extract(jar, repo_dir)

    assert d.packaging == "maven-plugin"
    assert d.class_names == ("com.example.deploy.PushMojo",)
    assert d.plugin_prefix == "deploy"
    assert d.plugin_goals == ("push", "rollback")


def test_plugin_descriptor_ignored_for_plain_jars(repo_dir: Path, extractor: MavenLayoutExtractor) -> None:
    content = jar_bytes({"META-INF/maven/plugin.xml": PLUGIN_XML})
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0", content=content)
    d = extractor.extract(jar, repo_dir)
    assert d.class_names == ()
    assert d.plugin_prefix is None


def test_unreadable_jar_keeps_coordinates(
    repo_dir: Path, extractor: MavenLayoutExtractor, caplog: pytest.LogCaptureFixture
) -> None:
    jar = write_artifact(repo_dir, "com.example", "lib", "1.0", content=b"not a zip")
    with caplog.at_level(logging.WARNING, logger="repodex"):
        d = extractor.extract(jar, repo_dir)
    assert d.coordinates == ("com.example", "lib", "1.0", None, "jar")
    assert d.class_names is None
    assert "jar contents not indexed" in caplog.text


def test_classified_and_disabled_jars_are_not_opened(repo_dir: Path) -> None:
    content = jar_bytes({"com/example/lib/Api.class": b""})
    sources = write_artifact(repo_dir, "com.example", "lib", "1.0", classifier="sources", content=content)
    main = write_artifact(repo_dir, "com.example", "lib", "1.0", content=content)

    assert MavenLayoutExtractor().extract(sources, repo_dir).class_names is None
    assert MavenLayoutExtractor(index_jar_contents=False).extract(main, repo_dir).class_names is None


def test_read_jar_contents_rejects_broken_descriptor(tmp_path: Path) -> None:
    jar = tmp_path / "plugin.jar"
    jar.write_bytes(jar_bytes({"META-INF/maven/plugin.xml": b"<plugin><mojos>"}))
    with pytest.raises(ExtractionError):
        read_jar_contents(jar, plugin=True)
