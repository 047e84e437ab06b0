"""Tests for the shared scanning helpers."""

from __future__ import annotations

from pathlib import Path

from servicemap.utils import (
    find_matching_delimiter,
    humanize_dir_name,
    iter_files,
    line_of,
    load_java_dependencies,
    load_package_json,
    node_dependencies,
    read_text,
    relative_posix,
    split_top_level,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_find_matching_delimiter_handles_nesting() -> None:
    text = "call(a, fn(b), [c, (d)])"
    assert find_matching_delimiter(text, 4) == len(text) - 1
    assert find_matching_delimiter(text, text.index("[")) == len(text) - 2


def test_find_matching_delimiter_skips_strings_and_comments() -> None:
    text = 'f(")", \'(\', `)`, // )\n /* ) */ x)'
    assert find_matching_delimiter(text, 1) == len(text) - 1


def test_find_matching_delimiter_supports_generics() -> None:
    text = "Promise<Array<UserDto>>"
    assert find_matching_delimiter(text, 7) == len(text) - 1


def test_find_matching_delimiter_returns_minus_one_when_unbalanced() -> None:
    assert find_matching_delimiter("f(a, b", 1) == -1
    assert find_matching_delimiter("abc", 1) == -1
    assert find_matching_delimiter("abc", 10) == -1


def test_split_top_level_ignores_nested_separators() -> None:
    parts = split_top_level("'/a,b', { x: 1, y: 2 }, fn(c, d)")
    assert parts == ["'/a,b'", "{ x: 1, y: 2 }", "fn(c, d)"]


def test_line_of_is_one_based() -> None:
    text = "a\nb\nc"
    assert line_of(text, 0) == 1
    assert line_of(text, text.index("c")) == 3


def test_humanize_dir_name() -> None:
    assert humanize_dir_name("ms-user_admin") == "Ms User Admin"


def test_read_text_skips_oversized_and_missing(tmp_path: Path) -> None:
    big = tmp_path / "big.txt"
    big.write_text("x" * 100, encoding="utf-8")

    assert read_text(big, max_bytes=10) is None
    assert read_text(tmp_path / "missing.txt") is None
    assert read_text(big) == "x" * 100


def test_iter_files_prunes_vendor_and_hidden_dirs(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "b.ts", "")
    _write(tmp_path / "src" / "a.ts", "")
    _write(tmp_path / "src" / "notes.md", "")
    _write(tmp_path / "node_modules" / "lib" / "x.ts", "")
    _write(tmp_path / ".cache" / "y.ts", "")

    found = [path.relative_to(tmp_path).as_posix() for path in iter_files(tmp_path, (".ts",))]

    assert found == ["src/a.ts", "src/b.ts"]


def test_iter_files_missing_root_yields_nothing(tmp_path: Path) -> None:
    assert list(iter_files(tmp_path / "absent", (".ts",))) == []


def test_relative_posix_uses_fallback(tmp_path: Path) -> None:
    path = tmp_path / "repo" / "src" / "a.ts"
    assert relative_posix(path, tmp_path) == "repo/src/a.ts"
    assert relative_posix(path, tmp_path / "other", tmp_path / "repo") == "src/a.ts"


def test_package_json_helpers(tmp_path: Path) -> None:
    _write(
        tmp_path / "package.json",
        '{"dependencies": {"express": "4"}, "devDependencies": {"jest": "29"}}',
    )

    package = load_package_json(tmp_path)

    assert node_dependencies(package) == {"express", "jest"}


def test_load_package_json_tolerates_invalid_json(tmp_path: Path) -> None:
    _write(tmp_path / "package.json", "{not json")
    assert load_package_json(tmp_path) == {}


def test_load_java_dependencies_reads_pom_and_gradle(tmp_path: Path) -> None:
    _write(
        tmp_path / "pom.xml",
        """<project xmlns="http://maven.apache.org/POM/4.0.0">
  <dependencies>
    <dependency>
      <groupId>org.springframework.boot</groupId>
      <artifactId>spring-boot-starter-web</artifactId>
    </dependency>
  </dependencies>
</project>
""",
    )
    _write(
        tmp_path / "build.gradle.kts",
        'dependencies {\n    implementation("com.fasterxml.jackson.core:jackson-databind:2.17.0")\n}\n',
    )

    deps = load_java_dependencies(tmp_path)

    assert "org.springframework.boot:spring-boot-starter-web" in deps
    assert "com.fasterxml.jackson.core:jackson-databind" in deps
