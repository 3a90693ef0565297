from __future__ import annotations

from pathlib import Path

from phpbu.locator import locate_configuration


def test_explicit_file_resolves_to_absolute_path(tmp_path: Path, monkeypatch) -> None:
    config = tmp_path / "custom.xml"
    config.write_text("<phpbu/>", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert locate_configuration("custom.xml") == config.resolve()
    assert locate_configuration(str(config)) == config.resolve()


def test_explicit_directory_prefers_xml_over_dist(tmp_path: Path) -> None:
    (tmp_path / "phpbu.xml").write_text("<phpbu/>", encoding="utf-8")
    (tmp_path / "phpbu.xml.dist").write_text("<phpbu/>", encoding="utf-8")

    assert locate_configuration(str(tmp_path)) == (tmp_path / "phpbu.xml").resolve()


def test_directory_with_only_dist(tmp_path: Path) -> None:
    (tmp_path / "phpbu.xml.dist").write_text("<phpbu/>", encoding="utf-8")

    assert locate_configuration(str(tmp_path)) == (tmp_path / "phpbu.xml.dist").resolve()


def test_working_directory_is_searched_without_argument(tmp_path: Path) -> None:
    (tmp_path / "phpbu.xml.dist").write_text("<phpbu/>", encoding="utf-8")

    assert locate_configuration(None, tmp_path) == (tmp_path / "phpbu.xml.dist").resolve()


def test_nonexistent_path_is_unresolved_even_with_defaults_in_cwd(tmp_path: Path) -> None:
    (tmp_path / "phpbu.xml").write_text("<phpbu/>", encoding="utf-8")

    assert locate_configuration("/nonexistent", tmp_path) is None


def test_empty_argument_is_unresolved(tmp_path: Path) -> None:
    (tmp_path / "phpbu.xml").write_text("<phpbu/>", encoding="utf-8")

    assert locate_configuration("", tmp_path) is None


def test_empty_directory_is_unresolved(tmp_path: Path) -> None:
    assert locate_configuration(str(tmp_path)) is None
    assert locate_configuration(None, tmp_path) is None
