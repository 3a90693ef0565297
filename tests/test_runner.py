from __future__ import annotations

import io
import os
import tarfile
import time
from pathlib import Path
from typing import Any, Dict, List

import pytest

from phpbu.cleanup import parse_size
from phpbu.configuration import Configuration
from phpbu.exit_codes import ExitCode, exit_status
from phpbu.loader import ConfigurationError
from phpbu.printer import PrinterCli
from phpbu.runner import Runner
from phpbu.sources import BackupError


def _configuration(project_dir: Path, *backups: Dict[str, Any], **settings: Any) -> Configuration:
    return Configuration.model_validate({"backups": list(backups), **settings})


def _backup(project_dir: Path, name: str = "docs", **extra: Any) -> Dict[str, Any]:
    backup = {
        "name": name,
        "source": {"type": "tar", "options": {"path": str(project_dir / "data")}},
        "target": {"dirname": str(project_dir / "backup"), "filename": f"{name}-%Y%m%d%H%M%S%f.tar.gz", "compress": "gzip"},
    }
    backup.update(extra)
    return backup


def test_successful_run_creates_archive(project_dir: Path) -> None:
    configuration = _configuration(project_dir, _backup(project_dir))

    result = Runner().run(configuration)

    assert result.was_successful()
    assert exit_status(result) is ExitCode.SUCCESS
    [archive] = (project_dir / "backup").iterdir()
    with tarfile.open(archive, "r:gz") as tar:
        assert "data/notes.txt" in tar.getnames()


def test_simulation_writes_nothing(project_dir: Path) -> None:
    out = io.StringIO()
    configuration = _configuration(project_dir, _backup(project_dir), simulate=True)
    configuration.add_logger(PrinterCli(debug=True, stream=out))

    result = Runner().run(configuration)

    assert result.was_successful()
    assert not (project_dir / "backup").exists()
    assert "would create" in out.getvalue()


def test_source_error_counts_as_error(project_dir: Path) -> None:
    broken = _backup(project_dir)
    broken["source"]["options"]["path"] = str(project_dir / "missing")

    result = Runner().run(_configuration(project_dir, broken))

    assert result.error_count() == 1
    assert exit_status(result) is ExitCode.EXCEPTION


def test_failed_check_is_failure_without_errors(project_dir: Path) -> None:
    backup = _backup(project_dir, checks=[{"type": "sizemin", "value": "10G"}])

    result = Runner().run(_configuration(project_dir, backup))

    assert not result.was_successful()
    assert result.error_count() == 0
    assert exit_status(result) is ExitCode.FAILURE


def test_limit_selects_backups(project_dir: Path) -> None:
    configuration = _configuration(project_dir, _backup(project_dir, "a"), _backup(project_dir, "b"), limit=["b"])

    result = Runner().run(configuration)

    assert [backup.name for backup in result.backups] == ["b"]


def test_unknown_limit_raises(project_dir: Path) -> None:
    configuration = _configuration(project_dir, _backup(project_dir, "a"), limit=["nope"])

    with pytest.raises(ConfigurationError, match="nope"):
        Runner().run(configuration)


def test_stop_on_failure_skips_remaining(project_dir: Path) -> None:
    first = _backup(project_dir, "a", stop_on_failure=True)
    first["source"]["options"]["path"] = str(project_dir / "missing")

    result = Runner().run(_configuration(project_dir, first, _backup(project_dir, "b")))

    assert [backup.name for backup in result.backups] == ["a"]


def test_bootstrap_file_runs_first(project_dir: Path) -> None:
    marker = project_dir / "bootstrapped"
    bootstrap = project_dir / "boot.py"
    bootstrap.write_text(f"open({str(marker)!r}, 'w').close()\n", encoding="utf-8")

    Runner().run(_configuration(project_dir, bootstrap=str(bootstrap)))

    assert marker.exists()


def test_missing_bootstrap_file_raises(project_dir: Path) -> None:
    with pytest.raises(ConfigurationError, match="Bootstrap"):
        Runner().run(_configuration(project_dir, bootstrap=str(project_dir / "nope.py")))


def test_quantity_cleanup_keeps_newest(project_dir: Path) -> None:
    target = project_dir / "backup"
    target.mkdir()
    now = time.time()
    for index in range(3):
        old = target / f"docs-2000010100000{index}000000.tar.gz"
        old.write_bytes(b"old")
        os.utime(old, (now - 1000 + index, now - 1000 + index))
    (target / "unrelated.txt").write_text("keep", encoding="utf-8")
    backup = _backup(project_dir, cleanup={"type": "quantity", "options": {"amount": "2"}})

    result = Runner().run(_configuration(project_dir, backup))

    assert result.was_successful()
    remaining = sorted(child.name for child in target.iterdir())
    assert len(remaining) == 3
    assert "unrelated.txt" in remaining
    assert "docs-20000101000002000000.tar.gz" in remaining


def test_custom_source_factory(project_dir: Path) -> None:
    calls: List[Path] = []

    class FailingSource:
        def backup(self, target: Path) -> Path:
            calls.append(target)
            raise BackupError("dump failed")

    result = Runner(source_factory=lambda backup: FailingSource()).run(_configuration(project_dir, _backup(project_dir)))

    assert len(calls) == 1
    assert result.backups[0].errors == ["dump failed"]


def test_outdated_cleanup_removes_only_expired(project_dir: Path) -> None:
    target = project_dir / "backup"
    target.mkdir()
    now = time.time()
    expired = target / "docs-20000101000000000000.tar.gz"
    recent = target / "docs-20000102000000000000.tar.gz"
    for path, age_days in ((expired, 10), (recent, 2)):
        path.write_bytes(b"old")
        mtime = now - age_days * 86400
        os.utime(path, (mtime, mtime))
    backup = _backup(project_dir, cleanup={"type": "outdated", "options": {"older": "7"}})

    result = Runner().run(_configuration(project_dir, backup))

    assert result.was_successful()
    assert not expired.exists()
    assert recent.exists()
    assert len(list(target.iterdir())) == 2


def test_invalid_cleanup_option_fails_without_errors(project_dir: Path) -> None:
    backup = _backup(project_dir, cleanup={"type": "outdated", "options": {"older": "soon"}})

    result = Runner().run(_configuration(project_dir, backup))

    assert exit_status(result) is ExitCode.FAILURE
    assert result.backups[0].failures == ["Cleanup option 'older' must be an integer"]


def test_passing_size_check(project_dir: Path) -> None:
    backup = _backup(project_dir, checks=[{"type": "sizemin", "value": "10B"}])

    result = Runner().run(_configuration(project_dir, backup))

    assert result.was_successful()
    assert result.backups[0].failures == []


@pytest.mark.parametrize(
    "value, expected",
    [("100", 100), ("100B", 100), ("1K", 1024), ("1.5K", 1536), ("2M", 2 * 1024 ** 2), ("1GB", 1024 ** 3), ("3k", 3072)],
)
def test_parse_size(value, expected) -> None:
    assert parse_size(value) == expected


def test_parse_size_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        parse_size("lots")
