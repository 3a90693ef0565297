"""Shared fixtures for the phpbu test suite."""

from __future__ import annotations

import io
import textwrap
import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

import pytest
import requests


XML_CONFIGURATION = """\
<?xml version="1.0" encoding="UTF-8"?>
<phpbu verbose="false" colors="false" debug="false">
  <backups>
    <backup name="docs">
      <source type="tar"><option name="path" value="data"/></source>
      <target dirname="backup" filename="docs-%Y%m%d%H%M%S.tar.gz" compress="gzip"/>
    </backup>
  </backups>
</phpbu>
"""


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A directory holding some data to back up."""
    data = tmp_path / "data"
    data.mkdir()
    (data / "notes.txt").write_text("important notes\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def write_config():
    def _write(directory: Path, name: str = "phpbu.xml", content: str = XML_CONFIGURATION) -> Path:
        path = directory / name
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path

    return _write


class FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code


class FakeSession:
    """Stands in for ``requests.Session``; maps URLs to bytes or exceptions."""

    def __init__(self, routes: Optional[Dict[str, Union[bytes, Exception, FakeResponse]]] = None) -> None:
        self.routes = routes or {}
        self.calls = []

    def get(self, url: str, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append((url, timeout))
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)


@pytest.fixture
def fake_session():
    return FakeSession


def build_archive(entries: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def valid_archive() -> bytes:
    return build_archive({"__main__.py": "print('phpbu')\n"})


@pytest.fixture
def fake_response():
    return FakeResponse
