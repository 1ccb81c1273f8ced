"""
Shared fixtures: a scripted HTTP session, a fake dynamic loader and archive builders.
"""

import io
import os
import tarfile
import zipfile
from typing import Any, Dict, List, Optional

import pytest
import requests

from libresolver.libresolver_config import ResolverConfig
from libresolver.libresolver_logger import LibresolverLogger

LIBRARY_NAME = "libduckdb.so"

# Large enough to pass the minimum size check
LIBRARY_BYTES = b"\x7fELF" + b"\x00" * 4096


class FakeResponse:
    """Stands in for requests.Response, including streaming and the context manager protocol."""

    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        content: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        invalid_json: bool = False,
    ):
        self.status_code = status_code
        self._json_data = json_data
        self.content = content
        self.headers = headers or {}
        self.invalid_json = invalid_json
        self.closed = False

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class FakeSession:
    """
    Serves scripted responses per URL. A list is consumed in order, with its
    last item repeated; an exception instance is raised instead of returned.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append({"url": url, "headers": dict(headers or {}), "timeout": timeout, "stream": stream})
        if url not in self.routes:
            return FakeResponse(404, json_data={"message": "Not Found"})

        route = self.routes[url]
        if isinstance(route, list):
            item = route.pop(0) if len(route) > 1 else route[0]
        else:
            item = route
        if isinstance(item, BaseException):
            raise item
        return item

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


class FakeHandle:
    def __init__(self, path: str):
        self.path = path


class FakeLoader:
    """
    Records every load. Paths listed in `errors` raise the given exception.
    """

    def __init__(self, errors: Optional[Dict[str, BaseException]] = None):
        self.errors = dict(errors or {})
        self.loaded: List[str] = []

    def __call__(self, path: str) -> FakeHandle:
        if path in self.errors:
            raise self.errors[path]
        self.loaded.append(path)
        return FakeHandle(path)


def release_payload(tag: str, assets: List[Dict[str, Any]], prerelease: bool = False, draft: bool = False) -> Dict[str, Any]:
    return {
        "tag_name": tag,
        "name": f"Release {tag}",
        "published_at": "2025-09-16T12:00:00Z",
        "prerelease": prerelease,
        "draft": draft,
        "body": None,
        "assets": [
            {
                "name": asset["name"],
                "size": asset.get("size", 100),
                "browser_download_url": asset.get("url", f"https://downloads.example.com/{tag}/{asset['name']}"),
                "content_type": "application/zip",
            }
            for asset in assets
        ],
    }


def build_zip(path: str, members: Dict[str, bytes]) -> str:
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return path


def build_tar_gz(path: str, members: Dict[str, bytes]) -> str:
    with tarfile.open(path, "w:gz") as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


def zip_bytes(members: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def logger():
    return LibresolverLogger()


@pytest.fixture
def session_factory():
    return FakeSession


@pytest.fixture
def response_factory():
    return FakeResponse


@pytest.fixture
def fake_loader():
    return FakeLoader()


@pytest.fixture
def library_bytes():
    return LIBRARY_BYTES


@pytest.fixture
def write_library():
    """Write a plausible library file, creating parent directories."""

    def write(path: str, data: bytes = LIBRARY_BYTES) -> str:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        return path

    return write


@pytest.fixture
def payload_factory():
    return release_payload


@pytest.fixture
def archive_builders():
    return {"zip": build_zip, "tar": build_tar_gz, "zip_bytes": zip_bytes}


@pytest.fixture
def config(tmp_path):
    """A config confined to tmp_path with platform-independent names."""
    return ResolverConfig(
        owner="duckdb",
        repo="duckdb",
        install_dir=str(tmp_path / "install"),
        script_dir=str(tmp_path / "script"),
        library_names=[LIBRARY_NAME],
        asset_patterns=["libduckdb-linux-amd64.zip", "*.zip", "*.tar.gz"],
        version_symbol=None,
        retry_base_delay=0.0,
    )


@pytest.fixture
def loader_factory():
    return FakeLoader
