"""Configure test paths and shared fixtures."""
import sys
from pathlib import Path

import httpx
import pytest

# Add src/ to path so tests can import the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tapatalk_archiver.config import ArchiverConfig
from tapatalk_archiver.database import Archive
from tapatalk_archiver.fetcher import Fetcher, build_url
from tapatalk_archiver.scraper import ForumArchiver

BASE_URL = "https://board.test/groups/demo/"


class FakeBoard:
    """Serves registered pages through an httpx mock transport; 404 otherwise."""

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url
        self.pages = {}
        self.requests = []

    def add(self, kind: str, resource_id: int, html: str, start: int = 0):
        self.pages[build_url(self.base_url, kind, resource_id, start)] = html

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.pages:
            return httpx.Response(200, text=self.pages[url])
        return httpx.Response(404, text="<html><body>Not found</body></html>")

    def fetcher(self) -> Fetcher:
        client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return Fetcher(self.base_url, client=client)


@pytest.fixture
def board():
    return FakeBoard()


@pytest.fixture
def config(tmp_path):
    return ArchiverConfig(
        base_url=BASE_URL,
        database=str(tmp_path / "archive.sqlite"),
        forum_start=1,
        forum_end=3,
        topic_start=1,
        topic_end=3,
    )


@pytest.fixture
def archive(config):
    archive = Archive(config.database)
    archive.setup(config.range_settings())
    return archive


@pytest.fixture
def archiver(config, board, archive):
    return ForumArchiver(config, fetcher=board.fetcher(), archive=archive)
