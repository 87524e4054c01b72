import asyncio
import json

import pytest

from loader.fetcher import FetchResult

SOURCE_URL = "https://example.com/products"


def json_result(payload, status_code=200, url=SOURCE_URL):
    """FetchResult carrying `payload` as a JSON body."""
    return FetchResult(
        url=url,
        status_code=status_code,
        content=json.dumps(payload).encode('utf-8'),
        content_type='application/json',
        encoding='utf-8'
    )


class GatedFetcher:
    """Fake fetcher whose requests complete only when the test releases them."""

    def __init__(self):
        self.pending = []

    async def fetch(self, url):
        slot = {'url': url, 'gate': asyncio.Event()}
        self.pending.append(slot)
        await slot['gate'].wait()
        if 'error' in slot:
            raise slot['error']
        return slot['result']

    async def started(self, count):
        while len(self.pending) < count:
            await asyncio.sleep(0)

    def release(self, index, result=None, error=None):
        slot = self.pending[index]
        if error is not None:
            slot['error'] = error
        else:
            slot['result'] = result
        slot['gate'].set()


class StaticFetcher:
    """Fake fetcher answering every request from a queue of results or errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def gated_fetcher():
    return GatedFetcher()


@pytest.fixture
def config_file(tmp_path):
    def write(text):
        path = tmp_path / "config.yaml"
        path.write_text(text)
        return path
    return write
