import asyncio
import base64
from collections import Counter

import httpx
import pytest

from imgrelay.api.app import create_app
from imgrelay.api.services import Services
from imgrelay.cache.coordinator import CacheCoordinator
from imgrelay.cache.memory import MemoryStore
from imgrelay.config.schema import Settings
from imgrelay.origin.fetcher import OriginFetcher
from imgrelay.relay.telegram import TelegramRelay

BOT_TOKEN = "123456:TEST-TOKEN"
CHAT_ID = "-1001234567890"

# Minimal valid PNG (1x1 white pixel)
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
    "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
)


class FakeUpstream:
    """Stands in for both the image origin and the Telegram Bot API."""

    def __init__(self) -> None:
        self.origin_calls: Counter[str] = Counter()
        self.upload_calls = 0
        self.getfile_calls = 0
        self.download_calls = 0
        self.origin_status = 200
        self.origin_content_type: str | None = "image/png"
        self.origin_body = PNG_BYTES
        self.upload_status = 200
        self.getfile_ok = True
        self.download_status = 200
        self.delay = 0.0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.telegram.org":
            return self._telegram(request)
        self.origin_calls[str(request.url)] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.origin_status != 200:
            return httpx.Response(self.origin_status, content=b"nope")
        headers = {"content-type": self.origin_content_type} if self.origin_content_type else {}
        return httpx.Response(200, content=self.origin_body, headers=headers)

    def _telegram(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/sendPhoto") or path.endswith("/sendDocument"):
            self.upload_calls += 1
            if self.upload_status != 200:
                return httpx.Response(
                    self.upload_status,
                    json={"ok": False, "error_code": self.upload_status,
                          "description": "Unauthorized"},
                )
            n = self.upload_calls
            if path.endswith("/sendPhoto"):
                result = {
                    "message_id": 100 + n,
                    "photo": [
                        {"file_id": f"small-{n}", "file_unique_id": f"us-{n}", "file_size": 10},
                        {"file_id": f"large-{n}", "file_unique_id": f"ul-{n}", "file_size": 67},
                    ],
                }
            else:
                result = {
                    "message_id": 100 + n,
                    "document": {"file_id": f"doc-{n}", "file_unique_id": f"ud-{n}"},
                }
            return httpx.Response(200, json={"ok": True, "result": result})
        if path.endswith("/getFile"):
            self.getfile_calls += 1
            if not self.getfile_ok:
                return httpx.Response(
                    400,
                    json={"ok": False, "error_code": 400,
                          "description": "Bad Request: invalid file_id"},
                )
            file_id = request.url.params["file_id"]
            return httpx.Response(
                200, json={"ok": True, "result": {"file_path": f"photos/{file_id}.jpg"}}
            )
        if path.startswith("/file/bot"):
            self.download_calls += 1
            if self.download_status != 200:
                return httpx.Response(self.download_status)
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
async def http_client(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    yield client
    await client.aclose()


@pytest.fixture
def fetcher(http_client):
    return OriginFetcher(client=http_client)


@pytest.fixture
def relay(http_client):
    return TelegramRelay(bot_token=BOT_TOKEN, chat_id=CHAT_ID, client=http_client)


@pytest.fixture
def image_cache(fetcher):
    return CacheCoordinator(store=MemoryStore(), fetcher=fetcher, name="image")


@pytest.fixture
def telegram_cache(fetcher, relay):
    return CacheCoordinator(store=MemoryStore(), fetcher=fetcher, relay=relay, name="telegram")


@pytest.fixture
def make_services(http_client):
    """Factory: a Services container over the fake upstream."""

    def _make(bot_token: str = BOT_TOKEN, chat_id: str = CHAT_ID) -> Services:
        settings = Settings(
            telegram_bot_token=bot_token,
            telegram_chat_id=chat_id,
            store="memory",
            relay_rpm=0,
        )
        fetcher = OriginFetcher(client=http_client)
        relay = TelegramRelay(bot_token=bot_token, chat_id=chat_id, client=http_client)
        return Services(
            settings=settings,
            image_cache=CacheCoordinator(MemoryStore(), fetcher, name="image"),
            telegram_cache=CacheCoordinator(MemoryStore(), fetcher, relay=relay, name="telegram"),
            fetcher=fetcher,
            relay=relay,
        )

    return _make


@pytest.fixture
def services(make_services):
    return make_services()


@pytest.fixture
async def make_api():
    """Factory: an HTTP client bound to an app over the given services."""
    clients: list[httpx.AsyncClient] = []

    def _make(services: Services) -> httpx.AsyncClient:
        app = create_app(services=services)
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest.fixture
def api(make_api, services):
    return make_api(services)


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def bot_token():
    return BOT_TOKEN
