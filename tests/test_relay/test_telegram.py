"""Tests for the Telegram relay client."""

import httpx
import pytest

from imgrelay.concurrency.rate_limiter import RateLimiter
from imgrelay.errors.exceptions import RelayFetchError, RelayUploadError
from imgrelay.relay.telegram import TelegramRelay
from imgrelay.types import RelayReference, UploadMethod


class TestConfigured:
    def test_configured_needs_both(self):
        assert TelegramRelay(bot_token="t", chat_id="c").configured is True
        assert TelegramRelay(bot_token="t", chat_id="").configured is False
        assert TelegramRelay(bot_token="", chat_id="c").configured is False


class TestUpload:
    async def test_photo_upload_keeps_largest_size(self, relay, upstream, png_bytes):
        ref = await relay.upload(png_bytes, "image/png", "42_poster_1.png")
        assert ref.file_id == "large-1"
        assert ref.file_unique_id == "ul-1"
        assert ref.message_id == 101
        assert ref.file_size == 67
        assert upstream.upload_calls == 1

    async def test_document_upload(self, http_client, upstream, png_bytes, bot_token):
        relay = TelegramRelay(
            bot_token=bot_token, chat_id="-1", client=http_client,
            upload_method=UploadMethod.DOCUMENT,
        )
        ref = await relay.upload(png_bytes, "image/png", "42_poster_1.png")
        assert ref.file_id == "doc-1"

    async def test_sends_multipart_with_chat_and_caption(self, png_bytes, bot_token):
        seen = {}

        async def handler(request):
            body = await request.aread()
            seen["path"] = request.url.path
            seen["body"] = body
            return httpx.Response(
                200, json={"ok": True, "result": {"photo": [{"file_id": "f1"}]}}
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            relay = TelegramRelay(bot_token=bot_token, chat_id="-100", client=client)
            await relay.upload(png_bytes, "image/png", "42_poster_1.png")

        assert seen["path"] == f"/bot{bot_token}/sendPhoto"
        assert b'name="chat_id"' in seen["body"]
        assert b"-100" in seen["body"]
        assert b"Cache: 42_poster_1.png" in seen["body"]
        assert png_bytes in seen["body"]

    async def test_not_configured(self, http_client, upstream):
        relay = TelegramRelay(bot_token="", chat_id="", client=http_client)
        with pytest.raises(RelayUploadError) as exc_info:
            await relay.upload(b"x", "image/jpeg", "f.jpg")
        assert exc_info.value.error_type == "not_configured"
        assert upstream.upload_calls == 0

    async def test_api_error_is_classified(self, relay, upstream):
        upstream.upload_status = 401
        with pytest.raises(RelayUploadError) as exc_info:
            await relay.upload(b"x", "image/jpeg", "f.jpg")
        assert exc_info.value.error_type == "auth_failure"
        assert exc_info.value.http_status == 401

    async def test_ok_false_with_200_is_error(self, bot_token):
        def handler(request):
            return httpx.Response(200, json={"ok": False, "description": "chat not found"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            relay = TelegramRelay(bot_token=bot_token, chat_id="-1", client=client)
            with pytest.raises(RelayUploadError, match="chat not found"):
                await relay.upload(b"x", "image/jpeg", "f.jpg")

    async def test_missing_file_id_is_error(self, bot_token):
        def handler(request):
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            relay = TelegramRelay(bot_token=bot_token, chat_id="-1", client=client)
            with pytest.raises(RelayUploadError) as exc_info:
                await relay.upload(b"x", "image/jpeg", "f.jpg")
        assert exc_info.value.error_type == "bad_response"

    async def test_transport_error_not_retried_by_default(self, bot_token):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            relay = TelegramRelay(bot_token=bot_token, chat_id="-1", client=client)
            with pytest.raises(RelayUploadError) as exc_info:
                await relay.upload(b"x", "image/jpeg", "f.jpg")
        assert calls == 1
        assert exc_info.value.error_type == "connection_error"
        assert bot_token not in str(exc_info.value)

    async def test_transport_error_retried_when_configured(self, bot_token):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("flaky", request=request)
            return httpx.Response(200, json={"ok": True, "result": {"photo": [{"file_id": "f"}]}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            relay = TelegramRelay(
                bot_token=bot_token, chat_id="-1", client=client, retry_attempts=2
            )
            ref = await relay.upload(b"x", "image/jpeg", "f.jpg")
        assert ref.file_id == "f"
        assert calls == 2

    async def test_rate_limiter_consulted(self, http_client, png_bytes, bot_token):
        limiter = RateLimiter(rpm_limit=60)
        relay = TelegramRelay(
            bot_token=bot_token, chat_id="-1", client=http_client, rate_limiter=limiter
        )
        await relay.upload(png_bytes, "image/png", "a.png")
        await relay.upload(png_bytes, "image/png", "b.png")
        assert limiter.stats["total_requests"] == 2


class TestResolveAndDownload:
    async def test_resolve_file_url(self, relay, bot_token):
        url = await relay.resolve_file_url("large-1")
        assert url == f"https://api.telegram.org/file/bot{bot_token}/photos/large-1.jpg"

    async def test_resolve_failure(self, relay, upstream):
        upstream.getfile_ok = False
        with pytest.raises(RelayFetchError) as exc_info:
            await relay.resolve_file_url("bogus")
        assert exc_info.value.file_id == "bogus"

    async def test_resolve_without_token(self, http_client):
        relay = TelegramRelay(bot_token="", chat_id="", client=http_client)
        with pytest.raises(RelayFetchError):
            await relay.resolve_file_url("f")

    async def test_download(self, relay, upstream, png_bytes):
        image = await relay.download(RelayReference(file_id="large-1"))
        assert image.data == png_bytes
        assert image.content_type == "image/png"
        assert upstream.getfile_calls == 1
        assert upstream.download_calls == 1

    async def test_download_http_error(self, relay, upstream):
        upstream.download_status = 404
        with pytest.raises(RelayFetchError) as exc_info:
            await relay.download(RelayReference(file_id="large-1"))
        assert exc_info.value.http_status == 404
