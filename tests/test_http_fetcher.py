import unittest

import aiohttp
from aiohttp import web
from aiohttp import test_utils

from remote_asset.cache.models import CacheHeaders
from remote_asset.errors import TransportFailure
from remote_asset.fetch.http import HttpAssetFetcher
from remote_asset.fetch.interfaces import Modified, NotModified

LAST_MODIFIED = "Sat, 01 Jan 2000 00:00:00 GMT"


class HttpAssetFetcherTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.seen_headers: list[dict[str, str]] = []
        self.response_factory = lambda: web.Response(body=b"remote")
        app = web.Application()
        app.router.add_get("/asset", self._handle)
        self.server = test_utils.TestServer(app)
        await self.server.start_server()
        self.url = str(self.server.make_url("/asset"))

    async def asyncTearDown(self) -> None:
        await self.server.close()

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        self.seen_headers.append(dict(request.headers))
        return self.response_factory()

    async def test_success_returns_body_and_headers(self) -> None:
        self.response_factory = lambda: web.Response(
            body=b"remote",
            headers={"ETag": '"v1"', "Last-Modified": LAST_MODIFIED},
        )

        outcome = await HttpAssetFetcher().fetch(self.url, CacheHeaders())

        self.assertIsInstance(outcome, Modified)
        self.assertEqual(outcome.data, b"remote")
        self.assertEqual(outcome.cache_headers, CacheHeaders(etag='"v1"', last_modified=LAST_MODIFIED))

    async def test_sends_conditional_headers(self) -> None:
        self.response_factory = lambda: web.Response(status=304)

        await HttpAssetFetcher().fetch(self.url, CacheHeaders(etag='"abc"', last_modified=LAST_MODIFIED))

        self.assertEqual(self.seen_headers[0].get("If-None-Match"), '"abc"')
        self.assertEqual(self.seen_headers[0].get("If-Modified-Since"), LAST_MODIFIED)

    async def test_omits_conditional_headers_without_tokens(self) -> None:
        await HttpAssetFetcher().fetch(self.url, CacheHeaders())

        self.assertNotIn("If-None-Match", self.seen_headers[0])
        self.assertNotIn("If-Modified-Since", self.seen_headers[0])

    async def test_not_modified_falls_back_to_previous_headers(self) -> None:
        self.response_factory = lambda: web.Response(status=304, headers={"ETag": '"v2"'})

        outcome = await HttpAssetFetcher().fetch(self.url, CacheHeaders(etag='"v1"', last_modified=LAST_MODIFIED))

        self.assertIsInstance(outcome, NotModified)
        self.assertEqual(outcome.cache_headers, CacheHeaders(etag='"v2"', last_modified=LAST_MODIFIED))

    async def test_unexpected_status_raises_transport_failure(self) -> None:
        self.response_factory = lambda: web.Response(status=500, text="oops")

        with self.assertRaises(TransportFailure) as ctx:
            await HttpAssetFetcher().fetch(self.url, CacheHeaders())

        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(ctx.exception.url, self.url)

    async def test_connection_error_raises_transport_failure(self) -> None:
        url = self.url
        await self.server.close()

        with self.assertRaises(TransportFailure) as ctx:
            await HttpAssetFetcher(timeout_seconds=5).fetch(url, CacheHeaders())

        self.assertIsInstance(ctx.exception.__cause__, aiohttp.ClientError)

    async def test_shared_session_stays_open(self) -> None:
        async with aiohttp.ClientSession() as session:
            fetcher = HttpAssetFetcher(session=session)
            await fetcher.fetch(self.url, CacheHeaders())
            await fetcher.fetch(self.url, CacheHeaders())

            self.assertFalse(session.closed)
        self.assertEqual(len(self.seen_headers), 2)


if __name__ == "__main__":
    unittest.main()
