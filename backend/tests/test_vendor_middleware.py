"""
DevServe — Vendor Middleware Tests
====================================

What:  Vendor assets served through the complete application pipeline,
       with the CDN mocked by the cdn_client fixture.

What we test:
    ✅ Allow-listed file → 200 with upstream Content-Type and immutable Cache-Control
    ✅ Second request is served from memory
    ✅ ".map" companions are proxied without their own entry
    ✅ Unknown file names fall through to the rest of the app
    ✅ Upstream failure → 502 with the upstream status in the body
    ✅ A custom route prefix only matches one segment beneath it
"""

import pytest
from httpx import AsyncClient, ASGITransport

from devserve.main import create_app
from devserve.middleware.vendor import match_vendor_key

CDN_LIB_URL = "https://cdn.example.com/lib.js"


class TestMatchVendorKey:
    @pytest.mark.parametrize("path,route,expected", [
        ("/lib.js", "/", "lib.js"),
        ("/vendor/lib.js", "/vendor", "lib.js"),
        ("/vendor/lib.js", "/vendor/", "lib.js"),
        ("/vendor/", "/vendor", None),
        ("/vendor/a/lib.js", "/vendor", None),
        ("/lib.js", "/vendor", None),
        ("/vendorlib.js", "/vendor", None),
        ("/a/lib.js", "/", None),
        ("/", "/", None),
    ])
    def test_match(self, path, route, expected):
        assert match_vendor_key(path, route) == expected


class TestVendorRoute:
    @pytest.mark.asyncio
    async def test_serves_allowlisted_asset(self, test_client, cdn_calls):
        response = await test_client.get("/lib.js")

        assert response.status_code == 200
        assert response.content == b"console.log('lib');"
        assert response.headers["content-type"] == "application/javascript"
        assert response.headers["cache-control"] == "public, max-age=31536000, immutable"
        assert cdn_calls == [CDN_LIB_URL]

    @pytest.mark.asyncio
    async def test_second_request_served_from_cache(self, app, test_client, cdn_calls):
        first = await test_client.get("/lib.js")
        second = await test_client.get("/lib.js")

        assert first.content == second.content
        assert cdn_calls == [CDN_LIB_URL]
        assert CDN_LIB_URL in app.state.vendor_cache

    @pytest.mark.asyncio
    async def test_source_map_companion(self, test_client, cdn_calls):
        response = await test_client.get("/lib.js.map")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert cdn_calls == [CDN_LIB_URL + ".map"]

    @pytest.mark.asyncio
    async def test_unknown_file_falls_through(self, test_client, cdn_calls):
        response = await test_client.get("/other.js")

        assert response.status_code == 404
        assert cdn_calls == []

    @pytest.mark.asyncio
    async def test_non_get_methods_fall_through(self, test_client, cdn_calls):
        response = await test_client.post("/lib.js")

        assert response.status_code in (404, 405)
        assert cdn_calls == []

    @pytest.mark.asyncio
    async def test_vendor_responses_get_security_headers(self, test_client):
        response = await test_client.get("/lib.js")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert "x-response-time" in response.headers


class TestUpstreamFailure:
    @pytest.mark.asyncio
    async def test_upstream_404_returns_502(self, make_settings, cdn_client, cdn_calls):
        app = create_app(
            make_settings(vendor_map={"broken.js": "https://cdn.example.com/broken.js"}),
            http_client=cdn_client,
        )

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            first = await client.get("/broken.js")
            second = await client.get("/broken.js")

        assert first.status_code == 502
        assert first.headers["content-type"].startswith("text/plain")
        assert "404 Not Found" in first.text
        # Not cached: both requests reached the CDN
        assert second.status_code == 502
        assert cdn_calls == ["https://cdn.example.com/broken.js"] * 2
        assert len(app.state.vendor_cache) == 0


class TestCustomRoute:
    @pytest.mark.asyncio
    async def test_assets_served_under_prefix(self, make_settings, cdn_client, cdn_calls):
        app = create_app(make_settings(vendor_route="/vendor/"), http_client=cdn_client)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            under_prefix = await client.get("/vendor/lib.js")
            at_root = await client.get("/lib.js")
            nested = await client.get("/vendor/x/lib.js")

        assert under_prefix.status_code == 200
        assert at_root.status_code == 404
        assert nested.status_code == 404
        assert cdn_calls == [CDN_LIB_URL]
