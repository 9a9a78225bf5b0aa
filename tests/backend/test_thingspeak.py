"""Tests for the ThingSpeak channel client."""

from datetime import datetime, timezone

import httpx
import pytest

from app.services.thingspeak import (
    FeedReading,
    GatewayError,
    ThingSpeakClient,
    build_update_params,
    parse_feed,
)


def _client(handler) -> ThingSpeakClient:
    return ThingSpeakClient(
        channel_id="12345",
        read_api_key="READKEY",
        write_api_key="WRITEKEY",
        transport=httpx.MockTransport(handler),
    )


class TestParseFeed:
    def test_latest_entry_mapped(self):
        data = {
            "channel": {"id": 12345},
            "feeds": [{
                "created_at": "2024-05-01T12:00:00Z",
                "entry_id": 77,
                "field1": "23.5",
                "field2": "71.25",
            }],
        }
        reading = parse_feed(data)
        assert reading == FeedReading(
            temperature=23.5,
            level=71.25,
            timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            entry_id=77,
        )

    def test_empty_feed_is_absent(self):
        assert parse_feed({"channel": {}, "feeds": []}) is None

    def test_missing_feeds_key_is_absent(self):
        assert parse_feed({"channel": {}}) is None
        assert parse_feed(-1) is None

    def test_non_numeric_fields_become_none(self):
        reading = parse_feed({"feeds": [{"field1": "abc", "field2": None}]})
        assert reading is not None
        assert reading.temperature is None
        assert reading.level is None
        assert reading.timestamp is None

    def test_zero_is_a_valid_value(self):
        reading = parse_feed({"feeds": [{"field1": "0", "field2": "0.0"}]})
        assert reading.temperature == 0.0
        assert reading.level == 0.0

    def test_nan_is_not_a_value(self):
        reading = parse_feed({"feeds": [{"field1": "nan", "field2": "inf"}]})
        assert reading.temperature is None
        assert reading.level is None


class TestBuildUpdateParams:
    def test_complete_reading(self):
        reading = FeedReading(temperature=22.456, level=80, timestamp=None)
        reading.pump_status = True
        reading.heater_status = False
        params = build_update_params("KEY", reading)
        assert params == {
            "api_key": "KEY",
            "field1": "22.46",
            "field2": "80.00",
            "field3": "1",
            "field4": "0",
        }

    def test_missing_values_sent_as_zero(self):
        reading = FeedReading(temperature=None, level=None, timestamp=None)
        params = build_update_params("KEY", reading)
        assert params["field1"] == "0.00"
        assert params["field2"] == "0.00"
        assert params["field3"] == "0"
        assert params["field4"] == "0"


class TestFetchLatest:
    @pytest.mark.asyncio
    async def test_requests_single_result(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"feeds": [{"field1": "21", "field2": "60"}]})

        reading = await _client(handler).fetch_latest()
        assert seen["path"] == "/channels/12345/feeds.json"
        assert seen["params"] == {"api_key": "READKEY", "results": "1"}
        assert reading.temperature == 21.0
        assert reading.level == 60.0

    @pytest.mark.asyncio
    async def test_empty_feed_returns_none(self):
        def handler(request):
            return httpx.Response(200, json={"channel": {}, "feeds": []})

        assert await _client(handler).fetch_latest() is None

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        with pytest.raises(GatewayError):
            await _client(handler).fetch_latest()

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(GatewayError):
            await _client(handler).fetch_latest()

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(GatewayError):
            await _client(handler).fetch_latest()


class TestPublish:
    @pytest.mark.asyncio
    async def test_returns_entry_id(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, text="42")

        reading = FeedReading(temperature=20.0, level=None, timestamp=None)
        assert await _client(handler).publish(reading) == 42
        assert seen["path"] == "/update"
        assert seen["params"]["api_key"] == "WRITEKEY"
        assert seen["params"]["field2"] == "0.00"

    @pytest.mark.asyncio
    async def test_rejected_update_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="0")

        reading = FeedReading(temperature=20.0, level=50.0, timestamp=None)
        assert await _client(handler).publish(reading) is None

    @pytest.mark.asyncio
    async def test_unparseable_body_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="error")

        reading = FeedReading(temperature=20.0, level=50.0, timestamp=None)
        assert await _client(handler).publish(reading) is None

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(400, text="bad key")

        reading = FeedReading(temperature=20.0, level=50.0, timestamp=None)
        with pytest.raises(GatewayError):
            await _client(handler).publish(reading)
