import asyncio

import httpx

from pinatree.services import NominatimGeocoder, NullGeocoder


def geocoder(handler):
    return NominatimGeocoder(
        "https://nominatim.example.org/reverse",
        user_agent="pin-a-tree-tests",
        transport=httpx.MockTransport(handler),
    )


def test_reverse_returns_display_name_and_caches():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"display_name": "Westminster, London, United Kingdom"})

    service = geocoder(handler)
    first = asyncio.run(service.reverse(51.507412, -0.127812))
    # same ~11m cell, served from cache
    second = asyncio.run(service.reverse(51.50743, -0.12779))

    assert first == second == "Westminster, London, United Kingdom"
    assert len(calls) == 1
    assert calls[0].url.params["lat"] == "51.5074"
    assert calls[0].url.params["format"] == "json"
    assert calls[0].headers["User-Agent"] == "pin-a-tree-tests"


def test_rate_limit_and_errors_return_none():
    assert asyncio.run(geocoder(lambda r: httpx.Response(429)).reverse(1.0, 2.0)) is None
    assert asyncio.run(geocoder(lambda r: httpx.Response(500)).reverse(1.0, 2.0)) is None
    assert asyncio.run(geocoder(lambda r: httpx.Response(200, text="<html>")).reverse(1.0, 2.0)) is None
    assert asyncio.run(geocoder(lambda r: httpx.Response(200, json={})).reverse(1.0, 2.0)) is None

    def offline(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert asyncio.run(geocoder(offline).reverse(1.0, 2.0)) is None


def test_failures_are_not_cached():
    responses = [httpx.Response(500), httpx.Response(200, json={"display_name": "Paris, France"})]
    service = geocoder(lambda request: responses.pop(0))

    assert asyncio.run(service.reverse(48.8566, 2.3522)) is None
    assert asyncio.run(service.reverse(48.8566, 2.3522)) == "Paris, France"


def test_null_geocoder():
    assert asyncio.run(NullGeocoder().reverse(1.0, 2.0)) is None
