"""Test the HTTP translation client."""

import sys
from pathlib import Path

# Add parent directory to path to import project modules
sys.path.insert(0, str(Path(__file__).parent.parent))

import asyncio

import httpx

from utils.translator import Translator

GOOD_PAYLOAD = [[["Beautiful house ", "Bella casa ", None], ["with garden", "con giardino", None]], None, "it"]


class ScriptedEndpoint:
    """Answers with a fixed sequence of responses (the last one repeats)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        status, payload = response
        return httpx.Response(status, json=payload)


def make_translator(endpoint, max_retries=3):
    waits = []

    async def sleep(seconds):
        waits.append(seconds)

    translator = Translator(
        max_retries=max_retries,
        backoff_base=2.0,
        transport=httpx.MockTransport(endpoint),
        sleep=sleep,
    )
    return translator, waits


class TestTranslator:
    def test_joins_translated_segments(self):
        endpoint = ScriptedEndpoint((200, GOOD_PAYLOAD))
        translator, _ = make_translator(endpoint)

        result = asyncio.run(translator.translate("Bella casa con giardino", "it", "en"))

        assert result.ok
        assert result.text == "Beautiful house with garden"
        request = endpoint.requests[0]
        assert request.url.params["sl"] == "it"
        assert request.url.params["tl"] == "en"

    def test_retries_rate_limit_with_backoff(self):
        endpoint = ScriptedEndpoint(
            (429, None),
            (503, None),
            (200, GOOD_PAYLOAD),
        )
        translator, waits = make_translator(endpoint)

        result = asyncio.run(translator.translate("Bella casa con giardino"))

        assert result.ok
        assert len(endpoint.requests) == 3
        assert waits == [2.0, 4.0]

    def test_gives_up_after_max_retries(self):
        endpoint = ScriptedEndpoint((429, None))
        translator, _ = make_translator(endpoint, max_retries=2)

        result = asyncio.run(translator.translate("Bella casa"))

        assert not result.ok
        assert result.rate_limited
        assert result.text is None
        assert len(endpoint.requests) == 2

    def test_timeout_is_retried(self):
        endpoint = ScriptedEndpoint(
            httpx.ReadTimeout("slow"),
            (200, GOOD_PAYLOAD),
        )
        translator, _ = make_translator(endpoint)

        result = asyncio.run(translator.translate("Bella casa"))

        assert result.ok
        assert len(endpoint.requests) == 2

    def test_client_error_is_not_retried(self):
        endpoint = ScriptedEndpoint((400, None))
        translator, _ = make_translator(endpoint)

        result = asyncio.run(translator.translate("Bella casa"))

        assert result.error == "HTTP 400"
        assert len(endpoint.requests) == 1

    def test_malformed_payload(self):
        endpoint = ScriptedEndpoint((200, {"unexpected": True}))
        translator, _ = make_translator(endpoint)

        result = asyncio.run(translator.translate("Bella casa"))

        assert not result.ok

    def test_cache_avoids_second_request(self):
        endpoint = ScriptedEndpoint((200, GOOD_PAYLOAD))
        translator, _ = make_translator(endpoint)

        async def run():
            first = await translator.translate("Bella casa con giardino")
            second = await translator.translate("Bella casa con giardino")
            return first, second

        first, second = asyncio.run(run())
        assert not first.cached
        assert second.cached
        assert second.text == first.text
        assert len(endpoint.requests) == 1

    def test_empty_text(self):
        translator, _ = make_translator(ScriptedEndpoint((200, GOOD_PAYLOAD)))
        assert not asyncio.run(translator.translate("  ")).ok
