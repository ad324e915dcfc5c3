import os
import unittest
from types import SimpleNamespace
from unittest.mock import Mock, patch

import httpx
import openai

from crosstalk.config import OpenAISettings
from crosstalk.core import Message
from crosstalk.errors import ProviderErrorKind, ProviderError
from crosstalk.providers import OpenAIProvider

COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def chunk(content=None, finish_reason=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)]
    )


class FakeStream:
    """Stands in for openai.Stream: iterable and closed when its block exits."""

    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        return iter(self.chunks)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


class TestOpenAIProvider(unittest.TestCase):
    def setUp(self):
        self.client = Mock()
        self.provider = OpenAIProvider(OpenAISettings(api_key="sk-test"), client=self.client)

    def test_static_models_and_default(self):
        names = [m.name for m in self.provider.list_models()]
        self.assertIn("gpt-4o", names)
        self.assertEqual(self.provider.default_model(), "gpt-4o-mini")
        self.assertEqual(self.provider.priority, 10)
        self.assertTrue(self.provider.serves_model("gpt-4o-mini"))

    def test_complete_streams_fragments(self):
        stream = FakeStream(
            [
                SimpleNamespace(choices=[]),
                chunk("Hello"),
                chunk(", world"),
                chunk(None, finish_reason="stop"),
            ]
        )
        self.client.chat.completions.create.return_value = stream
        conversation = [Message("user", "Hi")]

        self.assertEqual(list(self.provider.complete(conversation, "gpt-4o")), ["Hello", ", world"])
        self.client.chat.completions.create.assert_called_once_with(
            model="gpt-4o",
            messages=[{"role": "user", "content": "Hi"}],
            stream=True,
        )
        self.assertTrue(stream.closed)

    def test_closing_early_releases_the_stream(self):
        stream = FakeStream([chunk("a"), chunk("b"), chunk("c")])
        self.client.chat.completions.create.return_value = stream

        fragments = self.provider.complete([Message("user", "Hi")], "gpt-4o")
        self.assertEqual(next(fragments), "a")
        fragments.close()
        self.assertTrue(stream.closed)

    def test_connection_error(self):
        request = httpx.Request("POST", COMPLETIONS_URL)
        self.client.chat.completions.create.side_effect = openai.APIConnectionError(request=request)

        with self.assertRaises(ProviderError) as ctx:
            list(self.provider.complete([Message("user", "Hi")], "gpt-4o"))
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.CONNECTION)

    def test_status_errors(self):
        request = httpx.Request("POST", COMPLETIONS_URL)
        cases = [
            (openai.RateLimitError, 429, ProviderErrorKind.EXCESS_USAGE),
            (openai.AuthenticationError, 401, ProviderErrorKind.AUTHENTICATION),
            (openai.InternalServerError, 500, ProviderErrorKind.INTERNAL_ERROR),
        ]
        for error_cls, status, kind in cases:
            with self.subTest(status=status):
                response = httpx.Response(status, request=request)
                self.client.chat.completions.create.side_effect = error_cls(
                    "request failed", response=response, body=None
                )
                with self.assertRaises(ProviderError) as ctx:
                    list(self.provider.complete([Message("user", "Hi")], "gpt-4o"))
                self.assertEqual(ctx.exception.kind, kind)
                self.assertEqual(ctx.exception.status_code, status)

    def test_context_length_exceeded(self):
        request = httpx.Request("POST", COMPLETIONS_URL)
        response = httpx.Response(400, request=request)
        body = {"code": "context_length_exceeded", "message": "too long"}
        self.client.chat.completions.create.side_effect = openai.BadRequestError(
            "too long", response=response, body=body
        )

        with self.assertRaises(ProviderError) as ctx:
            list(self.provider.complete([Message("user", "Hi")], "gpt-4o"))
        self.assertEqual(ctx.exception.kind, ProviderErrorKind.CONTEXT_EXCEEDED)

    def test_probe_requires_key(self):
        with patch.dict(os.environ, {}, clear=True):
            result = OpenAIProvider().is_activated()
        self.assertFalse(result.activated)
        self.assertIn("OPENAI_API_KEY", result.reason)

    def test_key_from_environment(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}, clear=True):
            provider = OpenAIProvider()
        self.assertEqual(provider.api_key, "sk-env")
        self.assertTrue(provider.is_activated().activated)

    def test_configured_key_wins_over_environment(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}, clear=True):
            provider = OpenAIProvider(OpenAISettings(api_key="sk-config"))
        self.assertEqual(provider.api_key, "sk-config")


if __name__ == "__main__":
    unittest.main()
