import threading
import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

from pyslog import (
    FormatSettings, LogLevel, LogRecord, RecordFormatter, SlogWebhookSink, WebhookSettings, post_json,
)
from pyslog.constants import WEBHOOK_DATA_PLACEHOLDER

TS = datetime(2024, 6, 20, 10, 30, 15, tzinfo=timezone.utc)
URL = "https://discord.example/api/webhooks/1/token"


class RecordingTransport:
    def __init__(self, status=204, error=None):
        self.status = status
        self.error = error
        self.calls = []

    def __call__(self, url, payload):
        self.calls.append((url, payload))
        if self.error is not None:
            raise self.error
        return self.status


class WebhookTestCase(unittest.TestCase):
    def setUp(self):
        self.formatter = RecordFormatter(FormatSettings(), lambda ts, pattern: "DATE")
        self.reports = []
        self.transport = RecordingTransport()

    def _sink(self, settings=None, asynchronous=False, transport=None):
        settings = settings or WebhookSettings(enabled=True, url=URL, provider="discord")
        return SlogWebhookSink(settings, "api", "worker", transport or self.transport,
                               report=lambda level, message, data: self.reports.append((level, message, data)),
                               asynchronous=asynchronous)

    def _submit(self, sink, message, data=None, level=LogLevel.INFO):
        rendered = self.formatter.render(LogRecord(TS, level, "api", "worker", message, data))
        sink.submit(TS, rendered, level)


class TestWebhookBatching(WebhookTestCase):
    def test_ninth_record_starts_new_batch(self):
        sink = self._sink()
        for i in range(9):
            self._submit(sink, f"m{i}")

        self.assertEqual(len(self.transport.calls), 1)
        url, payload = self.transport.calls[0]
        self.assertEqual(url, URL)
        self.assertEqual(payload["username"], "api.worker")
        self.assertIsNone(payload["content"])
        self.assertEqual(payload["attachments"], [])
        self.assertEqual([e["title"] for e in payload["embeds"]],
                         [f"<api.worker> [INFO] m{i}" for i in range(8)])
        self.assertEqual(len(sink.batch), 1)
        self.assertEqual(self.reports, [])

    def test_embed_shape(self):
        sink = self._sink()
        self._submit(sink, "with data", {"a": 1})
        embed = sink.batch[0]
        self.assertEqual(embed["footer"], {"text": "DATE"})
        self.assertEqual(embed["description"], '```\n{\n    "a": 1\n}\n```')

    def test_long_data_is_replaced(self):
        sink = self._sink()
        self._submit(sink, "big", "x" * 4001)
        self.assertEqual(sink.batch[0]["description"], WEBHOOK_DATA_PLACEHOLDER)

    def test_disabled_or_unsupported_is_noop(self):
        for settings in (
            WebhookSettings(enabled=False, url=URL, provider="discord"),
            WebhookSettings(enabled=True, url=None, provider="discord"),
            WebhookSettings(enabled=True, url=URL, provider="none"),
            WebhookSettings(enabled=True, url=URL, provider="slack"),
        ):
            with self.subTest(settings=settings):
                sink = self._sink(settings)
                self._submit(sink, "ignored")
                self.assertEqual(sink.batch, [])

    def test_internal_level_never_enters_webhook(self):
        sink = self._sink()
        self._submit(sink, "internal", level=LogLevel.FATAL_RATE_LIMITED)
        self.assertEqual(sink.batch, [])

    def test_overflow_is_discarded_and_reported(self):
        sink = self._sink()
        sink.batch_limit = 2
        sink.batch = [{"title": "a"}, {"title": "b"}]
        self._submit(sink, "third")

        self.assertEqual(sink.batch, [])
        self.assertEqual(self.transport.calls, [])
        self.assertEqual(len(self.reports), 1)
        self.assertEqual(self.reports[0][0], LogLevel.FATAL_RATE_LIMITED)
        self.assertEqual(self.reports[0][2]["size"], 3)


class TestWebhookFailures(WebhookTestCase):
    def test_bad_status_reports_and_clears(self):
        transport = RecordingTransport(status=429)
        sink = self._sink(transport=transport)
        for i in range(8):
            self._submit(sink, f"m{i}")

        self.assertEqual(len(transport.calls), 1)
        self.assertEqual(sink.batch, [])
        self.assertEqual(len(self.reports), 1)
        level, _, data = self.reports[0]
        self.assertEqual(level, LogLevel.FATAL_RATE_LIMITED)
        self.assertEqual(data["status"], 429)

    def test_transport_error_is_not_retried(self):
        transport = RecordingTransport(error=requests.ConnectionError("down"))
        sink = self._sink(transport=transport)
        for i in range(8):
            self._submit(sink, f"m{i}")
        sink.force_flush()

        self.assertEqual(len(transport.calls), 1)
        self.assertEqual(len(self.reports), 1)
        self.assertIn("ConnectionError", self.reports[0][2]["error"])


class TestForceFlush(WebhookTestCase):
    def test_partial_batch_is_sent_once(self):
        sink = self._sink()
        for i in range(3):
            self._submit(sink, f"m{i}")
        self.assertTrue(sink.force_flush())
        self.assertTrue(sink.force_flush())

        self.assertEqual(len(self.transport.calls), 1)
        self.assertEqual(len(self.transport.calls[0][1]["embeds"]), 3)
        self.assertEqual(sink.batch, [])

    def test_empty_batch_sends_nothing(self):
        sink = self._sink()
        sink.force_flush()
        self.assertEqual(self.transport.calls, [])

    def test_background_delivery_is_awaited(self):
        delivered = threading.Event()

        def transport(url, payload):
            delivered.set()
            return 204

        sink = self._sink(asynchronous=True, transport=transport)
        for i in range(10):
            self._submit(sink, f"m{i}")
        self.assertTrue(sink.force_flush(timeout=5))
        self.assertTrue(delivered.is_set())
        self.assertFalse(sink.worker.is_alive())

    def test_background_delivery_order(self):
        calls = []

        def transport(url, payload):
            calls.append([e["title"] for e in payload["embeds"]])
            return 204

        sink = self._sink(asynchronous=True, transport=transport)
        for i in range(19):
            self._submit(sink, f"m{i}")
        sink.force_flush(timeout=5)

        titles = [title for batch in calls for title in batch]
        self.assertEqual(titles, [f"<api.worker> [INFO] m{i}" for i in range(19)])
        self.assertEqual([len(batch) for batch in calls], [8, 8, 3])

    def test_submit_after_flush_is_ignored(self):
        sink = self._sink()
        sink.force_flush()
        self._submit(sink, "late")
        self.assertEqual(sink.batch, [])


class TestConcurrentWebhook(WebhookTestCase):
    def test_threads_fill_complete_batches(self):
        lock = threading.Lock()
        calls = []

        def transport(url, payload):
            with lock:
                calls.append([e["title"] for e in payload["embeds"]])
            return 204

        sink = self._sink(transport=transport)
        threads, per_thread = 8, 20
        start = threading.Barrier(threads)

        def produce(n):
            start.wait()
            for i in range(per_thread):
                self._submit(sink, f"t{n}-{i}")

        workers = [threading.Thread(target=produce, args=(n,)) for n in range(threads)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        sink.force_flush(timeout=5)

        titles = [title for batch in calls for title in batch]
        self.assertEqual(len(titles), threads * per_thread)
        self.assertEqual(set(titles), {f"<api.worker> [INFO] t{n}-{i}" for n in range(threads) for i in range(per_thread)})
        self.assertTrue(all(len(batch) == 8 for batch in calls))
        self.assertEqual(self.reports, [])

    def test_report_during_delivery_can_submit_again(self):
        transport = RecordingTransport(status=500)
        sink = self._sink(transport=transport)
        sink.report = lambda level, message, data: self._submit(sink, "follow-up", level=LogLevel.ERROR)

        for i in range(8):
            self._submit(sink, f"m{i}")

        self.assertEqual(len(transport.calls), 1)
        self.assertEqual(len(sink.batch), 1)
        self.assertEqual(sink.batch[0]["title"], "<api.worker> [ERROR] follow-up")


class TestPostJson(unittest.TestCase):
    def test_returns_status_code(self):
        response = mock.Mock(status_code=204)
        with mock.patch("pyslog.webhook.requests.post", return_value=response) as post:
            self.assertEqual(post_json(URL, {"embeds": []}), 204)
        args, kwargs = post.call_args
        self.assertEqual(args, (URL,))
        self.assertEqual(kwargs["json"], {"embeds": []})
        self.assertIn("timeout", kwargs)


if __name__ == '__main__':
    unittest.main()
