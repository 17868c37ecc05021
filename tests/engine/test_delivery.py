from __future__ import annotations

import io
import json

import httpx
from rich.console import Console

from headline_harvester.config import DeliveryConfig
from headline_harvester.engine.delivery import ConsoleSink, TelegramSink, format_message
from headline_harvester.engine.transform import CuratedMessage

MESSAGE = CuratedMessage(
    title="Fed & <crypto> policy",
    body="Rates > expectations & markets react",
    source_url="https://a.io/story?x=1&y=2",
)


def test_format_message_escapes_and_links() -> None:
    text = format_message(MESSAGE)
    assert text.startswith("<b>Fed &amp; &lt;crypto&gt; policy</b>\n\n")
    assert "Rates &gt; expectations &amp; markets react\n\n" in text
    assert text.endswith('🔗 <a href="https://a.io/story?x=1&amp;y=2">Source</a>')


def test_format_message_without_url_and_truncated() -> None:
    message = CuratedMessage(title="T", body="b" * 5000)
    text = format_message(message, limit=100, link_label="ignored")
    assert len(text) == 100
    assert "<a href" not in text


def test_telegram_sink_posts_html_message() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 42}})

    sink = TelegramSink(
        "TOKEN",
        "-100123",
        DeliveryConfig(link_label="Read more"),
        transport=httpx.MockTransport(handler),
    )
    result = sink.send(MESSAGE)
    sink.close()

    assert result.success and result.message_id == 42
    assert captured["url"] == "https://api.telegram.org/botTOKEN/sendMessage"
    assert captured["payload"]["chat_id"] == "-100123"
    assert captured["payload"]["parse_mode"] == "HTML"
    assert captured["payload"]["text"].endswith(">Read more</a>")


def test_telegram_sink_reports_rejections_and_network_errors() -> None:
    rejecting = TelegramSink(
        "T",
        "1",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(400, json={"ok": False, "description": "chat not found"})
        ),
    )
    rejected = rejecting.send(MESSAGE)
    assert not rejected.success
    assert rejected.error == "chat not found"
    assert rejected.status_code == 400

    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    failed = TelegramSink("T", "1", transport=httpx.MockTransport(boom)).send(MESSAGE)
    assert not failed.success
    assert failed.error == "slow"


def test_send_many_waits_between_messages() -> None:
    pauses: list[float] = []
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"result": {"message_id": 1}})
    )
    sink = TelegramSink("T", "1", transport=transport, sleep=pauses.append)
    results = sink.send_many([MESSAGE, MESSAGE, MESSAGE], delay=1.0)
    assert [r.success for r in results] == [True, True, True]
    assert pauses == [1.0, 1.0, 1.0]


def test_console_sink_prints_messages() -> None:
    buffer = io.StringIO()
    sink = ConsoleSink(Console(file=buffer, width=120))
    first = sink.send(MESSAGE)
    second = sink.send(CuratedMessage(title="[bold]Literal[/bold]", body="Body text"))
    output = buffer.getvalue()
    assert (first.message_id, second.message_id) == (1, 2)
    assert "Fed & <crypto> policy" in output
    assert "https://a.io/story?x=1&y=2" in output
    assert "[bold]Literal[/bold]" in output
