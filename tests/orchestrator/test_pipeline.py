from __future__ import annotations

import json
from typing import Mapping

import pytest

from headline_harvester.engine.delivery import DeliveryResult, DeliverySink
from headline_harvester.engine.extractor import SourceExtractionEngine
from headline_harvester.engine.results import SourceFetchResult
from headline_harvester.engine.transform import ArticleTransform, CuratedMessage, TransformResult
from headline_harvester.orchestrator import FetchOrchestrator, HarvestPipeline, source_for_url

STORY_A = "https://www.theblock.co/news/story-a"
STORY_B = "https://www.theblock.co/news/story-b"


class StubTransform(ArticleTransform):
    def __init__(self, result: TransformResult) -> None:
        self.result = result
        self.seen: list[Mapping[str, SourceFetchResult]] = []
        self.closed = False

    def transform(self, results):
        self.seen.append(results)
        return self.result

    def close(self) -> None:
        self.closed = True


class RecordingSink(DeliverySink):
    def __init__(self, fail_urls: tuple[str, ...] = ()) -> None:
        super().__init__(sleep=lambda _: None)
        self.fail_urls = fail_urls
        self.sent: list[CuratedMessage] = []

    def send(self, message: CuratedMessage) -> DeliveryResult:
        if message.source_url in self.fail_urls:
            return DeliveryResult(success=False, error="rejected")
        self.sent.append(message)
        return DeliveryResult(success=True, message_id=len(self.sent))


def _messages(*urls: str | None) -> TransformResult:
    return TransformResult(
        success=True,
        messages=[CuratedMessage(f"Title {n}", f"Body {n}", url) for n, url in enumerate(urls)],
    )


@pytest.fixture
def build_pipeline(sample_config, sources, fake_fetcher, page_builder, store, tmp_path):
    page = page_builder(
        ("/news/story-a", "Story A headline long enough to keep"),
        ("/news/story-b", "Story B headline long enough to keep"),
    )

    def _builder(result: TransformResult, sink: DeliverySink | None = None, **overrides):
        config = sample_config(sources=sources[2:3], **overrides)
        fetcher = fake_fetcher({"https://www.theblock.co": page})
        orchestrator = FetchOrchestrator(
            config.sources, fetcher, SourceExtractionEngine(), sleep=lambda _: None
        )
        pauses: list[float] = []
        pipeline = HarvestPipeline(
            config,
            orchestrator,
            StubTransform(result),
            sink or RecordingSink(),
            store,
            output_dir=tmp_path / "output",
            sleep=pauses.append,
        )
        pipeline.pauses = pauses  # type: ignore[attr-defined]
        return pipeline

    return _builder


def test_run_delivers_and_records_new_messages(build_pipeline, store) -> None:
    pipeline = build_pipeline(_messages(STORY_A, STORY_B))
    summary = pipeline.run()

    assert (summary.sources_ok, summary.sources_failed, summary.headlines) == (1, 0, 2)
    assert (summary.messages, summary.new, summary.delivered, summary.recorded) == (2, 2, 2, 2)
    assert summary.duplicates == 0 and summary.unverified == 0
    assert [m.source_url for m in pipeline.sink.sent] == [STORY_A, STORY_B]
    assert pipeline.pauses == [1.0]
    record = store.list_recent(1)[0]
    assert record.source == "theblock"
    assert record.description in {"Body 0", "Body 1"}


def test_second_run_sees_only_duplicates(build_pipeline) -> None:
    build_pipeline(_messages(STORY_A, STORY_B)).run()
    again = build_pipeline(_messages(STORY_A, STORY_B))
    summary = again.run()
    assert summary.duplicates == 2
    assert summary.new == summary.delivered == summary.recorded == 0
    assert again.sink.sent == []


def test_duplicates_within_one_batch_are_sent_once(build_pipeline, store) -> None:
    pipeline = build_pipeline(_messages(STORY_A, STORY_A.upper(), STORY_B))
    summary = pipeline.run()
    assert summary.delivered == 2
    assert summary.duplicates == 1
    assert store.stats().total == 2


def test_unverified_urls_are_counted_or_dropped(build_pipeline) -> None:
    invented = "https://www.theblock.co/invented"
    lenient = build_pipeline(_messages(STORY_A, invented, None))
    summary = lenient.run()
    assert summary.unverified == 2
    assert [m.source_url for m in lenient.sink.sent] == [STORY_A, invented]

    strict = build_pipeline(_messages(STORY_B, "https://elsewhere.org/x"), strict_provenance=True)
    summary = strict.run()
    assert summary.unverified == 1
    assert [m.source_url for m in strict.sink.sent] == [STORY_B]


def test_failed_delivery_is_not_recorded(build_pipeline, store) -> None:
    pipeline = build_pipeline(_messages(STORY_A, STORY_B), sink=RecordingSink(fail_urls=(STORY_A,)))
    summary = pipeline.run()
    assert summary.delivery_failed == 1
    assert summary.recorded == 1
    assert not store.exists(STORY_A)
    assert store.exists(STORY_B)


def test_dry_run_records_nothing(build_pipeline, store) -> None:
    summary = build_pipeline(_messages(STORY_A)).run(record=False)
    assert summary.delivered == 1
    assert summary.recorded == 0
    assert store.stats().total == 0


def test_transform_failure_stops_the_run(build_pipeline, tmp_path) -> None:
    pipeline = build_pipeline(TransformResult.failed("No JSON array found in response", "nope"))
    summary = pipeline.run(debug_dump=True)
    assert summary.transform_error == "No JSON array found in response"
    assert summary.delivered == 0
    error_dump = json.loads((tmp_path / "output" / "ai_error.json").read_text(encoding="utf-8"))
    assert error_dump["raw_content"] == "nope"


def test_debug_dump_writes_intermediate_files(build_pipeline, tmp_path) -> None:
    build_pipeline(_messages(STORY_A), debug_dump=True).run()
    output = tmp_path / "output"
    fetched = json.loads((output / "fetched_news.json").read_text(encoding="utf-8"))
    assert fetched["theblock"]["content"]["headlines"][0]["url"] == STORY_A
    analysis = json.loads((output / "ai_analysis.json").read_text(encoding="utf-8"))
    assert analysis["messages"][0]["source_url"] == STORY_A
    deliveries = json.loads((output / "delivery_results.json").read_text(encoding="utf-8"))
    assert deliveries[0]["result"]["success"] is True


def test_close_releases_collaborators(build_pipeline) -> None:
    pipeline = build_pipeline(_messages())
    pipeline.close()
    assert pipeline.transform.closed
    assert pipeline.fetch_orchestrator.fetcher.closed


def test_source_for_url(sources) -> None:
    assert source_for_url("https://www.coindesk.com/markets/x", sources) == "coindesk"
    assert source_for_url("https://coindesk.com/markets/x", sources) == "coindesk"
    assert source_for_url("https://cointelegraph.com/news/y", sources) == "cointelegraph"
    assert source_for_url("https://unknown.net/z", sources) is None
    assert source_for_url(None, sources) is None


def test_unreadable_history_ends_run_without_delivery(build_pipeline, store) -> None:
    pipeline = build_pipeline(_messages(STORY_A))
    store._conn.execute("DROP TABLE news")
    summary = pipeline.run()
    assert summary.messages == 1
    assert summary.store_errors == 1
    assert summary.delivered == 0
    assert pipeline.sink.sent == []
