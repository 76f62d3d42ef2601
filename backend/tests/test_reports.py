"""
Tests for usage reports.
"""

from datetime import datetime

import pytest

from chatbroker.models import Session, UsageStat
from chatbroker.services import ReportService, summarize_models, summarize_usage


def _session(session_id: str, count: int) -> Session:
    now = datetime(2024, 3, 1, 12, 0, 0)
    return Session(id=session_id, created_at=now, updated_at=now, title=session_id,
                   model_used="gpt-4", message_count=count)


USAGE = [
    UsageStat(model="gpt-4", message_count=3, total_tokens=300, date="2024-03-02", content_type="text"),
    UsageStat(model="dall-e-3", message_count=2, total_tokens=0, date="2024-03-02", content_type="image"),
    UsageStat(model="gpt-4", message_count=1, total_tokens=50, date="2024-03-01", content_type="text"),
    UsageStat(model="claude-3-haiku", message_count=4, total_tokens=120, date="2024-03-01", content_type="text"),
]


class TestSummarizeUsage:
    """Tests for the usage report aggregation."""

    def test_summary(self):
        report = summarize_usage([_session("a", 4), _session("b", 3)], USAGE)

        assert report["summary"] == {
            "total_sessions": 2,
            "total_messages": 7,
            "avg_messages_per_session": 3.5,
            "total_tokens": 470,
        }
        assert report["model_usage"]["gpt-4"] == {"message_count": 4, "total_tokens": 350}
        assert report["daily_usage"]["2024-03-02"]["models_used"] == ["gpt-4", "dall-e-3"]
        assert report["daily_usage"]["2024-03-01"]["message_count"] == 5
        assert [m["model"] for m in report["top_models"]] == ["gpt-4", "claude-3-haiku", "dall-e-3"]
        assert report["recent_sessions"][0]["id"] == "a"
        assert "generated_at" in report

    def test_empty(self):
        report = summarize_usage([], [])
        assert report["summary"]["total_sessions"] == 0
        assert report["summary"]["avg_messages_per_session"] == 0
        assert report["top_models"] == []


class TestSummarizeModels:

    def test_model_statistics(self):
        stats = summarize_models(USAGE)["model_statistics"]

        gpt4 = stats["gpt-4"]
        assert gpt4["total_messages"] == 4
        assert gpt4["total_tokens"] == 350
        assert gpt4["first_used"] == "2024-03-01"
        assert gpt4["last_used"] == "2024-03-02"
        assert gpt4["usage_by_date"]["2024-03-01"] == {"messages": 1, "tokens": 50}

    def test_text_and_image_rows_of_a_day_are_merged(self):
        usage = [
            UsageStat(model="gpt-4", message_count=1, total_tokens=10, date="2024-03-01", content_type="text"),
            UsageStat(model="gpt-4", message_count=2, total_tokens=0, date="2024-03-01", content_type="image"),
        ]
        stats = summarize_models(usage)["model_statistics"]
        assert stats["gpt-4"]["usage_by_date"] == {"2024-03-01": {"messages": 3, "tokens": 10}}


class TestReportService:
    """Reports over a real store."""

    @pytest.mark.asyncio
    async def test_sessions_report_pagination(self, stores):
        for i in range(3):
            await stores.sessions.create(f"s{i}")
        service = ReportService(stores)

        page = await service.sessions_report(limit=2, offset=0)
        assert len(page["sessions"]) == 2
        assert page["pagination"] == {"limit": 2, "offset": 0, "total": 3, "has_more": True}

        last = await service.sessions_report(limit=2, offset=2)
        assert len(last["sessions"]) == 1
        assert last["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_usage_report_from_store(self, stores):
        session = await stores.sessions.create("s")
        await stores.messages.create(session.id, "q", "user")
        await stores.messages.create(session.id, "a", "assistant", "gpt-4", token_count=25)

        report = await ReportService(stores).usage_report()
        assert report["summary"]["total_sessions"] == 1
        assert report["summary"]["total_messages"] == 2
        assert report["summary"]["total_tokens"] == 25
        assert report["model_usage"] == {"gpt-4": {"message_count": 1, "total_tokens": 25}}

    @pytest.mark.asyncio
    async def test_export(self, stores):
        session = await stores.sessions.create("s")
        await stores.messages.create(session.id, "q", "user")
        service = ReportService(stores)

        without = await service.export()
        assert "messages" not in without["sessions"][0]

        with_messages = await service.export(include_messages=True)
        assert with_messages["sessions"][0]["messages"][0]["content"] == "q"
        assert "export_date" in with_messages
