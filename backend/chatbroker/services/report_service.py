"""
Report Service - usage analytics derived at read time.

Every report is computed from ``MessageStore.usage_stats()`` and the session
list on each request; no counters are stored. This rescans the full message
history per report, which is fine for a single-user deployment but will need
caching or pre-aggregation for large histories.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from ..models.report import UsageStat
from ..models.session import Session
from ..storage.stores import Stores

REPORT_SESSION_LIMIT = 100
RECENT_SESSIONS = 10
TOP_MODELS = 5
EXPORT_SESSION_LIMIT = 1000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def summarize_usage(sessions: Sequence[Session], usage: Sequence[UsageStat]) -> Dict[str, Any]:
    """
    Build the usage report: summary totals, per-model and per-day usage,
    top models and recent sessions.
    """
    total_sessions = len(sessions)
    total_messages = sum(s.message_count or 0 for s in sessions)

    model_usage: Dict[str, Dict[str, int]] = {}
    daily_usage: Dict[str, Dict[str, Any]] = {}

    for stat in usage:
        model_entry = model_usage.setdefault(stat.model, {"message_count": 0, "total_tokens": 0})
        model_entry["message_count"] += stat.message_count
        model_entry["total_tokens"] += stat.total_tokens

        day_entry = daily_usage.setdefault(
            stat.date, {"message_count": 0, "total_tokens": 0, "models_used": []}
        )
        day_entry["message_count"] += stat.message_count
        day_entry["total_tokens"] += stat.total_tokens
        if stat.model not in day_entry["models_used"]:
            day_entry["models_used"].append(stat.model)

    top_models = [
        {"model": model, **stats}
        for model, stats in sorted(
            model_usage.items(), key=lambda item: item[1]["message_count"], reverse=True
        )[:TOP_MODELS]
    ]

    recent_sessions = [
        {
            "id": s.id,
            "title": s.title,
            "message_count": s.message_count,
            "model_used": s.model_used,
            "created_at": s.created_at.isoformat(),
            "last_message_at": s.last_message_at.isoformat() if s.last_message_at else None,
        }
        for s in sessions[:RECENT_SESSIONS]
    ]

    avg_messages = round(total_messages / total_sessions, 2) if total_sessions else 0

    return {
        "summary": {
            "total_sessions": total_sessions,
            "total_messages": total_messages,
            "avg_messages_per_session": avg_messages,
            "total_tokens": sum(m["total_tokens"] for m in model_usage.values()),
        },
        "model_usage": model_usage,
        "top_models": top_models,
        "daily_usage": daily_usage,
        "recent_sessions": recent_sessions,
        "generated_at": _now_iso(),
    }


def summarize_models(usage: Sequence[UsageStat]) -> Dict[str, Any]:
    """Per-model totals, usage by date and first/last day used."""
    model_stats: Dict[str, Dict[str, Any]] = {}

    for stat in usage:
        entry = model_stats.setdefault(stat.model, {
            "total_messages": 0,
            "total_tokens": 0,
            "usage_by_date": {},
            "first_used": stat.date,
            "last_used": stat.date,
        })
        entry["total_messages"] += stat.message_count
        entry["total_tokens"] += stat.total_tokens

        # text and image rows of the same day are merged
        day = entry["usage_by_date"].setdefault(stat.date, {"messages": 0, "tokens": 0})
        day["messages"] += stat.message_count
        day["tokens"] += stat.total_tokens

        entry["first_used"] = min(entry["first_used"], stat.date)
        entry["last_used"] = max(entry["last_used"], stat.date)

    return {"model_statistics": model_stats, "generated_at": _now_iso()}


class ReportService:
    """Report queries over the conversation store."""

    def __init__(self, stores: Stores):
        self.stores = stores

    async def usage_report(self) -> Dict[str, Any]:
        sessions = await self.stores.sessions.list_with_stats(REPORT_SESSION_LIMIT)
        usage = await self.stores.messages.usage_stats()
        return summarize_usage(sessions, usage)

    async def models_report(self) -> Dict[str, Any]:
        return summarize_models(await self.stores.messages.usage_stats())

    async def sessions_report(self, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """One page of sessions (most recently updated first) with pagination info."""
        sessions = await self.stores.sessions.list_with_stats(limit + offset)
        total = await self.stores.sessions.count()
        page: List[Session] = sessions[offset:offset + limit]
        return {
            "sessions": [s.model_dump(mode="json") for s in page],
            "pagination": {
                "limit": limit,
                "offset": offset,
                "total": total,
                "has_more": total > offset + limit,
            },
        }

    async def export(self, include_messages: bool = False) -> Dict[str, Any]:
        """Sessions (and optionally their messages) as one JSON document."""
        sessions = await self.stores.sessions.list_with_stats(EXPORT_SESSION_LIMIT)
        exported = []
        for session in sessions:
            item = session.model_dump(mode="json")
            if include_messages:
                messages = await self.stores.messages.list_for_session(session.id)
                item["messages"] = [m.to_dict() for m in messages]
            exported.append(item)
        return {"export_date": _now_iso(), "sessions": exported}
