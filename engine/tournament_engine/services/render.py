"""Platform-neutral rendering of leaderboards, winners and receipts.

The chat gateway turns a ``ViewContent`` into whatever the platform
supports (embeds, plain messages). Weights always show two decimals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..db import LiveDocument
from .leaderboard import BestSingleEntry, TopTotalEntry
from .standings import PeriodWinners

NO_EVENT_NAME = "No Active Tournament"


@dataclass(frozen=True)
class ViewContent:
    title: str
    lines: tuple[str, ...] = ()
    footer: str | None = None
    image_url: str | None = None
    fields: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def text(self) -> str:
        parts = [f"**{self.title}**", *self.lines]
        parts.extend(f"{name}: {value}" for name, value in self.fields)
        if self.footer:
            parts.extend(["", self.footer])
        return "\n".join(parts)


def format_weight(weight: float | None) -> str:
    return f"{float(weight or 0):.2f}"


def mention(angler_id: str) -> str:
    return f"<@{angler_id}>"


def _best_single_lines(entries: Sequence[BestSingleEntry]) -> list[str]:
    return [
        f"**{rank}.** {mention(e.angler_id)} — **{format_weight(e.best_single)} lbs**"
        for rank, e in enumerate(entries, start=1)
    ]


def _top_total_lines(entries: Sequence[TopTotalEntry]) -> list[str]:
    return [
        f"**{rank}.** {mention(e.angler_id)} — **{format_weight(e.total)} lbs** *(top {e.catch_count} fish)*"
        for rank, e in enumerate(entries, start=1)
    ]


def best_single_view(event_name: str | None, entries: Sequence[BestSingleEntry]) -> ViewContent:
    lines = _best_single_lines(entries) or ["No weigh-ins yet."]
    return ViewContent(title=f"🏆 Big Bass — {event_name or NO_EVENT_NAME}", lines=tuple(lines))


def top_total_view(
    event_name: str | None,
    entries: Sequence[TopTotalEntry],
    bag_size: int = 5,
) -> ViewContent:
    lines = _top_total_lines(entries) or ["No weigh-ins yet."]
    return ViewContent(
        title=f"🎣 Total Bag (Top {bag_size}) — {event_name or NO_EVENT_NAME}",
        lines=tuple(lines),
    )


def _winner_lines(winners: PeriodWinners | None) -> list[str]:
    total = winners.total_winner if winners else None
    single = winners.single_winner if winners else None
    bag_line = (
        f"🏅 **Bag Winner:** {mention(total.angler_id)} — **{format_weight(total.total)} lbs**"
        if total
        else "🏅 **Bag Winner:** —"
    )
    big_line = (
        f"🐷 **Big Bass Winner:** {mention(single.angler_id)} — **{format_weight(single.best_single)} lbs**"
        if single
        else "🐷 **Big Bass Winner:** —"
    )
    return [bag_line, big_line]


def monthly_winners_view(month_key: str, winners: PeriodWinners | None) -> ViewContent:
    return ViewContent(
        title=f"📆 Monthly Winners — {month_key}",
        lines=tuple(_winner_lines(winners)),
        footer="Monthly winners update when tournaments end.",
    )


def yearly_winners_view(year_key: str, winners: PeriodWinners | None) -> ViewContent:
    return ViewContent(
        title=f"📅 Yearly Winners — {year_key}",
        lines=tuple(_winner_lines(winners)),
        footer="Yearly winners update when tournaments end.",
    )


def placeholder_view(document: LiveDocument, month_key: str, year_key: str) -> ViewContent:
    """Empty document posted when a live view has to be (re)created."""
    if document is LiveDocument.best_single_current:
        return best_single_view(None, [])
    if document is LiveDocument.top_total_current:
        return top_total_view(None, [])
    if document is LiveDocument.monthly_winners:
        return monthly_winners_view(month_key, None)
    return yearly_winners_view(year_key, None)


def final_results_views(
    event_name: str,
    best_single: Sequence[BestSingleEntry],
    top_total: Sequence[TopTotalEntry],
    bag_size: int = 5,
) -> list[ViewContent]:
    """Header plus the two final rankings, posted to the archive channel."""
    return [
        ViewContent(
            title=f"✅ FINAL RESULTS — {event_name}",
            lines=("Tournament ended. Submissions are now locked.",),
        ),
        ViewContent(
            title="🏆 Big Bass (Final)",
            lines=tuple(_best_single_lines(best_single) or ["No weigh-ins."]),
        ),
        ViewContent(
            title=f"🎣 Total Bag (Top {bag_size}) — Final",
            lines=tuple(_top_total_lines(top_total) or ["No weigh-ins."]),
        ),
    ]


def receipt_view(
    *,
    event_name: str,
    angler_id: str,
    weight: float,
    notes: str | None,
    media_ref: str,
    status: str,
) -> ViewContent:
    title = "✅ Weigh-in Submitted" if status == "approved" else "⏳ Weigh-in Pending Review"
    return ViewContent(
        title=title,
        fields=(
            ("Tournament", f"**{event_name}**"),
            ("Angler", mention(angler_id)),
            ("Weight", f"**{format_weight(weight)} lbs**"),
            ("Notes", notes or "—"),
        ),
        image_url=media_ref,
    )
