"""
Aggregation of paginated repository data into profile totals.
"""

from typing import Any

from profile_card.languages import color_for
from profile_card.models import LanguageStat, StatSummary

TOP_LANGUAGES = 5


class LanguageTotals:
    """Running per-language byte totals across repositories and pages."""

    def __init__(self):
        self._sizes: dict[str, int] = {}
        self._colors: dict[str, str] = {}

    def add(self, name: str, size: int, color: str | None = None) -> None:
        if name in self._sizes:
            self._sizes[name] += size
            if name not in self._colors and color:
                self._colors[name] = color
        else:
            self._sizes[name] = size
            if color:
                self._colors[name] = color

    def add_edges(self, edges: list[dict[str, Any]]) -> None:
        """Merge one repository's ``languages.edges`` from the GraphQL response."""
        for edge in edges:
            node = edge.get("node")
            size = edge.get("size") or 0
            if not node or not size:
                continue
            self.add(node["name"], size, node.get("color"))

    def color(self, name: str) -> str:
        # Upstream color first, then the static map
        return self._colors.get(name) or color_for(name)

    def items(self) -> list[tuple[str, int]]:
        return list(self._sizes.items())

    def total(self) -> int:
        return sum(self._sizes.values())

    def __len__(self) -> int:
        return len(self._sizes)


def rank_languages(totals: LanguageTotals, limit: int = TOP_LANGUAGES) -> list[LanguageStat]:
    """
    Rank languages by total bytes and keep the top ``limit``.

    Equal sizes are ordered by name, descending, so the result does not
    depend on page order.
    """
    ranked = sorted(totals.items(), key=lambda item: (item[0].lower(), item[0]), reverse=True)
    ranked.sort(key=lambda item: item[1], reverse=True)
    return [
        LanguageStat(name=name, size=size, color=totals.color(name))
        for name, size in ranked[:limit]
    ]


def language_percentages(languages: list[LanguageStat]) -> list[tuple[LanguageStat, float]]:
    """Share of each language in the summed size of ``languages``, in percent."""
    total = sum(lang.size for lang in languages) or 1
    return [(lang, lang.size / total * 100) for lang in languages]


def sum_stars(nodes: list[dict[str, Any]]) -> int:
    """Sum stargazer counts for one page of repository nodes."""
    return sum((node.get("stargazers") or {}).get("totalCount") or 0 for node in nodes)


def _count(user: dict[str, Any], field: str) -> int:
    value = user.get(field)
    return (value.get("totalCount") or 0) if isinstance(value, dict) else 0


def build_stats(user: dict[str, Any], stars: int, commit_year: int) -> StatSummary:
    """
    Combine user-level counters from the first GraphQL page into a summary.

    Args:
        user: ``data.user`` object of the first page
        stars: Star total summed over all fetched pages
        commit_year: Year the contributions collection was scoped to

    Returns:
        StatSummary with PRs and issues summed across their states
    """
    contributions = user.get("contributionsCollection")
    if not isinstance(contributions, dict):
        contributions = {}
    return StatSummary(
        stars=stars,
        repos=_count(user, "repositories"),
        prs=_count(user, "openPRs") + _count(user, "closedPRs") + _count(user, "mergedPRs"),
        issues=_count(user, "openIssues") + _count(user, "closedIssues"),
        commits=contributions.get("totalCommitContributions") or 0,
        commit_year=commit_year,
    )
