"""
Web search tool backed by the DuckDuckGo instant-answer API.

Requires the 'requests' library for external HTTP calls.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..tools.base import ToolDefinition, ToolParameter

DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
USER_AGENT = "Mozilla/5.0 (compatible; huddle/0.1)"

WEB_SEARCH = ToolDefinition.from_parameters(
    name="web_search",
    description=(
        "Search the web for current information: injury reports, depth-chart "
        "changes, weather, breaking news. Use when recent information would "
        "change the recommendation."
    ),
    parameters=[
        ToolParameter(name="query", param_type=str, description="Search query"),
        ToolParameter(
            name="max_results",
            param_type=int,
            description="Maximum related results to include (default: 5)",
            required=False,
        ),
    ],
)


def web_search(query: str, max_results: int = 5, timeout: float = 10.0) -> str:
    """
    Run an instant-answer search and return a plain-text summary.

    Args:
        query: Search query
        max_results: Maximum related topics to include
        timeout: Request timeout in seconds

    Returns:
        Text summary of the answer, abstract and related topics.

    Raises:
        requests.exceptions.RequestException: On network failure or a non-2xx
            response. Executors turn this into an error result.
    """
    import requests  # type: ignore[import-untyped]

    response = requests.get(
        DUCKDUCKGO_URL,
        params={"q": query, "format": "json", "no_html": 1, "skip_disambig": 1},
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
    )
    response.raise_for_status()
    return format_instant_answer(query, response.json(), max_results)


def format_instant_answer(query: str, data: Dict[str, Any], max_results: int = 5) -> str:
    lines: List[str] = []
    if data.get("Answer"):
        lines.append(f"Direct Answer: {data['Answer']}")
    if data.get("AbstractText"):
        source = f" ({data['AbstractURL']})" if data.get("AbstractURL") else ""
        lines.append(f"Summary: {data['AbstractText']}{source}")
    if data.get("Definition"):
        lines.append(f"Definition: {data['Definition']}")

    topics = [t for t in data.get("RelatedTopics") or [] if isinstance(t, dict) and t.get("Text")]
    if topics:
        lines.append("Related Information:")
        for index, topic in enumerate(topics[:max_results], start=1):
            lines.append(f"{index}. {topic['Text']}")
            if topic.get("FirstURL"):
                lines.append(f"   Source: {topic['FirstURL']}")

    if not lines:
        return (
            f'No specific results found for "{query}". '
            "This may be a very specific or recent topic."
        )
    return "\n".join(lines)


__all__ = ["WEB_SEARCH", "web_search", "format_instant_answer"]
