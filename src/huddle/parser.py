"""
Parser for text-simulated tool calls.

Vendors without native function calling are asked to reply with lines of the
form ``tool_name: {"arg": "value"}``. This module finds those directives in
free text. It is deliberately strict: a directive counts only when the name
is one of the offered tools and the payload decodes to a JSON object.
Anything else is treated as ordinary prose, never as an error.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .types import ToolCall

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(r"(?<![\w.-])([A-Za-z_][\w-]*)\s*:\s*(?=\{)")


@dataclass
class ParseResult:
    """Result of scanning a reply for simulated tool calls."""

    tool_calls: List[ToolCall] = field(default_factory=list)
    remaining_text: str = ""
    raw_text: str = ""


class ToolCallParser:
    """Extract ``name: {json}`` directives from model output."""

    def __init__(self, max_payload_chars: int = 8000):
        self.max_payload_chars = max_payload_chars

    def parse(self, text: str, tool_names: Optional[Iterable[str]] = None) -> ParseResult:
        """
        Find simulated tool calls in ``text``.

        Args:
            text: The model's reply.
            tool_names: Names that may be invoked. ``None`` accepts any
                identifier, which is only useful for diagnostics.

        Returns:
            ParseResult with the calls in order of appearance and the reply
            text with the matched directives removed.
        """
        if not text:
            return ParseResult(raw_text=text or "")

        allowed = set(tool_names) if tool_names is not None else None
        calls: List[ToolCall] = []
        spans: List[Tuple[int, int]] = []
        seen = set()

        for match in _DIRECTIVE.finditer(text):
            name = match.group(1)
            if allowed is not None and name not in allowed:
                continue
            brace_start = match.end()
            if spans and brace_start < spans[-1][1]:
                continue
            payload = self._balanced_object(text, brace_start)
            if payload is None:
                continue
            if self.max_payload_chars and len(payload) > self.max_payload_chars:
                logger.debug("Skipping %s directive: payload exceeds %d chars", name, self.max_payload_chars)
                continue
            arguments = self._load_object(payload)
            if arguments is None:
                logger.debug("Skipping %s directive: payload is not a JSON object", name)
                continue

            key = (name, json.dumps(arguments, sort_keys=True))
            spans.append((match.start(), brace_start + len(payload)))
            if key in seen:
                continue
            seen.add(key)
            calls.append(ToolCall(name=name, arguments=arguments))

        return ParseResult(
            tool_calls=calls, remaining_text=self._strip_spans(text, spans), raw_text=text
        )

    def _balanced_object(self, text: str, start: int) -> Optional[str]:
        """Return the balanced ``{...}`` substring starting at ``start``, string-aware."""
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : idx + 1]
        return None

    def _load_object(self, candidate: str) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def _strip_spans(self, text: str, spans: List[Tuple[int, int]]) -> str:
        if not spans:
            return text.strip()
        pieces = []
        cursor = 0
        for start, end in spans:
            pieces.append(text[cursor:start])
            cursor = end
        pieces.append(text[cursor:])
        cleaned = "".join(pieces)
        cleaned = re.sub(r"\n\s*\n\s*\n+", "\n\n", cleaned)
        return cleaned.strip()


__all__ = ["ToolCallParser", "ParseResult"]
