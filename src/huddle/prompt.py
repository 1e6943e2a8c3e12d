"""
Prompt templating for simulated tools and the orchestrator's own messages.
"""

from __future__ import annotations

import json
from typing import List, Sequence

from .tools.base import ToolDefinition
from .types import ToolCall, ToolResult

SIMULATED_TOOL_INSTRUCTIONS = """You can use the following tools to gather information before answering.

To call a tool, write a line containing ONLY the tool name, a colon, and a JSON object of arguments:
tool_name: {"argument": "value"}

- Use exactly the tool names listed below.
- The arguments must be valid JSON (double quotes, no trailing commas).
- Do not invent tool outputs; wait for the results before giving a final answer.
- When no tool is useful, answer directly without any tool line.
"""

FINAL_ANSWER_INSTRUCTION = (
    "INSTRUCTIONS: Now provide your complete answer incorporating this information. "
    "Be specific about how the results affect your recommendations. If the results are "
    "not useful or a tool failed, say so and proceed with the information you already have."
)

NO_RESULTS_INSTRUCTION = (
    "No tool results are available. Please provide your final answer based on the "
    "information already in this conversation."
)

TOOLS_EXHAUSTED_NOTICE = (
    "The tool-use budget for this conversation is exhausted. No further tool use is "
    "permitted. Provide your final answer now using only the information already gathered."
)

TOOL_REQUEST_PLACEHOLDER = "I need to use tools to gather more information."


class PromptBuilder:
    """Render the text the orchestrator and text-only adapters inject into a conversation."""

    def __init__(
        self,
        simulated_instructions: str = SIMULATED_TOOL_INSTRUCTIONS,
        final_answer_instruction: str = FINAL_ANSWER_INSTRUCTION,
    ):
        self.simulated_instructions = simulated_instructions
        self.final_answer_instruction = final_answer_instruction

    def simulated_tools(self, tools: Sequence[ToolDefinition]) -> str:
        """Tool catalogue plus calling contract, appended to the last user message."""
        blocks = []
        for tool in tools:
            args = json.dumps(tool.input_schema.get("properties") or {}, indent=2)
            required = ", ".join(tool.required) or "none"
            blocks.append(
                f"{tool.name}: {tool.description}\n"
                f"  arguments (JSON schema properties): {args}\n"
                f"  required: {required}"
            )
        tools_text = "\n\n".join(blocks)
        return f"{self.simulated_instructions.strip()}\n\nAvailable tools:\n\n{tools_text}"

    def assistant_tool_request(self, content: str, calls: Sequence[ToolCall]) -> str:
        """
        Assistant-side record of a tool request.

        Keeps the model's own words when it gave any, and always names the
        requested calls so the next turn can see what was asked.
        """
        lines = [content.strip() or TOOL_REQUEST_PLACEHOLDER]
        for call in calls:
            lines.append(f"{call.name}: {json.dumps(call.arguments, sort_keys=True)}")
        return "\n".join(lines)

    def tool_results(self, results: List[ToolResult]) -> str:
        """One consolidated message holding every result of a turn, in request order."""
        if not results:
            return NO_RESULTS_INSTRUCTION
        body = "\n\n".join(result.render() for result in results)
        return f"TOOL RESULTS:\n\n{body}\n\n{self.final_answer_instruction}"

    def tools_exhausted(self) -> str:
        return TOOLS_EXHAUSTED_NOTICE

    def turn_limit_placeholder(self, turns_max: int) -> str:
        return (
            f"Analysis stopped after reaching the maximum of {turns_max} conversation turns "
            "without a final answer from the model."
        )

    def empty_answer_placeholder(self) -> str:
        return "The model finished without returning any answer text."


__all__ = [
    "PromptBuilder",
    "SIMULATED_TOOL_INSTRUCTIONS",
    "FINAL_ANSWER_INSTRUCTION",
    "NO_RESULTS_INSTRUCTION",
    "TOOLS_EXHAUSTED_NOTICE",
    "TOOL_REQUEST_PLACEHOLDER",
]
