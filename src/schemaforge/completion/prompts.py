"""Instruction and feedback messages for structured completions."""

import json
from collections.abc import Sequence
from typing import Any

from schemaforge.completion.provider import ChatMessage
from schemaforge.schema.validators import ValidationIssue


def build_schema_instruction(json_schema: Any, example_output: Any = None) -> ChatMessage:
    """Build the system message that pins the reply to ``json_schema``.

    Args:
        json_schema: Schema the reply must satisfy, embedded pretty-printed
        example_output: Optional conforming example, embedded when present

    Returns:
        A system message to place first in the conversation
    """
    content = (
        "You must respond with valid JSON that matches the following schema:\n\n"
        f"{json.dumps(json_schema, indent=2)}\n\n"
    )
    if example_output is not None:
        content += f"Example output:\n{json.dumps(example_output, indent=2)}\n\n"
    content += (
        "IMPORTANT: Respond only with valid JSON. Do not include any explanations "
        "or additional text outside the JSON object."
    )
    return ChatMessage(role="system", content=content)


def build_validation_feedback(issues: Sequence[ValidationIssue]) -> ChatMessage:
    """Build the user message that reports violations back to the model."""
    listed = "; ".join(str(issue) for issue in issues)
    return ChatMessage(
        role="user",
        content=(
            f"The previous response had validation errors: {listed}. "
            "Please provide a corrected JSON response that strictly follows the schema."
        ),
    )
