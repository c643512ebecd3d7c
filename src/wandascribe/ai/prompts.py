"""Instruction strings sent alongside the user's text.

The remote service is a general-purpose text generator, so every instruction
forbids preambles and asks for output that starts directly with the result.
"""

from __future__ import annotations

from typing import Mapping

from .results import TransformationKind

__all__ = ["NO_GRAMMAR_ERRORS_PHRASE", "INSTRUCTIONS", "instruction_for"]

NO_GRAMMAR_ERRORS_PHRASE = "No grammar errors"

_SPELLING = """Check the spelling of the following text. If there are misspelled words, list them with suggestions. If the text is correct, respond with "No spelling errors found."

Respond in stringified JSON format which is easy to parse programmatically. It should not have any extra text or type annotation of the code block.

Example response:
{
  "misspelled": true/false,
  "words": [{"word": "...", "suggestions": ["...", "..."]}]
}"""

_GRAMMAR = """Check the grammar of the following text and suggest corrections if needed. If the grammar is correct, respond with "No grammar errors found."

IMPORTANT: Return ONLY the corrected text or the confirmation message. Do NOT include any preamble like "Here is the corrected version" or "The corrected text is". Start directly with the corrected text."""


def _rewrite(task: str, product: str, label: str, lead: str) -> str:
    return (
        f"{task}\n\n"
        f"IMPORTANT: Return ONLY the {product}. Do NOT include any preamble, explanations, "
        f'or phrases like "Here is the {label}". Start directly with the {lead}.'
    )


INSTRUCTIONS: Mapping[TransformationKind, str] = {
    TransformationKind.SPELL_CHECK: _SPELLING,
    TransformationKind.GRAMMAR_CHECK: _GRAMMAR,
    TransformationKind.IMPROVE: _rewrite(
        "Improve the following text by making it clearer, more engaging, and better structured "
        "while maintaining its original meaning.",
        "improved text",
        "improved version",
        "improved text",
    ),
    TransformationKind.FORMAL: _rewrite(
        "Rewrite the following text in a formal tone suitable for professional or academic contexts.",
        "formal version of the text",
        "formal version",
        "formal text",
    ),
    TransformationKind.CASUAL: _rewrite(
        "Rewrite the following text in a casual, conversational tone.",
        "casual version of the text",
        "casual version",
        "casual text",
    ),
    TransformationKind.SIMPLIFY: _rewrite(
        "Simplify the following text to make it easier to understand while keeping the core message.",
        "simplified text",
        "simplified version",
        "simplified text",
    ),
    TransformationKind.EXPAND: _rewrite(
        "Expand the following text by adding more details, explanations, and context.",
        "expanded text",
        "expanded version",
        "expanded text",
    ),
    TransformationKind.SUMMARIZE: _rewrite(
        "Summarize the following text concisely while capturing the main points.",
        "summary",
        "summary",
        "summary",
    ),
}


def instruction_for(kind: TransformationKind | str) -> str:
    """Return the instruction string for ``kind``."""

    return INSTRUCTIONS[TransformationKind.parse(kind)]
