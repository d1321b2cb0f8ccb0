"""
Prompt assembly.
Concatenates style-specific section labels around the system text, the
retrieved context block and the question. Retrieval happens upstream.
"""

from typing import Iterable, Optional, Union

from ..core.models import PromptStyle

SNIPPET_HEADER = "Snippet {slot}:\n"
SPEAKER_LINE = "NPC Name: {name}\n"
SYSTEM_LABEL = "System:"


def format_context(texts: Iterable[str]) -> str:
    """Number retrieved snippets into one opaque context block.

    >>> format_context(["The ruins are north.", "Bromm guards the gate."])
    'Snippet 1:\\nThe ruins are north.\\nSnippet 2:\\nBromm guards the gate.\\n'
    """
    parts = []
    for slot, text in enumerate(texts, start=1):
        parts.append(SNIPPET_HEADER.format(slot=slot))
        parts.append(text)
        parts.append("\n")
    return "".join(parts)


def strip_system_label(text: str) -> str:
    """Drop a leading "System:" label, as found in hand-written prompt files."""
    if text.startswith(SYSTEM_LABEL):
        return text[len(SYSTEM_LABEL):].lstrip(" \r\n")
    return text


def _speaker_block(speaker_name: Optional[str], context: Optional[str]) -> str:
    block = ""
    if speaker_name:
        block += SPEAKER_LINE.format(name=speaker_name)
    if context:
        block += context
    return block


def build_prompt(
    style: Union[PromptStyle, str],
    system: Optional[str],
    speaker_name: Optional[str],
    context: Optional[str],
    question: Optional[str],
) -> str:
    """
    Build the full prompt for a model's prompt style.

    Args:
        style: PromptStyle (or its value) the model was tuned on
        system: System instruction text
        speaker_name: Optional NPC name, written as a "NPC Name:" line ahead of the context
        context: Pre-numbered snippet block from format_context()
        question: The player's question

    Returns:
        Prompt string ending in the style's answer cue
    """
    style = PromptStyle(style)
    system = system or ""
    question = question or ""
    body = _speaker_block(speaker_name, context)

    if style == PromptStyle.INSTRUCTION:
        return (
            f"instruction: {system}\n"
            f"question: {question}\n"
            f"context:\n{body}\n"
            f"answer:"
        )

    sections = f"Context:\n{body}\nQuestion:\n{question}"
    if style == PromptStyle.CHAT:
        return f"System:\n{system}\nUser:\n{sections}\nAssistant:"

    return f"System:\n{system}\n{sections}\nAnswer:"
