"""
Reply cleanup for display.
Strips role labels, control tags and speaker-name echoes from a raw model
reply. An empty result means "no usable reply"; callers substitute a fallback.
"""

import re
from typing import FrozenSet, Iterable, Optional

_WHITESPACE = " \t\n\r"
_QUOTES = "\"'`"
_NAME_SEPARATORS = ":-,"

ROLE_PREFIXES = ("Answer:", "NPC:", "Context:", "System:")
CONTEXT_OPEN_TAG = "<context>"
CUT_TAGS = ("<system-reminder>", "<system", "<|", "</s>", "###")

# Words too common to count as shared evidence between question and context
STOPWORDS: FrozenSet[str] = frozenset({
    "about", "after", "again", "also", "been", "before", "being", "could",
    "does", "doing", "from", "have", "having", "here", "into", "just", "know",
    "like", "more", "most", "much", "only", "over", "said", "same", "should",
    "some", "such", "tell", "than", "that", "their", "them", "then", "there",
    "these", "they", "this", "those", "very", "want", "were", "what", "when",
    "where", "which", "while", "whom", "whose", "will", "with", "would",
    "your", "yours",
})

_WORD_RE = re.compile(r"[a-z0-9']+")


def _trim_quotes(text: str) -> str:
    while text and text[0] in _QUOTES:
        text = text[1:].lstrip(_WHITESPACE)
    return text


def _strip_prefix(text: str, prefix: str) -> str:
    if text[:len(prefix)].lower() == prefix.lower():
        return text[len(prefix):].lstrip(_WHITESPACE)
    return text


def _cut_at_first(text: str, tags: Iterable[str]) -> str:
    cut = len(text)
    for tag in tags:
        offset = text.find(tag)
        if 0 <= offset < cut:
            cut = offset
    return text[:cut]


def _starts_with_name(text: str, name: str) -> bool:
    if text[:len(name)].lower() != name.lower():
        return False
    rest = text[len(name):]
    return not rest or rest[0] in _NAME_SEPARATORS or rest[0] in _WHITESPACE


def sanitize_reply(raw: Optional[str], speaker_name: Optional[str] = None) -> str:
    """
    Clean a raw reply.

    >>> sanitize_reply('  "Answer: Bromm: Hi there.', "Bromm")
    'Hi there.'
    >>> sanitize_reply("System: I don't know.###extra", "")
    "I don't know."
    """
    if not raw:
        return ""

    text = raw.lstrip(_WHITESPACE)
    text = _trim_quotes(text)
    for prefix in ROLE_PREFIXES:
        text = _strip_prefix(text, prefix)
    if text.startswith(CONTEXT_OPEN_TAG):
        text = text[len(CONTEXT_OPEN_TAG):].lstrip(_WHITESPACE)
    text = _cut_at_first(text, CUT_TAGS)

    if speaker_name:
        # "Bromm: Bromm: text" echoes
        while _starts_with_name(text, speaker_name):
            text = text[len(speaker_name):].lstrip(_NAME_SEPARATORS)
            text = _trim_quotes(text.lstrip(_WHITESPACE))

    return text.rstrip(_WHITESPACE)


def _content_words(text: str, min_len: int, stopwords: FrozenSet[str]) -> set:
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) >= min_len and w not in stopwords}


def has_lexical_overlap(
    question: str,
    context: str,
    min_len: int = 4,
    stopwords: FrozenSet[str] = STOPWORDS,
) -> bool:
    """Experimental refusal check: does the question share an uncommon word with the context?

    Thresholds were tuned by hand; keep this opt-in.
    """
    wanted = _content_words(question, min_len, stopwords)
    if not wanted:
        return False
    return bool(wanted & _content_words(context, min_len, stopwords))
