"""
Scripted generator that replays fixed text pieces without any model.
Used for testing, development, and offline runs (GENERATOR_PROVIDER=mock).
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .agent import Generator, GenerationError

END_OF_SEQUENCE = None

_PIECE_RE = re.compile(r"\n|[^\S\n]*\S+")
_FIRST_SNIPPET_RE = re.compile(r"Snippet \d+:\n([^\n]*)")


def split_pieces(text: str) -> List[str]:
    """Split text into token-like pieces: words with their leading spaces, and newlines."""
    return _PIECE_RE.findall(text)


def first_snippet_reply(prompt: str) -> str:
    """Offline responder: answer with the best retrieved snippet, if any."""
    match = _FIRST_SNIPPET_RE.search(prompt)
    if match and match.group(1).strip():
        return " " + match.group(1).strip()
    return " I don't know."


@dataclass
class _ScriptCursor:
    pieces: List[str]
    position: int = 0
    decoded: int = 0
    prompt: str = ""
    tokens_seen: List[Any] = field(default_factory=list)


class ScriptedGenerator(Generator):
    """
    Generator that emits a predetermined sequence of pieces, one per token.

    Either pass the pieces directly, or a responder that builds the reply text
    from the prompt. fail_decode_at makes the n-th decode call (1-based) raise,
    to exercise error handling.
    """

    def __init__(
        self,
        pieces: Optional[Sequence[str]] = None,
        model_name: str = "scripted",
        responder: Optional[Callable[[str], str]] = None,
        fail_decode_at: Optional[int] = None,
    ):
        super().__init__(model_name)
        self.pieces = list(pieces or [])
        self.responder = responder
        self.fail_decode_at = fail_decode_at
        self.prompts: List[str] = []
        self.released = 0

    @classmethod
    def offline(cls) -> "ScriptedGenerator":
        return cls(model_name="offline", responder=first_snippet_reply)

    def tokenize(self, text: str) -> List[Any]:
        self.prompts.append(text)
        return [text]

    def decode(self, tokens: List[Any], state: Any = None) -> Any:
        if state is None:
            prompt = "".join(str(t) for t in tokens)
            pieces = split_pieces(self.responder(prompt)) if self.responder else list(self.pieces)
            state = _ScriptCursor(pieces=pieces, prompt=prompt)
        else:
            state.tokens_seen.extend(tokens)

        state.decoded += 1
        if self.fail_decode_at is not None and state.decoded >= self.fail_decode_at:
            raise GenerationError(f"scripted decode failure at call {state.decoded}")
        return state

    def sample_next(self, state: _ScriptCursor) -> Any:
        if state.position >= len(state.pieces):
            return END_OF_SEQUENCE
        token = state.pieces[state.position]
        state.position += 1
        return token

    def token_to_text(self, token: Any) -> str:
        return token

    def is_end_of_sequence(self, token: Any) -> bool:
        return token is END_OF_SEQUENCE

    def release(self, state: Any) -> None:
        self.released += 1
