"""
Streaming stop detection and the bounded reply loop.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .agent import Generator, GenerationError, GenerationResult, StopReason
from ..core.config import clamp_n_predict
from util.logging import logger

# Order is irrelevant: the earliest offset across all markers wins
DEFAULT_STOP_MARKERS = (
    "\n",
    "</s>",
    "<system-reminder>",
    "<system",
    "<|",
    "###",
    "System:",
    "User:",
    "Assistant:",
)


def find_stop_offset(chunk: str, markers: Sequence[str] = DEFAULT_STOP_MARKERS) -> int:
    """Earliest offset of any marker in chunk, or len(chunk) when none occurs."""
    stop_at = len(chunk)
    for marker in markers:
        if not marker:
            continue
        offset = chunk.find(marker)
        if 0 <= offset < stop_at:
            stop_at = offset
    return stop_at


@dataclass
class ScanResult:
    """What one chunk contributes to the reply."""
    emit: str
    stop: bool
    discarded: bool = False


@dataclass
class StreamStopScanner:
    """
    Decides, chunk by chunk, how much generated text belongs to the reply.

    With scan_markers=False chunks pass through untouched and only the token
    budget or end of sequence ends generation.
    """
    markers: Sequence[str] = DEFAULT_STOP_MARKERS
    scan_markers: bool = True
    _parts: List[str] = field(default_factory=list, repr=False)

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def has_output(self) -> bool:
        return any(self._parts)

    def reset(self) -> None:
        self._parts.clear()

    def feed(self, chunk: str) -> ScanResult:
        if not self.scan_markers:
            self._parts.append(chunk)
            return ScanResult(emit=chunk, stop=False)

        cut = find_stop_offset(chunk, self.markers)
        if cut == 0 and not self.has_output and chunk.startswith("\n"):
            # a leading newline piece is dropped whole; generation continues
            return ScanResult(emit="", stop=False, discarded=True)

        emit = chunk[:cut]
        self._parts.append(emit)
        return ScanResult(emit=emit, stop=cut < len(chunk))


def generate_reply(
    generator: Generator,
    prompt: str,
    n_predict: int,
    scanner: Optional[StreamStopScanner] = None,
    ceiling: Optional[int] = None,
) -> GenerationResult:
    """
    Run the token loop for one reply.

    Args:
        generator: Backend driven one token at a time
        prompt: Fully assembled prompt
        n_predict: Requested token budget, clamped to the configured ceiling
        scanner: Stop scanner; a fresh marker-scanning one when omitted
        ceiling: Overrides N_PREDICT_CEILING

    Returns:
        GenerationResult with whatever text was accumulated. Decode and
        allocation failures end the loop early instead of raising.

    Raises:
        GenerationError: The prompt could not be tokenized
    """
    budget = clamp_n_predict(n_predict, ceiling)
    scanner = scanner if scanner is not None else StreamStopScanner()
    scanner.reset()

    batch = generator.tokenize(prompt)
    state = None
    sampled = 0
    stop_reason = StopReason.MAX_TOKENS
    error = None

    try:
        while sampled < budget:
            state = generator.decode(batch, state)
            token = generator.sample_next(state)
            sampled += 1
            if generator.is_end_of_sequence(token):
                stop_reason = StopReason.END_OF_SEQUENCE
                break

            result = scanner.feed(generator.token_to_text(token))
            if result.stop:
                stop_reason = StopReason.STOP_MARKER
                break
            batch = [token]
    except GenerationError as e:
        stop_reason = StopReason.DECODE_ERROR
        error = str(e)
    except MemoryError as e:
        stop_reason = StopReason.ALLOCATION_ERROR
        error = f"out of memory while streaming: {e}"
    finally:
        if state is not None:
            generator.release(state)

    text = scanner.text
    status = "success" if error is None else "failed"
    logger.log_generation(generator.model_name, sampled, stop_reason.value, text, status)
    if error:
        logger.warning(f"Generation stopped early: {error}")

    return GenerationResult(text=text, tokens_generated=sampled, stop_reason=stop_reason, error=error)
