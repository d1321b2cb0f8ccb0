"""
Retrieval-to-answer pipeline.
One parameterized flow: embed the question, search the store, number the
snippets, build the prompt, stream a bounded reply, sanitize it. Inference
failures degrade to a fallback reply instead of raising.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .agent import Generator, GenerationError, GenerationResult
from .prompt import build_prompt, format_context
from .safety import sanitize_reply, has_lexical_overlap
from .streaming import StreamStopScanner, generate_reply
from ..core.config import (
    DEFAULT_FALLBACK_REPLY,
    NPC_SYSTEM_PROMPT,
    RETRIEVAL_TOP_K,
    clamp_n_predict,
)
from ..core.models import ModelConfig
from ..vector.embeddings import EmbeddingError
from ..vector.errors import VectorStoreError
from ..vector.index import VectorStore
from ..vector.types import SearchHit
from util.logging import logger


@dataclass
class RagAnswer:
    """Final reply plus what produced it."""
    text: str
    used_fallback: bool
    hits: List[SearchHit] = field(default_factory=list)
    prompt: Optional[str] = None
    generation: Optional[GenerationResult] = None
    reason: Optional[str] = None


class RagPipeline:
    """
    Answers questions from a VectorStore with a streaming Generator.

    The historical variants of this flow differ only in options here:
    scan_stops toggles stop-marker scanning, sanitize toggles reply cleanup,
    include_speaker adds the "NPC Name:" line, and require_overlap enables the
    experimental lexical-overlap refusal.
    """

    def __init__(
        self,
        generator: Generator,
        model_config: ModelConfig,
        system_prompt: str = NPC_SYSTEM_PROMPT,
        top_k: int = RETRIEVAL_TOP_K,
        n_predict: Optional[int] = None,
        scan_stops: bool = True,
        sanitize: bool = True,
        include_speaker: bool = True,
        require_overlap: bool = False,
        fallback: str = DEFAULT_FALLBACK_REPLY,
    ):
        self.generator = generator
        self.model_config = model_config
        self.system_prompt = system_prompt
        self.top_k = top_k
        self.n_predict = clamp_n_predict(model_config.n_predict if n_predict is None else n_predict)
        self.scan_stops = scan_stops
        self.sanitize = sanitize
        self.include_speaker = include_speaker
        self.require_overlap = require_overlap
        self.fallback = fallback

    def _fallback(self, fallback: Optional[str], reason: str, **kwargs) -> RagAnswer:
        logger.log_operation("pipeline.answer", "fallback", {"reason": reason})
        return RagAnswer(text=fallback if fallback is not None else self.fallback,
                         used_fallback=True, reason=reason, **kwargs)

    def retrieve(self, question: str, store: VectorStore) -> List[SearchHit]:
        """Embed the question and return the filled search slots."""
        query = store.embed_query(question)
        return store.search_hits(query, self.top_k)

    def build(self, question: str, hits: List[SearchHit], speaker_name: Optional[str] = None) -> str:
        context = format_context(hit.text for hit in hits)
        speaker = speaker_name if self.include_speaker else None
        return build_prompt(self.model_config.prompt_style, self.system_prompt, speaker, context, question)

    def answer(
        self,
        question: str,
        store: Optional[VectorStore],
        speaker_name: Optional[str] = None,
        fallback: Optional[str] = None,
    ) -> RagAnswer:
        """
        Produce a display-ready reply for question.

        Args:
            question: Player input
            store: Store to ground the reply in; None falls back immediately
            speaker_name: NPC name for the prompt and for echo stripping
            fallback: Reply to use instead of the pipeline default when generation fails

        Returns:
            RagAnswer; used_fallback is set whenever no usable reply was produced
        """
        if store is None:
            return self._fallback(fallback, "no store loaded")

        logger.debug(f"[npc] question: {question}")
        try:
            hits = self.retrieve(question, store)
        except (EmbeddingError, VectorStoreError, ValueError) as e:
            logger.error(f"Retrieval failed: {e}")
            return self._fallback(fallback, f"retrieval failed: {e}")

        for slot, hit in enumerate(hits):
            logger.debug(f"[npc] context[{slot}]: {hit.text}")

        if self.require_overlap and not has_lexical_overlap(question, " ".join(hit.text for hit in hits)):
            return self._fallback(fallback, "no lexical overlap", hits=hits)

        prompt = self.build(question, hits, speaker_name)
        logger.debug(f">> {prompt}")

        scanner = StreamStopScanner(scan_markers=self.scan_stops)
        try:
            generation = generate_reply(self.generator, prompt, self.n_predict, scanner)
        except (GenerationError, MemoryError) as e:
            logger.error(f"Generation failed: {e}")
            return self._fallback(fallback, f"generation failed: {e}", hits=hits, prompt=prompt)

        if not generation.text:
            return self._fallback(fallback, "empty generation", hits=hits, prompt=prompt, generation=generation)

        text = sanitize_reply(generation.text, speaker_name) if self.sanitize else generation.text
        if not text:
            return self._fallback(fallback, "reply sanitized to nothing",
                                  hits=hits, prompt=prompt, generation=generation)

        logger.log_operation("pipeline.answer", "success", {
            "hits": len(hits),
            "stop_reason": generation.stop_reason.value,
        })
        return RagAnswer(text=text, used_fallback=False, hits=hits, prompt=prompt, generation=generation)
