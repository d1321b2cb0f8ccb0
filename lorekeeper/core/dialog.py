"""
NPC dialog: bounded turn history, NPC profiles and a per-NPC session that
answers player input through the RAG pipeline.
"""

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

from .config import DEFAULT_FALLBACK_REPLY, DIALOG_HISTORY_MAX, create_vector_store
from ..agents.safety import sanitize_reply
from ..vector.errors import VectorStoreError, describe_error
from ..vector.index import VectorStore
from ..vector.types import truncate_utf8
from util.logging import logger

DIALOG_PROMPT_MAX = 128
DIALOG_RESPONSE_MAX = 256


@dataclass(frozen=True)
class DialogTurn:
    prompt: str
    response: str


class DialogHistory:
    """Ring of the most recent turns; the oldest is evicted first."""

    def __init__(self, maxlen: int = DIALOG_HISTORY_MAX):
        if maxlen < 1:
            raise ValueError(f"maxlen must be >= 1, got {maxlen}")
        self._turns = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._turns.maxlen

    def append(self, prompt: str, response: str) -> DialogTurn:
        # one byte of each buffer is reserved for the terminator
        turn = DialogTurn(
            prompt=truncate_utf8(prompt, DIALOG_PROMPT_MAX - 1),
            response=truncate_utf8(response, DIALOG_RESPONSE_MAX - 1),
        )
        self._turns.append(turn)
        return turn

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[DialogTurn]:
        return iter(self._turns)

    def __getitem__(self, index: int) -> DialogTurn:
        return self._turns[index]


@dataclass(frozen=True)
class NpcProfile:
    name: str
    reply: str
    vdb_path: str


DEFAULT_NPCS = (
    NpcProfile("Bromm", "Bromm: The old ruins are north of here.", "corpus/map1_bromm.vdb"),
    NpcProfile("Dagna", "Dagna: The well is safe, mostly.", "corpus/map1_dagna.vdb"),
    NpcProfile("Keldor", "Keldor: I saw lights in the marsh last night.", "corpus/map1_keldor.vdb"),
    NpcProfile("Thrain", "Thrain: Mind the bridge; the beams sing when they're weak.", "corpus/map1_thrain.vdb"),
    NpcProfile("Skara", "Skara: If you hear bells in the fog, turn back.", "corpus/map1_skara.vdb"),
)


class DialogSession:
    """
    Talk to a set of NPCs, each grounded in its own vector store.

    Stores are loaded up front. An NPC whose store fails to load still
    answers, with its canned reply.
    """

    def __init__(
        self,
        pipeline,
        profiles: Sequence[NpcProfile] = DEFAULT_NPCS,
        embedder=None,
        base_dir: Union[str, Path, None] = None,
        history_max: int = DIALOG_HISTORY_MAX,
    ):
        self.pipeline = pipeline
        self.profiles = list(profiles)
        self.embedder = embedder
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.stores: List[Optional[VectorStore]] = [None] * len(self.profiles)
        self.histories: Dict[int, DialogHistory] = {
            i: DialogHistory(history_max) for i in range(len(self.profiles))
        }
        self.load_stores()

    def _resolve(self, vdb_path: str) -> Path:
        path = Path(vdb_path)
        if self.base_dir is not None and not path.is_absolute():
            path = self.base_dir / path
        return path

    def load_stores(self) -> int:
        """(Re)load every NPC store. Returns how many loaded."""
        loaded = 0
        for i, profile in enumerate(self.profiles):
            path = self._resolve(profile.vdb_path)
            store = create_vector_store(self.embedder)
            try:
                store.load(path)
            except VectorStoreError as e:
                logger.error(f"Failed to load vector db for {profile.name} ({path}): {describe_error(e.code)}")
                self.stores[i] = None
                continue
            self.stores[i] = store
            loaded += 1
        logger.log_operation("dialog.load_stores", "success", {"loaded": loaded, "npcs": len(self.profiles)})
        return loaded

    def is_loaded(self, npc_index: int) -> bool:
        return 0 <= npc_index < len(self.stores) and self.stores[npc_index] is not None

    def history(self, npc_index: int) -> DialogHistory:
        return self.histories[npc_index]

    def submit(self, npc_index: int, text: str) -> Optional[str]:
        """Answer player input as the given NPC and record the turn.

        Empty input is ignored and returns None.
        """
        if not text:
            return None
        if not 0 <= npc_index < len(self.profiles):
            raise IndexError(f"no NPC at index {npc_index}")

        profile = self.profiles[npc_index]
        fallback = profile.reply or DEFAULT_FALLBACK_REPLY
        answer = self.pipeline.answer(text, self.stores[npc_index], speaker_name=profile.name, fallback=fallback)

        # canned replies carry a "Name:" label too
        reply = sanitize_reply(answer.text, profile.name) or profile.reply or DEFAULT_FALLBACK_REPLY
        self.histories[npc_index].append(text, reply)
        return reply
