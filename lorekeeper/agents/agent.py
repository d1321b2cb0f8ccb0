"""
Base Generator interface.
Token-level text continuation as seen by the reply loop: decode a batch,
sample the next token, turn it into text, and recognise end of sequence.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class GenerationError(RuntimeError):
    """The generation backend failed to decode, sample or detokenize."""


class StopReason(str, Enum):
    STOP_MARKER = "stop_marker"
    END_OF_SEQUENCE = "end_of_sequence"
    MAX_TOKENS = "max_tokens"
    DECODE_ERROR = "decode_error"
    ALLOCATION_ERROR = "allocation_error"


@dataclass
class GenerationResult:
    """Outcome of one bounded generation loop."""
    text: str
    tokens_generated: int
    stop_reason: StopReason
    error: Optional[str] = None


class Generator(ABC):
    """
    Abstract base class for text generators.
    The reply loop drives implementations one token at a time.
    """

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    def tokenize(self, text: str) -> List[Any]:
        """Convert a prompt into the token sequence fed to the first decode."""
        pass

    @abstractmethod
    def decode(self, tokens: List[Any], state: Any = None) -> Any:
        """
        Evaluate tokens and return the generation state.

        Args:
            tokens: Prompt tokens on the first call, then the last sampled token
            state: None to start a sequence, otherwise the state from the previous call

        Raises:
            GenerationError: The backend could not evaluate the batch
        """
        pass

    @abstractmethod
    def sample_next(self, state: Any) -> Any:
        """Pick the next token from the current state."""
        pass

    @abstractmethod
    def token_to_text(self, token: Any) -> str:
        """Text fragment for a sampled token."""
        pass

    @abstractmethod
    def is_end_of_sequence(self, token: Any) -> bool:
        pass

    def release(self, state: Any) -> None:
        """Free per-sequence resources. Called once the loop is done with state."""
        pass

    def close(self) -> None:
        """Release the backend itself. The generator is unusable afterwards."""
        pass

    def get_status(self) -> Dict[str, Any]:
        """Get current status of this generator."""
        return {
            "model_name": self.model_name,
            "generator_type": self.__class__.__name__,
            "status": "ready"
        }
