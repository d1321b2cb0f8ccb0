"""
Ollama-backed Generator.
Streams a raw (untemplated) completion from a local Ollama server; every
streamed chunk is treated as one sampled token.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import ollama

from .agent import Generator, GenerationError
from ..core.models import ModelConfig

# Stream exhausted without an explicit done chunk
_STREAM_END = {"response": "", "done": True}


@dataclass
class _OllamaStream:
    chunks: Iterator[Any]
    prompt: str


class OllamaGenerator(Generator):
    """
    Generator implementation that uses Ollama models.
    The prompt is sent with raw=True because prompts are already assembled
    in the model's own style.
    """

    def __init__(self, config: ModelConfig, host: Optional[str] = None):
        super().__init__(config.model)
        self.config = config
        self.client = ollama.Client(host=host)

    def tokenize(self, text: str) -> List[Any]:
        # Ollama tokenizes server-side; the whole prompt travels as one unit
        return [text]

    def decode(self, tokens: List[Any], state: Any = None) -> Any:
        if state is not None:
            # the server already holds the sampled tokens in its context
            return state

        prompt = "".join(tokens)
        try:
            chunks = self.client.generate(
                model=self.model_name,
                prompt=prompt,
                raw=True,
                stream=True,
                options=self.config.ollama_options(),
            )
        except ollama.ResponseError as e:
            raise GenerationError(f"Ollama model error: {e}") from e
        except Exception as e:
            raise GenerationError(f"Ollama request failed: {e}") from e

        return _OllamaStream(chunks=iter(chunks), prompt=prompt)

    def sample_next(self, state: _OllamaStream) -> Any:
        try:
            return next(state.chunks)
        except StopIteration:
            return _STREAM_END
        except ollama.ResponseError as e:
            raise GenerationError(f"Ollama model error: {e}") from e
        except Exception as e:
            raise GenerationError(f"Ollama stream failed: {e}") from e

    def token_to_text(self, token: Any) -> str:
        return token.get("response") or ""

    def is_end_of_sequence(self, token: Any) -> bool:
        # a final chunk that still carries text is emitted first; the next sample ends the stream
        return bool(token.get("done")) and not token.get("response")

    def release(self, state: Any) -> None:
        if state is None:
            return
        close = getattr(state.chunks, "close", None)
        if close is not None:
            close()

    def close(self) -> None:
        # older ollama clients have no close()
        close = getattr(self.client, "close", None)
        if close is not None:
            close()

    def get_status(self) -> Dict[str, Any]:
        """Get current status with Ollama-specific information."""
        status = super().get_status()
        status.update({
            'prompt_style': self.config.prompt_style.value,
            'ollama_available': self.is_available()
        })
        return status

    def is_available(self) -> bool:
        """Check if Ollama is reachable and serves this model."""
        try:
            response = self.client.list()
        except Exception:
            return False
        names = [model.get('model') or model.get('name') or '' for model in response.get('models', [])]
        return self.model_name in names
