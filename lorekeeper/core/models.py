"""
Generation model table.
Each entry pairs an Ollama model tag with its sampling parameters and the
prompt style the model was tuned on.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Sentinel seed meaning "let the backend pick"
DEFAULT_SEED = 0xFFFFFFFF


class PromptStyle(str, Enum):
    PLAIN = "plain"
    CHAT = "chat"
    INSTRUCTION = "instruction"


class ModelConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    model: str
    embed_model: str = "nomic-embed-text"
    n_ctx: int = 2048
    n_batch: int = 4096
    n_predict: int = 128
    temperature: float = 0.7
    min_p: float = 0.05
    top_k: int = 40
    top_p: float = 0.9
    repeat_last_n: int = 64
    repeat_penalty: float = 1.1
    freq_penalty: float = 0.0
    presence_penalty: float = 0.0
    seed: int = DEFAULT_SEED
    prompt_style: PromptStyle = PromptStyle.PLAIN

    @field_validator('name', 'model')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('must not be empty')
        return v

    @field_validator('n_ctx', 'n_batch')
    @classmethod
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('must be > 0')
        return v

    @field_validator('temperature')
    @classmethod
    def temperature_not_negative(cls, v):
        if v < 0:
            raise ValueError('temperature must be >= 0')
        return v

    @field_validator('min_p', 'top_p')
    @classmethod
    def probability_in_range(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('must be between 0 and 1')
        return v

    def ollama_options(self) -> Dict[str, Any]:
        """Sampler settings in Ollama's option names.

        Mirrors the sampler chain: top-k only when positive, top-p only when
        strictly inside (0, 1), min-p only when positive.
        """
        options = {
            'num_ctx': self.n_ctx,
            'num_batch': self.n_batch,
            'num_predict': self.n_predict,
            'temperature': self.temperature,
            'repeat_last_n': self.repeat_last_n,
            'repeat_penalty': self.repeat_penalty,
            'frequency_penalty': self.freq_penalty,
            'presence_penalty': self.presence_penalty,
            'top_p': self.top_p if 0.0 < self.top_p < 1.0 else 1.0,
            'min_p': self.min_p if self.min_p > 0.0 else 0.0,
        }
        if self.top_k > 0:
            options['top_k'] = self.top_k
        if self.seed != DEFAULT_SEED:
            options['seed'] = self.seed
        return options


MODELS: List[ModelConfig] = [
    ModelConfig(
        name="qwen3",
        model="qwen3:0.6b",
        temperature=0.6,
        prompt_style=PromptStyle.CHAT,
    ),
    ModelConfig(
        name="tinyllama-1.1b",
        model="tinyllama:1.1b",
        prompt_style=PromptStyle.PLAIN,
    ),
    ModelConfig(
        name="tinyllama-1",
        model="tinyllama:1.1b-chat-v1-q2_K",
        prompt_style=PromptStyle.PLAIN,
    ),
    ModelConfig(
        name="flan-t5-small",
        model="flan-t5-small",
        n_ctx=512,
        n_batch=512,
        temperature=0.2,
        prompt_style=PromptStyle.INSTRUCTION,
    ),
    ModelConfig(
        name="phi-4-mini-instruct",
        model="phi4-mini",
        n_ctx=4096,
        temperature=0.6,
        prompt_style=PromptStyle.CHAT,
    ),
]


def get_model_by_name(name: str) -> Optional[ModelConfig]:
    for model in MODELS:
        if model.name == name:
            return model
    return None


def list_model_names() -> List[str]:
    return [model.name for model in MODELS]
