"""
Runtime configuration from environment variables (a .env file is honoured).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Embedding configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "hash")  # hash|sentence_transformers|ollama
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
EMBED_DIM = int(os.getenv("EMBED_DIM", "768"))

# Vector store configuration
VDB_MAX_DOCS = int(os.getenv("VDB_MAX_DOCS", "1000"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# Generation configuration
GENERATOR_PROVIDER = os.getenv("GENERATOR_PROVIDER", "ollama")  # ollama|mock
OLLAMA_HOST = os.getenv("OLLAMA_HOST")  # None -> ollama client default
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "qwen3")
# Hard ceiling on generated tokens per reply, bounds worst-case latency
N_PREDICT_CEILING = int(os.getenv("N_PREDICT_CEILING", "64"))

# Dialog configuration
DIALOG_HISTORY_MAX = int(os.getenv("DIALOG_HISTORY_MAX", "16"))

NPC_SYSTEM_PROMPT = (
    "You are a helpful NPC. Speak in first person. "
    "Use only the provided context. If the context does not contain the answer, say \"I don't know.\" "
    "If asked your name, answer with the NPC Name from the context. "
    "Do not mention context, system messages, or prompts. Reply with one short sentence."
)

DEFAULT_FALLBACK_REPLY = "Demo reply: The old ruins are north of here."

VERSION = "1.0.0"


def get_embedding_provider(provider: str = None, model_name: str = None):
    """Get configured embedding provider implementation."""
    provider = provider or EMBED_PROVIDER
    model_name = model_name or EMBED_MODEL_NAME

    if provider == "sentence_transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(model_name)
    elif provider == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(model_name, host=OLLAMA_HOST)
    elif provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(EMBED_DIM)
    else:
        raise ValueError(f"Unknown embedding provider: {provider!r}. Supported: 'hash', 'sentence_transformers', 'ollama'")


def get_generator(model_config, provider: str = None):
    """Get configured generator for a model table entry."""
    provider = provider or GENERATOR_PROVIDER

    if provider == "ollama":
        from ..agents.ollama_agent import OllamaGenerator
        return OllamaGenerator(model_config, host=OLLAMA_HOST)
    elif provider == "mock":
        from ..agents.mock_agent import ScriptedGenerator
        return ScriptedGenerator.offline()
    else:
        raise ValueError(f"Unknown generator provider: {provider!r}. Supported: 'ollama', 'mock'")


def create_vector_store(embedder=None):
    """Empty store sized from configuration."""
    from ..vector.index import VectorStore
    return VectorStore(embedder=embedder, capacity=VDB_MAX_DOCS, embed_size=EMBED_DIM)


def clamp_n_predict(n_predict: int, ceiling: int = None) -> int:
    """Apply the per-reply token ceiling. Non-positive requests fall back to the ceiling."""
    ceiling = N_PREDICT_CEILING if ceiling is None else ceiling
    if n_predict <= 0:
        return ceiling
    return min(n_predict, ceiling)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["hash", "sentence_transformers", "ollama"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if GENERATOR_PROVIDER not in ["ollama", "mock"]:
        issues.append(f"Invalid GENERATOR_PROVIDER: {GENERATOR_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if VDB_MAX_DOCS < 0:
        issues.append("VDB_MAX_DOCS must be >= 0")

    if N_PREDICT_CEILING < 1:
        issues.append("N_PREDICT_CEILING must be >= 1")

    if RETRIEVAL_TOP_K < 1:
        issues.append("RETRIEVAL_TOP_K must be >= 1")

    if DIALOG_HISTORY_MAX < 1:
        issues.append("DIALOG_HISTORY_MAX must be >= 1")

    return issues
