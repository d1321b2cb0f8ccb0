#!/usr/bin/env python3
"""
Ask one question against a vector database file and print the grounded answer.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lorekeeper.agents.pipeline import RagPipeline
from lorekeeper.agents.prompt import strip_system_label
from lorekeeper.core import config
from lorekeeper.core.models import MODELS, get_model_by_name
from lorekeeper.vector.embeddings import EmbeddingError
from lorekeeper.vector.errors import VectorStoreError, describe_error
from util.logging import logger

VDB_EXTENSION = ".vdb"


def list_available_models():
    print("Model list:")
    for model in MODELS:
        print(f" - {model.name} [ctx: {model.n_ctx}, temp: {model.temperature:f}]")


def main():
    parser = argparse.ArgumentParser(
        description="Answer a question from a vector database with a local model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -c corpus/map1_bromm.vdb -p "Where are the ruins?"
  %(prog)s -m phi-4-mini-instruct -c corpus/map1_bromm.vdb -p "Who are you?" --speaker Bromm
  %(prog)s -c corpus/map1_bromm.vdb -p "Where are the ruins?" --raw -v

Environment variables:
- GENERATOR_PROVIDER=ollama|mock (default ollama)
- OLLAMA_HOST=http://localhost:11434
- EMBED_PROVIDER must match the one used to build the .vdb file
        """
    )
    parser.add_argument("-m", "--model", help="Model to use (default: DEFAULT_MODEL)")
    parser.add_argument("-e", "--embed-model", help="Model to use for embeddings")
    parser.add_argument("-p", "--prompt", help="Prompt text (required)")
    parser.add_argument("-c", "--context", help="Vector database file (.vdb)")
    parser.add_argument("-l", "--list", action="store_true", help="List all available models")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--system-file", help="Read the system prompt from a file")
    parser.add_argument("--speaker", help="NPC name to answer as")
    parser.add_argument("--raw", action="store_true",
                        help="Print the generation unscanned and unsanitized")

    args = parser.parse_args()

    if args.verbose:
        logger.set_level("DEBUG")

    if args.list:
        list_available_models()
        return 0

    if not args.prompt:
        logger.error("Prompt must be provided. Exiting...")
        return 1
    if not args.context:
        logger.error("Context .vdb file must be provided. Exiting...")
        return 1
    if not args.context.endswith(VDB_EXTENSION):
        logger.error("Context file must be a .vdb vector database")
        return 1

    model_name = args.model or config.DEFAULT_MODEL
    model_cfg = get_model_by_name(model_name)
    if model_cfg is None:
        logger.error(f"Unknown model '{model_name}'")
        return 1

    system_prompt = config.NPC_SYSTEM_PROMPT
    if args.system_file:
        try:
            system_prompt = strip_system_label(Path(args.system_file).read_text(encoding="utf-8"))
        except OSError as e:
            logger.error(f"Unable to read system prompt {args.system_file}: {e}")
            return 1

    embed_model = args.embed_model or (model_cfg.embed_model if config.EMBED_PROVIDER == "ollama" else None)
    try:
        embedder = config.get_embedding_provider(model_name=embed_model)
    except (ValueError, EmbeddingError) as e:
        logger.error(f"Unable to load embedding model: {e}")
        return 1

    store = config.create_vector_store(embedder)
    try:
        store.load(args.context)
    except VectorStoreError as e:
        logger.error(f"Failed to load vector database {args.context}: {describe_error(e.code)}")
        return 1

    try:
        generator = config.get_generator(model_cfg)
    except ValueError as e:
        logger.error(str(e))
        return 1

    pipeline = RagPipeline(
        generator,
        model_cfg,
        system_prompt=system_prompt,
        scan_stops=not args.raw,
        sanitize=not args.raw,
        include_speaker=args.speaker is not None,
    )
    try:
        answer = pipeline.answer(args.prompt, store, speaker_name=args.speaker)
    finally:
        generator.close()

    print(answer.text)
    return 1 if answer.used_fallback else 0


if __name__ == "__main__":
    sys.exit(main())
