#!/usr/bin/env python3
"""
Build a vector database (.vdb) file from a plain-text corpus.

Each non-blank line of the input becomes one document.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lorekeeper.core import config
from lorekeeper.core.corpus import load_corpus
from lorekeeper.core.models import MODELS, get_model_by_name
from lorekeeper.vector.errors import VectorStoreError
from lorekeeper.vector.embeddings import EmbeddingError
from util.logging import logger


def list_available_models():
    print("Model list:")
    for model in MODELS:
        print(f" - {model.name} [ctx: {model.n_ctx}, temp: {model.temperature:f}]")


def main():
    parser = argparse.ArgumentParser(
        description="Embed a newline-delimited corpus into a vector database file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -i corpus/bromm.txt -o corpus/map1_bromm.vdb
  %(prog)s -m qwen3 -i corpus/bromm.txt -o corpus/map1_bromm.vdb -v

Environment variables:
- EMBED_PROVIDER=hash|sentence_transformers|ollama (default hash)
- EMBED_DIM=768 (must match the store that will read the file)
- VDB_MAX_DOCS=1000
        """
    )
    parser.add_argument("-m", "--model", help="Model whose embedding model to use (default: first model)")
    parser.add_argument("-i", "--in", dest="in_file", help="Input context file")
    parser.add_argument("-o", "--out", dest="out_file", help="Output vector database file")
    parser.add_argument("-l", "--list", action="store_true", help="List all available models")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--atomic", action="store_true", help="Write through a temporary file and rename")

    args = parser.parse_args()

    if args.verbose:
        logger.set_level("DEBUG")

    if args.list:
        list_available_models()
        return 0

    if not args.in_file:
        logger.error("Input context file must be provided. Exiting...")
        return 1
    if not args.out_file:
        logger.error("Output vector context file must be provided. Exiting...")
        return 1

    if args.model:
        model_cfg = get_model_by_name(args.model)
        if model_cfg is None:
            logger.error(f"Unknown model '{args.model}'")
            return 1
    else:
        model_cfg = MODELS[0]

    embed_model = model_cfg.embed_model if config.EMBED_PROVIDER == "ollama" else None
    try:
        embedder = config.get_embedding_provider(model_name=embed_model)
    except (ValueError, EmbeddingError) as e:
        logger.error(f"Unable to load embedding model: {e}")
        return 1

    store = config.create_vector_store(embedder)

    try:
        report = load_corpus(args.in_file, store)
    except OSError as e:
        logger.error(f"Unable to open context file {args.in_file}: {e}")
        return 1

    if report.truncated_by_capacity:
        logger.warning(f"Store capacity {store.capacity} reached; corpus was cut short")

    try:
        store.save(args.out_file, atomic=args.atomic)
    except VectorStoreError as e:
        logger.error(f"Something went wrong saving file {args.out_file}: {e}")
        return 1

    print(f"Context vector database file {args.out_file} successfully written "
          f"({report.added} documents, {report.skipped_blank} blank, {report.failed} failed)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
