#!/usr/bin/env python3
"""
Console dialog with the map's NPCs.
Type a line to speak, "/npc <name>" to switch NPC, "/history" to review, "/quit" to leave.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lorekeeper.agents.pipeline import RagPipeline
from lorekeeper.core import config
from lorekeeper.core.dialog import DEFAULT_NPCS, DialogSession
from lorekeeper.core.models import get_model_by_name
from lorekeeper.vector.embeddings import EmbeddingError
from util.logging import logger


def find_npc(session: DialogSession, name: str) -> int:
    for i, profile in enumerate(session.profiles):
        if profile.name.lower() == name.lower():
            return i
    return -1


def print_history(session: DialogSession, npc_index: int):
    name = session.profiles[npc_index].name
    for turn in session.history(npc_index):
        print(f"  You: {turn.prompt}")
        print(f"  {name}: {turn.response}")


def main():
    parser = argparse.ArgumentParser(description="Talk to NPCs grounded in their vector databases")
    parser.add_argument("-m", "--model", default=config.DEFAULT_MODEL, help="Generation model name")
    parser.add_argument("-d", "--base-dir", default=".", help="Directory the NPC .vdb paths are relative to")
    parser.add_argument("-n", "--npc", default=DEFAULT_NPCS[0].name, help="NPC to start talking to")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    if args.verbose:
        logger.set_level("DEBUG")

    model_cfg = get_model_by_name(args.model)
    if model_cfg is None:
        logger.error(f"Unknown model '{args.model}'")
        return 1

    try:
        embedder = config.get_embedding_provider()
        generator = config.get_generator(model_cfg)
    except (ValueError, EmbeddingError) as e:
        logger.error(str(e))
        return 1

    session = DialogSession(RagPipeline(generator, model_cfg), embedder=embedder, base_dir=args.base_dir)
    npc_index = find_npc(session, args.npc)
    if npc_index < 0:
        logger.error(f"Unknown NPC '{args.npc}'")
        return 1

    try:
        while True:
            name = session.profiles[npc_index].name
            try:
                line = input(f"[{name}] You: ").strip()
            except EOFError:
                print()
                break

            if line in ("/quit", "/exit"):
                break
            if line == "/history":
                print_history(session, npc_index)
                continue
            if line.startswith("/npc "):
                target = find_npc(session, line[5:].strip())
                if target < 0:
                    print(f"No NPC named {line[5:].strip()!r}")
                else:
                    npc_index = target
                continue

            reply = session.submit(npc_index, line)
            if reply is not None:
                print(f"{name}: {reply}")
    except KeyboardInterrupt:
        print()
    finally:
        generator.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
