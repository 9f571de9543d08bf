"""
Back-fill `vector_embedding` for stored questions.

Two sources are supported:

    python scripts/update_embeddings.py --csv embeddings.csv
        Load vectors exported to CSV (question id first, JSON vector last).

    python scripts/update_embeddings.py --generate [--batch-size 20]
        Compute vectors with the embeddings API for questions that have none.
"""

import argparse
import asyncio
import logging
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from qbank_server.db import AsyncSessionLocal, QuestionStore
from qbank_server.embeddings.embedder import Embedder
from qbank_server.ingest import load_embedding_csv


async def update_from_csv(path: str) -> None:
    print(f"Reading embeddings from {path}...")
    embeddings = load_embedding_csv(path)
    print(f"Parsed {len(embeddings)} vectors.")

    async with AsyncSessionLocal() as session:
        store = QuestionStore(session)
        updated = await store.update_embeddings(embeddings)
        await store.commit()

    print(f"Updated {updated} questions ({len(embeddings) - updated} ids not found).")


async def generate_missing(batch_size: int) -> None:
    embedder = Embedder()

    async with AsyncSessionLocal() as session:
        store = QuestionStore(session)
        corpus = await store.list_questions(include_embeddings=True)
        missing = [q for q in corpus if not q.has_embedding]
        if not missing:
            print("Every question already has an embedding.")
            return

        print(f"Embedding {len(missing)} questions (batch size {batch_size})...")
        for start in range(0, len(missing), batch_size):
            batch = missing[start : start + batch_size]
            vectors = await embedder.embed_questions(batch, batch_size=batch_size)
            await store.update_embeddings(vectors)
            # Commit per batch so an interrupted run keeps its progress
            await store.commit()
            print(f"  {start + len(batch)}/{len(missing)}")

    print("Done.")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--csv", help="CSV file of exported embeddings")
    source.add_argument("--generate", action="store_true", help="compute missing embeddings")
    parser.add_argument("--batch-size", type=int, default=20)
    args = parser.parse_args()

    if args.csv:
        asyncio.run(update_from_csv(args.csv))
    else:
        asyncio.run(generate_missing(args.batch_size))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
