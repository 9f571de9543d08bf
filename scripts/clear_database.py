"""
Delete every question and all derived aggregates.

Run `scripts/ingest_questions.py` afterwards to reload the corpus.
"""

import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from qbank_server.db import AsyncSessionLocal, QuestionStore


async def main() -> None:
    async with AsyncSessionLocal() as session:
        store = QuestionStore(session)

        print("Clearing questions...")
        deleted = await store.clear_questions()
        print(f"  Deleted {deleted} questions")

        print("Clearing subjects, chapters and subtopics...")
        counts = await store.clear_aggregates()
        for name, count in counts.items():
            print(f"  Deleted {count} {name}")

        await store.commit()

    print("Database cleared.")


if __name__ == "__main__":
    asyncio.run(main())
