"""
Load every `*-data.json` file from the data directory into the database
and rebuild the subject / chapter / subtopic aggregates.

Re-running is safe: questions that already exist are skipped.

Usage:
    python scripts/ingest_questions.py [data_dir]
"""

import asyncio
import logging
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from qbank_server.config import settings
from qbank_server.db import AsyncSessionLocal, QuestionStore, init_models
from qbank_server.ingest import run_ingest


async def main(data_dir: str) -> int:
    print("Ensuring schema...")
    await init_models()

    print(f"Reading question files from {data_dir}...")
    async with AsyncSessionLocal() as session:
        report = await run_ingest(QuestionStore(session), data_dir)

    print(f"Files read:        {report.files}")
    print(f"Valid questions:   {report.read}")
    print(f"Inserted:          {report.inserted}")
    print(f"Already present:   {report.skipped}")
    for name, count in report.aggregates.items():
        print(f"{name.capitalize() + ':':<19}{count}")

    if report.errors:
        print(f"\n{len(report.errors)} record(s) rejected:")
        for error in report.errors:
            print(f"  - {error}")

    return 1 if report.errors and not report.read else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    data_dir = sys.argv[1] if len(sys.argv) > 1 else settings.data_dir
    sys.exit(asyncio.run(main(data_dir)))
