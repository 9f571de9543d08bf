"""
Bulk Ingest

Offline, single-writer loading of question files into the record store.

Pipeline
--------
1. Read every `*-data.json` file under the data directory.
2. Validate each record; invalid records are reported, not fatal.
3. Derive `question_id` from year, paper code and question number.
4. Insert questions idempotently (existing ids are skipped).
5. Clear and rebuild subject / chapter / subtopic aggregates from the
   full stored corpus.

Also provides the CSV reader used to back-fill `vector_embedding`.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError

from .db.question_store import QuestionStore
from .questions.aggregates import build_aggregates
from .questions.models import Question, QuestionType

logger = logging.getLogger("qbank.ingest")

DATA_FILE_GLOB = "*-data.json"

_WHITESPACE = re.compile(r"\s+")


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

class RawQuestion(BaseModel):
    """
    One question record as it appears in a source data file.

    Types are strict: a year given as "2020" is a validation error, not a
    coercion.
    """

    year: StrictInt
    paper_code: StrictStr
    question_no: StrictStr
    question_text: StrictStr = Field(..., min_length=1)
    options: Optional[List[StrictStr]] = None
    subject: StrictStr
    chapter: StrictStr
    subtopic: StrictStr
    theoretical_practical: QuestionType
    marks: StrictInt
    provenance: StrictStr
    confidence: StrictFloat | StrictInt
    correct_answer: StrictStr
    has_diagram: StrictBool

    model_config = ConfigDict(extra="ignore")

    def to_question(self) -> Question:
        return Question(
            question_id=compute_question_id(self.year, self.paper_code, self.question_no),
            question_no=self.question_no,
            paper_code=self.paper_code,
            question_text=self.question_text,
            options=self.options or None,
            correct_answer=self.correct_answer,
            year=self.year,
            marks=self.marks,
            subject=self.subject,
            chapter=self.chapter,
            subtopic=self.subtopic,
            theoretical_practical=self.theoretical_practical,
            has_diagram=self.has_diagram,
            provenance=self.provenance,
            confidence=float(self.confidence),
        )


def compute_question_id(year: int, paper_code: str, question_no: str) -> str:
    """`2020-CS-Q.12` becomes `2020-cs-q.12`; whitespace runs become `-`."""
    return _WHITESPACE.sub("-", f"{year}-{paper_code}-{question_no}").lower()


class IngestReport(BaseModel):
    files: int = 0
    read: int = 0
    inserted: int = 0
    skipped: int = 0
    aggregates: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------

def _describe_errors(exc: ValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def parse_records(
    records: Sequence[object],
    source: str,
    report: IngestReport,
) -> List[Question]:
    questions: List[Question] = []
    for position, record in enumerate(records):
        if not isinstance(record, dict):
            report.errors.append(f"{source}[{position}]: record is not an object")
            continue
        try:
            questions.append(RawQuestion.model_validate(record).to_question())
        except ValidationError as exc:
            label = record.get("question_no", position)
            report.errors.append(f"{source}, question {label}: {_describe_errors(exc)}")
    return questions


def load_data_files(data_dir: str | Path, report: Optional[IngestReport] = None) -> List[Question]:
    """
    Read and validate every data file. Files that cannot be parsed are
    reported and skipped.
    """
    report = report if report is not None else IngestReport()
    questions: List[Question] = []

    for path in sorted(Path(data_dir).glob(DATA_FILE_GLOB)):
        report.files += 1
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            report.errors.append(f"{path.name}: {exc}")
            logger.error("Could not read %s: %s", path.name, exc)
            continue

        if not isinstance(data, list):
            report.errors.append(f"{path.name}: file does not contain an array")
            continue

        parsed = parse_records(data, path.name, report)
        logger.info("%s: %d/%d valid", path.name, len(parsed), len(data))
        questions.extend(parsed)

    report.read = len(questions)
    return questions


# ---------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------

async def ingest_questions(
    store: QuestionStore,
    questions: Sequence[Question],
    report: Optional[IngestReport] = None,
) -> IngestReport:
    """
    Insert `questions` idempotently, then rebuild aggregates from the whole
    stored corpus so counts never drift from the question table.
    """
    report = report if report is not None else IngestReport(read=len(questions))

    report.inserted = await store.insert_questions(questions)
    report.skipped = len(questions) - report.inserted

    corpus = await store.list_questions()
    report.aggregates = await store.rebuild_aggregates(build_aggregates(corpus))
    await store.commit()

    logger.info(
        "Ingest complete: %d inserted, %d already present, aggregates=%s",
        report.inserted,
        report.skipped,
        report.aggregates,
    )
    return report


async def run_ingest(store: QuestionStore, data_dir: str | Path) -> IngestReport:
    report = IngestReport()
    questions = load_data_files(data_dir, report)
    return await ingest_questions(store, questions, report)


# ---------------------------------------------------------------------
# Embedding CSV
# ---------------------------------------------------------------------

def load_embedding_csv(path: str | Path) -> Dict[str, List[float]]:
    """
    Read `{question_id: vector}` from an exported CSV.

    The first column holds the question id and the last column a JSON
    array. The header row is skipped, quoted fields may span lines, and
    malformed rows are ignored.
    """
    embeddings: Dict[str, List[float]] = {}

    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        next(reader, None)
        for row in reader:
            if len(row) < 2 or not row[0].strip():
                continue
            try:
                vector = json.loads(row[-1])
            except json.JSONDecodeError:
                continue
            if isinstance(vector, list) and vector and all(
                isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector
            ):
                embeddings[row[0].strip()] = [float(x) for x in vector]

    return embeddings
