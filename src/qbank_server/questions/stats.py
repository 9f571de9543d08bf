"""
Corpus analytics for the stats dashboard and graph explorer.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from .aggregates import ChapterAggregate, SubjectAggregate, SubtopicAggregate
from .models import Question
from .normalization import display_form, normalize


def summarize(
    questions: Sequence[Question],
    subjects: int,
    chapters: int,
    subtopics: int,
) -> Dict[str, Any]:
    years = [q.year for q in questions]
    return {
        "totalQuestions": len(questions),
        "totalSubjects": subjects,
        "totalChapters": chapters,
        "totalSubtopics": subtopics,
        "earliestYear": min(years) if years else None,
        "latestYear": max(years) if years else None,
    }


def _marks_label(marks: int) -> str:
    return f"{marks} Mark" if marks == 1 else f"{marks} Marks"


def _type_label(value: str) -> str:
    if value == "theoretical":
        return "Theoretical"
    if value == "practical":
        return "Practical"
    return "Other"


def _top(counter: Counter, name: str, n: int) -> List[Dict[str, Any]]:
    # most_common keeps first-seen order among equal counts
    return [{name: key, "count": count} for key, count in counter.most_common(n)]


def detailed_stats(questions: Sequence[Question]) -> Dict[str, Any]:
    """
    Distributions over the whole corpus.

    Subtopics are grouped by normalization key so "Binary Trees." and
    "binary trees" count together under one display label.
    """
    years = Counter(q.year for q in questions)
    subjects = Counter(q.subject for q in questions)
    marks = Counter(q.marks for q in questions)
    types = Counter(_type_label(q.theoretical_practical) for q in questions)
    chapters = Counter(q.chapter for q in questions)

    subtopic_counts: Counter = Counter()
    subtopic_labels: Dict[str, str] = {}
    year_subject: Counter = Counter()
    year_subject_subtopic: Counter = Counter()

    for q in questions:
        key = normalize(q.subtopic)
        subtopic_labels.setdefault(key, display_form(q.subtopic))
        subtopic_counts[key] += 1
        year_subject[(q.year, q.subject)] += 1
        year_subject_subtopic[(q.year, q.subject, subtopic_labels[key])] += 1

    comparison: List[Dict[str, Any]] = [
        {"year": str(year), "subject": subject, "count": count}
        for (year, subject), count in year_subject.items()
    ]
    comparison.extend(
        {"year": str(year), "subject": subject, "subtopic": subtopic, "count": count}
        for (year, subject, subtopic), count in year_subject_subtopic.items()
    )

    return {
        "totalQuestions": len(questions),
        "yearDistribution": [
            {"year": str(year), "count": years[year]} for year in sorted(years)
        ],
        "subjectDistribution": _top(subjects, "subject", 10),
        "marksDistribution": [
            {"marks": _marks_label(m), "count": marks[m]} for m in sorted(marks)
        ],
        "theoryPracticalDistribution": [
            {"type": label, "count": count} for label, count in types.items()
        ],
        "chapterDistribution": _top(chapters, "chapter", 15),
        "topSubtopics": [
            {"subtopic": subtopic_labels[key], "count": count}
            for key, count in subtopic_counts.most_common(15)
        ],
        "subjectComparisonData": comparison,
        "allSubjects": sorted(subjects),
        "allSubtopics": sorted(set(subtopic_labels.values())),
    }


def graph_data(
    subjects: Sequence[SubjectAggregate],
    chapters: Sequence[ChapterAggregate],
    subtopics: Sequence[SubtopicAggregate],
    questions: Sequence[Question],
    limit: int = 100,
    exclude_diagrams: bool = False,
    subject: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Nodes and links for the subject -> chapter -> subtopic -> question
    hierarchy.

    `limit` caps the questions sampled before the diagram and subject
    filters apply.
    """
    if subject:
        subjects = [s for s in subjects if s.name == subject]
        chapters = [c for c in chapters if c.subject == subject]
        subtopics = [st for st in subtopics if st.subject == subject]

    sample = list(questions[:limit])
    if exclude_diagrams:
        sample = [q for q in sample if not q.has_diagram]
    if subject:
        sample = [q for q in sample if q.subject == subject]

    nodes: List[Dict[str, Any]] = []
    links: List[Dict[str, str]] = []

    for s in subjects:
        nodes.append({
            "id": f"subject-{s.name}",
            "label": s.name,
            "type": "Subject",
            "questionCount": s.question_count,
        })

    for c in chapters:
        node_id = f"chapter-{c.name}"
        nodes.append({
            "id": node_id,
            "label": c.name,
            "type": "Chapter",
            "subject": c.subject,
            "questionCount": c.question_count,
        })
        links.append({"source": f"subject-{c.subject}", "target": node_id, "type": "HAS_CHAPTER"})

    for st in subtopics:
        node_id = f"subtopic-{st.name}"
        nodes.append({
            "id": node_id,
            "label": st.name,
            "type": "Subtopic",
            "chapter": st.chapter,
            "subject": st.subject,
            "questionCount": st.question_count,
        })
        links.append({"source": f"chapter-{st.chapter}", "target": node_id, "type": "HAS_SUBTOPIC"})

    for q in sample:
        node_id = f"question-{q.question_id}"
        nodes.append({
            "id": node_id,
            "label": q.question_no,
            "type": "Question",
            "subject": q.subject,
            "chapter": q.chapter,
            "subtopic": q.subtopic,
            "year": q.year,
            "marks": q.marks,
            "has_diagram": q.has_diagram,
            "question_text": q.question_text[:100],
        })
        links.append({"source": f"subtopic-{q.subtopic}", "target": node_id, "type": "HAS_QUESTION"})

    return {
        "nodes": nodes,
        "links": links,
        "totalQuestions": len(sample),
    }
