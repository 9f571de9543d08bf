"""
Subject Catalog

The fixed subject taxonomy shown in menus and returned by `/v1/subjects`.
It is process-wide, read-only configuration: the tuple and its entries are
immutable, and nothing mutates them at runtime.
"""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SubjectInfo(BaseModel):
    name: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1)
    icon: str
    description: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    def public_view(self) -> dict:
        return {
            "name": self.name,
            "fileName": self.file_name.removesuffix(".json"),
            "description": self.description,
            "icon": self.icon,
        }


SUBJECTS: Tuple[SubjectInfo, ...] = (
    SubjectInfo(
        name="Algorithms",
        file_name="Algorithms.json",
        icon="⚡",
        description="Sorting, searching, graph algorithms, and complexity analysis",
    ),
    SubjectInfo(
        name="Programming and Data Structures",
        file_name="Programming_and_Data_Structures.json",
        icon="🗂️",
        description="Arrays, trees, graphs, stacks, queues, and linked lists",
    ),
    SubjectInfo(
        name="Operating System",
        file_name="Operating_System.json",
        icon="💻",
        description="Process management, memory management, and file systems",
    ),
    SubjectInfo(
        name="Databases",
        file_name="Databases.json",
        icon="🗄️",
        description="SQL, normalization, transactions, and indexing",
    ),
    SubjectInfo(
        name="Computer Networks",
        file_name="Computer_Networks.json",
        icon="🌐",
        description="OSI model, TCP/IP, routing, and network security",
    ),
    SubjectInfo(
        name="Computer Organization and Architecture",
        file_name="Computer_Organization_and_Architecture.json",
        icon="🖥️",
        description="CPU design, memory hierarchy, and instruction sets",
    ),
    SubjectInfo(
        name="Theory of Computation",
        file_name="Theory_of_Computation.json",
        icon="📐",
        description="Automata, formal languages, and computational complexity",
    ),
    SubjectInfo(
        name="Compiler Design",
        file_name="Compiler_Design.json",
        icon="🔧",
        description="Lexical analysis, parsing, and code generation",
    ),
    SubjectInfo(
        name="Digital Logic",
        file_name="Digital_Logic.json",
        icon="⚙️",
        description="Boolean algebra, logic gates, and sequential circuits",
    ),
    SubjectInfo(
        name="Engineering Mathematics",
        file_name="Engineering_Mathematics.json",
        icon="📊",
        description="Calculus, probability, linear algebra, and discrete math",
    ),
    SubjectInfo(
        name="General Aptitude",
        file_name="General_Aptitude.json",
        icon="🎯",
        description="Verbal and numerical ability questions",
    ),
)


def find_subject(name: str) -> Optional[SubjectInfo]:
    """Case-insensitive lookup by subject name."""
    wanted = name.strip().lower()
    for subject in SUBJECTS:
        if subject.name.lower() == wanted:
            return subject
    return None
