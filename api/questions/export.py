"""
Plain-text and CSV renditions of generated questions.
"""

from __future__ import annotations

import csv
import io
import re

from .schemas import PracticeQuestion

CSV_HEADER = [
    "No.",
    "Question",
    "Option A",
    "Option B",
    "Option C",
    "Option D",
    "Correct answer",
    "Explanation",
]


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def to_text(questions: list[PracticeQuestion]) -> str:
    blocks: list[str] = []
    for q in questions:
        lines = [f"{q.id}. {q.question}"]
        lines.extend(f"{option_letter(i)}. {opt}" for i, opt in enumerate(q.options))
        lines.append(f"Answer: {', '.join(q.correct_answer)}")
        blocks.append("\n".join(lines) + "\n")
    return "\n".join(blocks)


def to_csv(questions: list[PracticeQuestion]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for q in questions:
        options = (q.options + ["", "", "", ""])[:4]
        writer.writerow([q.id, q.question, *options, ", ".join(q.correct_answer), q.explanation or ""])
    return buf.getvalue()


def export_filename(subject: str, stamp: int, ext: str) -> str:
    slug = re.sub(r"[^\w-]+", "-", (subject or "").strip().lower()).strip("-") or "quiz"
    return f"questions-{slug}-{stamp}.{ext}"
