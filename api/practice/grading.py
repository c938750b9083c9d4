"""
Per-type answer rules: how a click changes the selection, and whether a
selection is correct.
"""

from __future__ import annotations

from questions.schemas import PracticeQuestion, normalize_type

MULTIPLE_CHOICE = "multiple-choice"
TRUE_FALSE = "true-false"
MULTIPLE_RESPONSE = "multiple-response"
MATCHING = "matching"
COMPLETION = "completion"

KNOWN_TYPES = {MULTIPLE_CHOICE, TRUE_FALSE, MULTIPLE_RESPONSE, MATCHING, COMPLETION}

# Older question sets still carry these.
LEGACY_TYPES = {"fill-in-blank": COMPLETION}

# Types where every click toggles one option instead of replacing the selection.
TOGGLE_TYPES = {MULTIPLE_RESPONSE, MATCHING}

HINTS = {
    MULTIPLE_CHOICE: "Choose the single best answer.",
    TRUE_FALSE: "Choose True or False.",
    MULTIPLE_RESPONSE: "This question may have several correct answers. Select all that apply.",
    MATCHING: "The pairs are already arranged. Confirm every pair.",
    COMPLETION: "Choose the word or phrase that fills the blank.",
}


def canonical_type(raw: str) -> str:
    kind = normalize_type(raw)
    return LEGACY_TYPES.get(kind, kind)


def allows_multiple(question: PracticeQuestion) -> bool:
    return canonical_type(question.type) in TOGGLE_TYPES


def apply_selection(question: PracticeQuestion, selected: list[str], option: str) -> list[str]:
    if allows_multiple(question):
        if option in selected:
            return [s for s in selected if s != option]
        return [*selected, option]
    return [option]


def is_correct(question: PracticeQuestion, selected: list[str]) -> bool:
    correct = question.correct_answer
    return len(selected) == len(correct) and all(answer in correct for answer in selected)


def option_state(question: PracticeQuestion, option: str, selected: list[str], checked: bool) -> str:
    """
    Rendering state of one option: correct / wrong once checked,
    selected / idle before.
    """
    is_selected = option in selected
    if checked:
        if option in question.correct_answer:
            return "correct"
        if is_selected:
            return "wrong"
        return "idle"
    return "selected" if is_selected else "idle"


def hint(question: PracticeQuestion) -> str:
    return HINTS.get(canonical_type(question.type), HINTS[MULTIPLE_CHOICE])
