from datetime import datetime, timedelta, timezone

import pytest

from practice import memory
from questions.schemas import PracticeQuestion

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def q(text: str = "Capital of France?") -> PracticeQuestion:
    return PracticeQuestion(id=1, question=text, options=["Paris", "Rome"], correct_answer=["Paris"])


def test_good_moves_up_one_box_and_schedules():
    deck: dict = {}
    card = memory.rate(deck, q(), "good", NOW)
    assert card.box == 2
    assert card.streak == 1
    assert card.due_at == NOW + timedelta(days=1)
    assert len(deck) == 1


def test_easy_moves_up_two_boxes_and_caps():
    deck: dict = {}
    memory.rate(deck, q(), "easy", NOW)
    memory.rate(deck, q(), "easy", NOW)
    card = memory.rate(deck, q(), "easy", NOW)
    assert card.box == memory.MAX_BOX
    assert card.due_at == NOW + timedelta(days=14)


def test_again_resets_and_counts_a_lapse():
    deck: dict = {}
    memory.rate(deck, q(), "easy", NOW)
    card = memory.rate(deck, q(), "again", NOW)
    assert card.box == 1
    assert card.lapses == 1
    assert card.streak == 0
    assert card.due_at == NOW


def test_hard_moves_down_but_not_below_first_box():
    deck: dict = {}
    card = memory.rate(deck, q(), "hard", NOW)
    assert card.box == 1
    memory.rate(deck, q(), "easy", NOW)
    card = memory.rate(deck, q(), "hard", NOW)
    assert card.box == 2


def test_unknown_rating_is_rejected():
    with pytest.raises(ValueError):
        memory.rate({}, q(), "meh", NOW)


def test_fingerprint_ignores_option_order_and_case():
    a = q()
    b = PracticeQuestion(id=9, question="capital of france?", options=["Rome", "Paris"], correct_answer=["Paris"])
    assert memory.fingerprint(a) == memory.fingerprint(b)
    assert memory.fingerprint(a) != memory.fingerprint(q("Capital of Italy?"))


def test_due_cards_oldest_first_and_limited():
    deck: dict = {}
    memory.rate(deck, q("one"), "again", NOW - timedelta(hours=2))
    memory.rate(deck, q("two"), "again", NOW - timedelta(hours=5))
    memory.rate(deck, q("three"), "good", NOW)
    due = memory.due_cards(deck, NOW)
    assert [c.question.question for c in due] == ["two", "one"]
    assert len(memory.due_cards(deck, NOW, limit=1)) == 1
    assert len(memory.due_cards(deck, NOW + timedelta(days=1))) == 3


def test_deck_round_trip_skips_broken_entries():
    deck: dict = {}
    memory.rate(deck, q(), "good", NOW)
    raw = memory.dump_deck(deck)
    raw["broken"] = {"box": "x"}
    loaded = memory.load_deck(raw)
    assert list(loaded) == list(deck)
    assert loaded[next(iter(deck))].due_at == NOW + timedelta(days=1)


def test_restore_puts_card_back_to_snapshot():
    deck: dict = {}
    assert memory.snapshot(deck, q()) is None
    memory.rate(deck, q(), "good", NOW)
    saved = memory.snapshot(deck, q())

    memory.rate(deck, q(), "easy", NOW)
    memory.restore(deck, q(), saved)
    assert deck[memory.fingerprint(q())].box == 2

    memory.restore(deck, q(), None)
    assert deck == {}
