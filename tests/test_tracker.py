from pagetranslate.structures import TextUnit
from pagetranslate.translation.tracker import MutationTracker


def test_apply_then_restore_is_exact():
    original = "  Hallo Welt\n"
    unit = TextUnit(id=0, current_text=original)
    tracker = MutationTracker()

    assert tracker.apply(unit, "Hello world")
    assert unit.current_text == "Hello world"
    assert tracker.is_translated(unit)

    assert tracker.restore_all() == 1
    assert unit.current_text == original
    assert not tracker.is_translated(unit)
    assert len(tracker) == 0


def test_repeated_apply_keeps_first_original():
    unit = TextUnit(id=3, current_text="eins")
    tracker = MutationTracker()

    tracker.apply(unit, "one")
    tracker.apply(unit, "uno")
    tracker.apply(unit, "un")

    assert tracker.original_of(unit) == "eins"
    tracker.restore_all()
    assert unit.current_text == "eins"


def test_none_or_empty_translation_is_ignored():
    unit = TextUnit(id=1, current_text="bonjour")
    tracker = MutationTracker()

    assert not tracker.apply(unit, None)
    assert not tracker.apply(unit, "")
    assert unit.current_text == "bonjour"
    assert unit not in tracker


def test_detached_unit_is_not_touched():
    unit = TextUnit(id=1, current_text="bonjour")
    unit.detach()
    tracker = MutationTracker()

    assert not tracker.apply(unit, "hello")
    assert unit.current_text == "bonjour"


def test_restore_skips_units_detached_after_apply():
    kept = TextUnit(id=0, current_text="a")
    gone = TextUnit(id=1, current_text="b")
    tracker = MutationTracker()
    tracker.apply(kept, "A")
    tracker.apply(gone, "B")
    gone.detach()

    assert tracker.restore_all() == 1
    assert kept.current_text == "a"
    assert gone.current_text == "B"
    assert len(tracker) == 0


def test_restore_empty_tracker_is_noop():
    tracker = MutationTracker()

    assert tracker.restore_all() == 0
    assert tracker.restore_all() == 0


def test_apply_after_restore_captures_fresh_original():
    unit = TextUnit(id=0, current_text="first")
    tracker = MutationTracker()
    tracker.apply(unit, "translated")
    tracker.restore_all()

    unit.write("edited by page")
    tracker.apply(unit, "translated again")

    assert tracker.original_of(unit) == "edited by page"
    tracker.restore_all()
    assert unit.current_text == "edited by page"
    assert unit.original_text == "first"


def test_writes_go_through_setter():
    document = {"p": "Hola"}
    unit = TextUnit(id=0, current_text=document["p"], setter=lambda text: document.__setitem__("p", text))
    tracker = MutationTracker()

    tracker.apply(unit, "Hello")
    assert document["p"] == "Hello"

    tracker.restore_all()
    assert document["p"] == "Hola"


def test_units_sharing_a_position_id_are_tracked_separately():
    first = TextUnit(id=0, current_text="eins")
    second = TextUnit(id=0, current_text="zwei")
    tracker = MutationTracker()

    tracker.apply(first, "one")
    assert not tracker.is_translated(second)
    tracker.apply(second, "two")

    assert tracker.original_of(second) == "zwei"
    assert tracker.restore_all() == 2
    assert (first.current_text, second.current_text) == ("eins", "zwei")
