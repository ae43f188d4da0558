"""
Mutation Tracker

Applies translated text onto TextUnits in place and remembers each unit's
original text exactly once, so that restore_all() can put it back.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from pagetranslate.logger import get_logger
from pagetranslate.structures import TextUnit

logger = get_logger(__name__)


@dataclass
class TranslationState:
    """Per-unit bookkeeping; original is set on first apply and never overwritten."""
    is_translated: bool = False
    original: Optional[str] = None


class MutationTracker:
    """
    Owns the original-text map for one translation session.

    Entries are keyed by the TextUnit object itself: ``TextUnit.id`` is only a
    position within one batch, and later batches of the same session reuse it.

    apply() and restore_all() never suspend, so within one event loop they
    cannot interleave.
    """

    def __init__(self):
        self._states: Dict[TextUnit, TranslationState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, unit: TextUnit) -> bool:
        return unit in self._states

    def is_translated(self, unit: TextUnit) -> bool:
        state = self._states.get(unit)
        return bool(state and state.is_translated)

    def original_of(self, unit: TextUnit) -> Optional[str]:
        state = self._states.get(unit)
        return state.original if state else None

    def apply(self, unit: TextUnit, translated_text: Optional[str]) -> bool:
        """
        Replace the unit's visible text with ``translated_text``.

        Nothing happens for a None/empty translation or a detached unit.

        Returns:
            True if the unit was updated
        """
        if not translated_text or not unit.attached:
            return False

        state = self._states.get(unit)
        if state is None:
            state = TranslationState(original=unit.current_text)
            self._states[unit] = state

        state.is_translated = True
        unit.write(translated_text)
        return True

    def restore_all(self) -> int:
        """
        Write every stored original back onto its unit, then forget all state.

        Detached units are skipped. An empty tracker is a no-op.

        Returns:
            Number of units restored
        """
        restored = 0
        for unit, state in self._states.items():
            if unit.attached and state.original is not None:
                unit.write(state.original)
                restored += 1

        if self._states:
            logger.info(f"Restored {restored}/{len(self._states)} units")
        self._states.clear()
        return restored
