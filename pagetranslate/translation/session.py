"""
Page Translation Session

The host-side view of translating one document:
- dispatch_batch() sends ordered texts through the batch dispatcher
- apply_results() writes translations back through the mutation tracker
- restore() reverts every applied unit

A session is built per document and discarded after restore().
"""

from typing import Callable, List, Optional, Sequence

from pagetranslate.ai.exceptions import InvalidRequest
from pagetranslate.ai.providers import TranslationClient
from pagetranslate.logger import get_logger
from pagetranslate.structures import (
    AUTO_LANGUAGE,
    BatchRequest,
    BatchResponse,
    TextUnit,
    TranslationRequest,
)
from pagetranslate.translation.dispatcher import dispatch_batch
from pagetranslate.translation.progress import ProgressSink
from pagetranslate.translation.tracker import MutationTracker

logger = get_logger(__name__)

# Bounds for translating a single text selection
MIN_SELECTION_LENGTH = 2
MAX_SELECTION_LENGTH = 500


class PageTranslationSession:
    """Coordinates dispatch, apply and restore for one document."""

    def __init__(
        self,
        translator: TranslationClient,
        target_lang: str,
        source_lang: str = AUTO_LANGUAGE,
        concurrency: int = 500,
        progress_sink: Optional[ProgressSink] = None,
    ):
        self.translator = translator
        self.target_lang = target_lang
        self.source_lang = source_lang or AUTO_LANGUAGE
        self.concurrency = concurrency
        self.progress_sink = progress_sink
        self.tracker = MutationTracker()
        self._translating = False

    @property
    def is_translating(self) -> bool:
        return self._translating

    async def dispatch_batch(
        self,
        request: BatchRequest,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> BatchResponse:
        return await dispatch_batch(self.translator, request, cancel_check=cancel_check)

    def apply_results(self, units: Sequence[TextUnit], results: Sequence[Optional[str]]) -> int:
        """Apply ``results[i]`` onto ``units[i]``; returns how many units changed."""
        if len(units) != len(results):
            raise ValueError(f"Got {len(results)} results for {len(units)} units")
        return sum(1 for unit, text in zip(units, results) if self.tracker.apply(unit, text))

    async def translate_units(
        self,
        units: Sequence[TextUnit],
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> int:
        """
        Translate every attached, not yet translated unit and apply the results.

        A call made while another one is running returns 0 without doing anything.

        Returns:
            Number of units whose text was replaced
        """
        if self._translating:
            logger.debug("Translation already in progress; ignoring request")
            return 0

        pending: List[TextUnit] = [
            unit for unit in units
            if unit.attached and not self.tracker.is_translated(unit) and unit.current_text.strip()
        ]
        if not pending:
            return 0

        self._translating = True
        try:
            response = await self.dispatch_batch(
                BatchRequest(
                    texts=[unit.current_text.strip() for unit in pending],
                    target_lang=self.target_lang,
                    source_lang=self.source_lang,
                    concurrency=self.concurrency,
                    progress_sink=self.progress_sink,
                ),
                cancel_check=cancel_check,
            )
            applied = self.apply_results(pending, response.results)
        finally:
            self._translating = False

        logger.info(f"Applied {applied}/{len(pending)} translations")
        return applied

    async def translate_text(self, text: str) -> str:
        """Translate one short text selection."""
        text = (text or "").strip()
        if not MIN_SELECTION_LENGTH <= len(text) <= MAX_SELECTION_LENGTH:
            raise InvalidRequest(
                f"Selection must be between {MIN_SELECTION_LENGTH} and "
                f"{MAX_SELECTION_LENGTH} characters",
                code="selection_length",
                details={"length": len(text)},
            )
        return await self.translator.atranslate(
            TranslationRequest(text=text, target_lang=self.target_lang, source_lang=self.source_lang)
        )

    def restore(self) -> int:
        """Revert every applied unit to its original text."""
        return self.tracker.restore_all()
