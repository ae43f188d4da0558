"""Core data structures shared by the translation clients and the batch pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from pagetranslate.ai.exceptions import InvalidRequest

TextSetter = Callable[[str], None]

AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class TranslationRequest:
    """One text to translate from source_lang into target_lang."""

    text: str
    target_lang: str
    source_lang: str = AUTO_LANGUAGE

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text:
            raise InvalidRequest("Translation text must be a non-empty string.")
        if not isinstance(self.target_lang, str) or not self.target_lang:
            raise InvalidRequest("Target language must be a non-empty string.")
        if not self.source_lang:
            object.__setattr__(self, "source_lang", AUTO_LANGUAGE)


@dataclass(frozen=True)
class TranslationResult:
    """Outcome for one unit of a batch; text is None when the unit failed."""

    index: int
    text: Optional[str]

    @property
    def ok(self) -> bool:
        return self.text is not None


@dataclass(eq=False)
class TextUnit:
    """
    One piece of translatable content with a stable id.

    ``original_text`` is the text the unit was created with and never changes.
    ``setter`` optionally mirrors writes onto a host document element.
    """

    id: int
    current_text: str
    attached: bool = True
    setter: Optional[TextSetter] = None
    original_text: str = field(init=False)

    def __post_init__(self) -> None:
        self.original_text = self.current_text

    def write(self, text: str) -> None:
        self.current_text = text
        if self.setter is not None:
            self.setter(text)

    def detach(self) -> None:
        self.attached = False


@dataclass
class BatchRequest:
    """Host-side request for one batch: ordered texts plus dispatch settings."""

    texts: List[str]
    target_lang: str
    concurrency: int
    source_lang: str = AUTO_LANGUAGE
    progress_sink: Optional[Callable[[int, int], object]] = None


@dataclass
class BatchResponse:
    """One entry per input text, in input order; None marks a failed unit."""

    results: List[Optional[str]]
    cancelled: bool = False
