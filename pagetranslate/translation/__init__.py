"""
Translation module - Core translation functionality

This module provides:
- BatchDispatcher: wave-based concurrent translation with progress
- MutationTracker: reversible in-place application of translations
- PageTranslationSession: dispatch/apply/restore for one document
- Streaming adapter: one translation as an OpenAI-style SSE stream
"""

from pagetranslate.translation.progress import BatchProgress, notify_progress
from pagetranslate.translation.dispatcher import BatchDispatcher, BatchJob, dispatch_batch
from pagetranslate.translation.tracker import MutationTracker, TranslationState
from pagetranslate.translation.session import PageTranslationSession
from pagetranslate.translation.streaming import (
    ChatRequest,
    ChatStreamSession,
    parse_chat_request,
    stream_chat_completion,
)
