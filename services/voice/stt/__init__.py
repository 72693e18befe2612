"""
STT Package

Transcript correction cache, lookup and learning modules.
"""

from services.voice.stt.cache import CorrectionCache
from services.voice.stt.corrections import CorrectionStore, validate_correction
from services.voice.stt.learning_system import FeedbackLog, FeedbackSample

__all__ = [
    'CorrectionCache',
    'CorrectionStore',
    'validate_correction',
    'FeedbackLog',
    'FeedbackSample',
]
