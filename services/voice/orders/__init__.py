"""
Orders Package

Order parsing, catalog resolution and the per-user utterance pipeline.
"""

from services.voice.orders.parser import parse_order, parse_item
from services.voice.orders.resolver import resolve_best_match, search_with_alternatives
from services.voice.orders.pipeline import (
    PipelineState,
    OrderResolution,
    VoiceOrderPipeline,
)

__all__ = [
    'parse_order',
    'parse_item',
    'resolve_best_match',
    'search_with_alternatives',
    'PipelineState',
    'OrderResolution',
    'VoiceOrderPipeline',
]
