"""
Data models for slides, deltas, design records and rendered layouts.
"""

from deck_synthesis.models.slide import ActionMarker, LayoutSuggestion, Slide, coerce_slides
from deck_synthesis.models.delta import BatchOperation, Delta, DeltaAction, ReconcileResult
from deck_synthesis.models.design import (
    DesignConfig,
    DesignElement,
    DesignErrorRecord,
    DesignResult,
)
from deck_synthesis.models.layout import Box, LayoutElement, SlideLayout, TextRun

__all__ = [
    'ActionMarker',
    'LayoutSuggestion',
    'Slide',
    'coerce_slides',
    'BatchOperation',
    'Delta',
    'DeltaAction',
    'ReconcileResult',
    'DesignConfig',
    'DesignElement',
    'DesignErrorRecord',
    'DesignResult',
    'Box',
    'LayoutElement',
    'SlideLayout',
    'TextRun',
]
