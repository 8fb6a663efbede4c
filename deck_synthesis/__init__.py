"""
Deck synthesis: turns streamed model output into slide decks.

Slides arrive as deltas against the current deck and are reconciled into
a new snapshot; each slide is then laid out from a per-slide design stream,
or from rule-based templates when no usable design is available.
"""

__version__ = "0.1.0"
