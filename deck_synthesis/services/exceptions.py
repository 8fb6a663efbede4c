"""
Exception hierarchy for the synthesis pipeline.

Data problems in the token stream (malformed lines, invalid geometry,
deltas addressing missing slides) are recovered locally and never raise.
Only the cases a caller has to act on are exceptions.
"""

from typing import Optional, Dict, Any


class SynthesisError(Exception):
    """Base exception for all pipeline errors"""

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self):
        parts = [super().__str__()]
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)


# === Design exceptions ===

class DesignError(SynthesisError):
    """Per-slide design stream error"""
    pass


class DesignSafetyRefusal(DesignError):
    """Model refused to design the slide (terminal error record)"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.refusal_message = message


class DesignStreamAborted(DesignError):
    """Caller aborted an in-flight design stream"""
    pass


# === Export exceptions ===

class ExportError(SynthesisError):
    """Deck layout/export error"""
    pass


class ExportCancelledError(ExportError):
    """Export cancelled by the caller"""

    def __init__(self, message: str = "Export cancelled", **kwargs):
        super().__init__(message, **kwargs)


class EmptyDeckError(ExportError):
    """Nothing to lay out"""

    def __init__(self, message: str = "No slides to export", **kwargs):
        super().__init__(message, **kwargs)


# === Configuration exceptions ===

class ConfigurationError(SynthesisError):
    """Configuration error"""
    pass


class InvalidConfigError(ConfigurationError):
    """Invalid configuration value"""
    pass
