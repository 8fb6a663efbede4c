"""
Pipeline stages: stream parsing, reconciliation, validation and layout.
"""
