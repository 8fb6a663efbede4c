"""
Environment-driven settings and logging profiles.
"""
