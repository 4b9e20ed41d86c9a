"""
Shared helpers: archive extraction, filesystem copies and formatting.
"""
