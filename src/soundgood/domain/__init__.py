"""Domain layer — command variants, catalog records, and identifier rules.

Pure Python, no database or I/O imports.
"""
