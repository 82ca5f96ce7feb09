"""
Semantic recall for memories and tasks: embedding generation, similarity ranking and backfill.
"""

__version__ = "1.0.0"
