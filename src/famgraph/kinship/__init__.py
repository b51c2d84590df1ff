"""Kinship phrase resolution."""

from .lexicon import Interpretation, LexicalEntry, LexicalPatternTable, default_table
from .resolver import KinshipPhraseResolver, StructuredEvaluator

__all__ = [
    "Interpretation",
    "KinshipPhraseResolver",
    "LexicalEntry",
    "LexicalPatternTable",
    "StructuredEvaluator",
    "default_table",
]
