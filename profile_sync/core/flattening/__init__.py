"""
Profile flattening: field extraction, experience analysis and normalization.
"""

from .experience import ExperienceAnalyzer, ExperienceSummary
from .extractor import FieldExtractor
from .field_paths import FIELD_PATHS, FieldPath
from .normalizer import ProfileNormalizer, normalize

__all__ = [
    "ExperienceAnalyzer",
    "ExperienceSummary",
    "FIELD_PATHS",
    "FieldExtractor",
    "FieldPath",
    "ProfileNormalizer",
    "normalize",
]
