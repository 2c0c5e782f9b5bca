# Fraud Pattern Module
from .catalog import DEFAULT_PATTERN_CATALOG, load_catalog
from .matcher import PatternMatcher

__all__ = ["DEFAULT_PATTERN_CATALOG", "load_catalog", "PatternMatcher"]
