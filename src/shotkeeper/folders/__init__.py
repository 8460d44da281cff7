"""
Smart folders for Shotkeeper

Keyword/regex classification of recognized screenshot text into the five
built-in folders and any user-defined keyword folders.
"""

from shotkeeper.folders.engine import (
    classify,
    compile_pattern,
    find_matching_identifiers,
    folders_containing,
    highlight_ranges,
    matched_snippets,
)
from shotkeeper.folders.kinds import FolderKind, built_in_definitions
from shotkeeper.folders.models import ClassifiableItem, FolderDefinition, FolderResult, HighlightSpan
from shotkeeper.folders.service import SmartFolderEngine

__all__ = [
    "ClassifiableItem",
    "FolderDefinition",
    "FolderKind",
    "FolderResult",
    "HighlightSpan",
    "SmartFolderEngine",
    "built_in_definitions",
    "classify",
    "compile_pattern",
    "find_matching_identifiers",
    "folders_containing",
    "highlight_ranges",
    "matched_snippets",
]
