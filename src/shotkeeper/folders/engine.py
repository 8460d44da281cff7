"""
Smart Folder Classification Engine

Turns recognized screenshot text into smart folder memberships by
case-insensitive keyword and regex matching against a per-folder
minimum-match threshold. Also extracts short matched snippets and
highlight ranges for display.

Everything here is a pure function of its arguments: no I/O, no shared
mutable state, so it can run on any thread.

Malformed patterns:
    Patterns go through compile_pattern(), which returns None instead of
    raising when the expression doesn't compile. A None pattern counts as
    zero hits and contributes zero highlight spans; the rest of the
    keywords, patterns and items are still evaluated.
"""

import logging
import re
from collections.abc import Iterable, Sequence

from shotkeeper.folders.kinds import FolderKind
from shotkeeper.folders.models import (
    ClassifiableItem,
    FolderDefinition,
    FolderResult,
    HighlightSpan,
)

logger = logging.getLogger(__name__)

# Maximum number of lines returned by matched_snippets()
MAX_SNIPPETS = 3


def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """
    Compile a folder pattern case-insensitively.

    Args:
        pattern: Regular expression source

    Returns:
        Compiled pattern, or None if the expression is malformed
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.debug(f"Ignoring malformed pattern {pattern!r}: {e}")
        return None


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str] | None]:
    return [compile_pattern(pattern) for pattern in patterns]


def matches_pattern(text: str, pattern: str) -> bool:
    """True if the pattern compiles and matches anywhere in text."""
    compiled = compile_pattern(pattern)
    return compiled is not None and compiled.search(text) is not None


def _contains_keyword(lowercased_text: str, keyword: str) -> bool:
    # An empty keyword never matches
    return bool(keyword) and keyword.lower() in lowercased_text


def count_hits(
    text: str,
    keywords: Sequence[str],
    compiled_patterns: Sequence[re.Pattern[str] | None],
) -> int:
    """
    Count keyword hits plus pattern hits for one body of text.

    Each keyword counts at most once however often it occurs; each pattern
    counts once if it matches anywhere in the original (not lower-cased)
    text.
    """
    lowercased_text = text.lower()

    keyword_hits = sum(1 for keyword in keywords if _contains_keyword(lowercased_text, keyword))
    pattern_hits = sum(
        1 for compiled in compiled_patterns if compiled is not None and compiled.search(text)
    )

    return keyword_hits + pattern_hits


def find_matching_identifiers(
    items: Iterable[ClassifiableItem],
    keywords: Sequence[str],
    patterns: Sequence[str],
    minimum_matches: int = 1,
) -> list[str]:
    """
    Return the identifiers of items whose text reaches the threshold.

    Items without text are skipped. Order follows the input; an identifier
    that appears more than once in the input is reported once.

    Args:
        items: Items to test, in display order
        keywords: Case-insensitive literal substrings
        patterns: Case-insensitive regular expressions
        minimum_matches: Required keyword hits + pattern hits (at least 1)

    Returns:
        Matching identifiers
    """
    compiled_patterns = compile_patterns(patterns)
    threshold = max(minimum_matches, 1)

    matching: list[str] = []
    seen: set[str] = set()

    for item in items:
        if not item.text or item.identifier in seen:
            continue

        if count_hits(item.text, keywords, compiled_patterns) >= threshold:
            matching.append(item.identifier)
            seen.add(item.identifier)

    return matching


def evaluate_definition(
    items: Sequence[ClassifiableItem],
    definition: FolderDefinition,
) -> FolderResult:
    """Run one definition over all items."""
    identifiers = find_matching_identifiers(
        items,
        keywords=definition.keywords,
        patterns=definition.patterns,
        minimum_matches=definition.minimum_matches,
    )
    return FolderResult(definition=definition, matching_identifiers=tuple(identifiers))


def classify(
    items: Iterable[ClassifiableItem],
    built_in_definitions: Sequence[FolderDefinition],
    custom_definitions: Sequence[FolderDefinition] = (),
) -> list[FolderResult]:
    """
    Compute the matching items for every folder.

    Built-in definitions are evaluated as given. Custom definitions are
    evaluated keyword-only with a threshold of 1, in the order supplied; a
    custom folder whose name is already in the results (built-in or an
    earlier custom folder) is dropped.

    Args:
        items: Items to classify, in display order
        built_in_definitions: Built-in folder definitions, in display order
        custom_definitions: User-defined folder definitions

    Returns:
        Built-in results followed by the surviving custom results
    """
    items = list(items)
    results = [evaluate_definition(items, definition) for definition in built_in_definitions]
    names = {result.name for result in results}

    for definition in custom_definitions:
        if definition.name in names:
            logger.debug(f"Skipping custom folder {definition.name!r}: name already in results")
            continue

        identifiers = find_matching_identifiers(
            items,
            keywords=definition.keywords,
            patterns=(),
            minimum_matches=1,
        )
        results.append(FolderResult(definition=definition, matching_identifiers=tuple(identifiers)))
        names.add(definition.name)

    return results


def matches_kind(text: str | None, kind: FolderKind) -> bool:
    """True if text reaches the threshold of a built-in folder."""
    if not text:
        return False
    hits = count_hits(text, kind.keywords, compile_patterns(kind.patterns))
    return hits >= kind.minimum_matches


def folders_containing(text: str | None) -> list[FolderKind]:
    """
    Built-in folders whose threshold the text meets, in declaration order.

    Custom folders are not considered.
    """
    if not text:
        return []
    return [kind for kind in FolderKind if matches_kind(text, kind)]


def matched_snippets(
    text: str | None,
    keywords: Sequence[str],
    patterns: Sequence[str],
    limit: int = MAX_SNIPPETS,
) -> list[str]:
    """
    Return up to `limit` lines of text that contain a keyword or pattern match.

    Blank lines are ignored; returned lines are stripped and kept in their
    original order.
    """
    if not text:
        return []

    compiled_patterns = [p for p in compile_patterns(patterns) if p is not None]
    snippets: list[str] = []

    for line in text.splitlines():
        if len(snippets) >= limit:
            break

        stripped = line.strip()
        if not stripped:
            continue

        lowercased_line = line.lower()
        has_keyword = any(_contains_keyword(lowercased_line, keyword) for keyword in keywords)
        if has_keyword or any(p.search(line) for p in compiled_patterns):
            snippets.append(stripped)

    return snippets


def highlight_ranges(text: str | None, definition: FolderDefinition | FolderKind) -> list[HighlightSpan]:
    """
    Character ranges of every keyword and pattern match in text.

    For each keyword in order, occurrences are found left to right with the
    scan resuming at the end of the previous occurrence, so one keyword never
    yields overlapping spans. Different keywords are scanned independently
    and may overlap each other. Pattern spans follow, grouped by pattern.
    The result is not sorted; sort by start for display.

    Args:
        text: Text to search
        definition: Folder definition, or a built-in kind

    Returns:
        Keyword spans (grouped by keyword) followed by pattern spans
        (grouped by pattern)
    """
    if not text:
        return []

    spans: list[HighlightSpan] = []

    for keyword in definition.keywords:
        if not keyword:
            continue
        literal = re.compile(re.escape(keyword), re.IGNORECASE)
        spans.extend(HighlightSpan(m.start(), m.end()) for m in literal.finditer(text))

    for compiled in compile_patterns(definition.patterns):
        if compiled is None:
            continue
        spans.extend(HighlightSpan(m.start(), m.end()) for m in compiled.finditer(text))

    return spans
