"""
Column auto-detection for uploaded spreadsheets.

Each target column is scored against every raw header:
- exact match after normalization -> 1.0
- substring containment (either direction) -> 0.8
- otherwise normalized Levenshtein similarity

The best header per column is kept when its score exceeds MATCH_THRESHOLD.
Two target columns may claim the same header; the user confirms the mapping
before anything is imported. Imports that run on an unconfirmed mapping go
through detect_import_mapping, which keeps one optional claimant per header.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import re
import unicodedata

from rendezvous.domain.imports.columns import ImportColumn

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 0.3
EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.8

ImportMapping = Dict[str, str]


def normalize_header(value: Any) -> str:
    """Lowercase, trim, strip accents and collapse ``_``/``-``/whitespace runs."""
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[\s_\-]+", " ", text.lower())
    return text.strip()


def levenshtein_distance(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def similarity_score(header: str, keyword: str) -> float:
    """Score a raw header against one keyword, both normalized first."""
    normalized_header = normalize_header(header)
    normalized_keyword = normalize_header(keyword)
    if not normalized_header or not normalized_keyword:
        return 0.0

    if normalized_header == normalized_keyword:
        return EXACT_SCORE
    if normalized_keyword in normalized_header or normalized_header in normalized_keyword:
        return CONTAINS_SCORE

    longest = max(len(normalized_header), len(normalized_keyword))
    return 1 - levenshtein_distance(normalized_header, normalized_keyword) / longest


def _header_row(grid: Sequence[Sequence[Any]]) -> List[str]:
    if not grid:
        return []
    return ["" if cell is None else str(cell).strip() for cell in grid[0]]


def best_header_for_column(headers: Sequence[str], column: ImportColumn) -> Tuple[Optional[str], float]:
    """Return the highest-scoring header (leftmost on ties) and its score."""
    best_header: Optional[str] = None
    best_score = 0.0
    keywords = column.candidate_keywords()

    for header in headers:
        if not header:
            continue
        score = max(similarity_score(header, keyword) for keyword in keywords)
        if score > best_score:
            best_header, best_score = header, score
            if score == EXACT_SCORE:
                break

    return best_header, best_score


def score_columns(grid: Sequence[Sequence[Any]], columns: Sequence[ImportColumn]) -> Dict[str, Dict[str, Any]]:
    """
    Best candidate header and score for every target column, accepted or not.

    Used to show the user how confident each suggestion is.
    """
    headers = _header_row(grid)
    scores: Dict[str, Dict[str, Any]] = {}
    for column in columns:
        header, score = best_header_for_column(headers, column)
        scores[column.key] = {
            "header": header,
            "score": round(score, 3),
            "accepted": header is not None and score > MATCH_THRESHOLD,
        }
    return scores


def detect_columns(grid: Sequence[Sequence[Any]], columns: Sequence[ImportColumn]) -> ImportMapping:
    """
    Guess which raw header corresponds to each target column.

    Args:
        grid: Parsed spreadsheet; row 0 is the header row
        columns: Target schema

    Returns:
        Mapping of column key to the original header text; unmatched columns are absent
    """
    if not grid:
        return {}

    headers = _header_row(grid)
    mapping: ImportMapping = {}
    for column in columns:
        header, score = best_header_for_column(headers, column)
        if header is not None and score > MATCH_THRESHOLD:
            mapping[column.key] = header
            logger.debug("Mapped column '%s' to header '%s' (score %.2f)", column.key, header, score)
        else:
            logger.debug("No header matched column '%s' (best score %.2f)", column.key, score)

    logger.info("Detected %d/%d columns from %d headers", len(mapping), len(columns), len(headers))
    return mapping


def header_score(header: str, column: ImportColumn) -> float:
    return max(similarity_score(header, keyword) for keyword in column.candidate_keywords())


def drop_shared_optional_headers(mapping: ImportMapping, columns: Sequence[ImportColumn]) -> ImportMapping:
    """
    Remove optional columns whose header another column also claims.

    Used when an import runs on a detected mapping nobody confirmed. Required
    columns always keep their header. Otherwise the highest-scoring claimant
    keeps it, with schema order breaking ties.
    """
    claims: Dict[str, List[Tuple[float, int, ImportColumn]]] = {}
    for order, column in enumerate(columns):
        header = mapping.get(column.key)
        if not header:
            continue
        claims.setdefault(normalize_header(header), []).append((header_score(header, column), order, column))

    resolved = dict(mapping)
    for claimants in claims.values():
        if len(claimants) < 2:
            continue
        claimants.sort(key=lambda claim: (not claim[2].required, -claim[0], claim[1]))
        winner = claimants[0][2]
        for _, _, column in claimants[1:]:
            if column.required:
                continue
            logger.info(
                "Dropped column '%s': header '%s' already mapped to '%s'",
                column.key, resolved[column.key], winner.key,
            )
            del resolved[column.key]
    return resolved


def detect_import_mapping(grid: Sequence[Sequence[Any]], columns: Sequence[ImportColumn]) -> ImportMapping:
    """Detected mapping with each header feeding at most one optional column."""
    return drop_shared_optional_headers(detect_columns(grid, columns), columns)


def missing_required_columns(mapping: ImportMapping, columns: Sequence[ImportColumn]) -> List[ImportColumn]:
    return [
        column for column in columns
        if column.required and not (mapping.get(column.key) or "").strip()
    ]


def resolve_column_indexes(grid: Sequence[Sequence[Any]], mapping: ImportMapping) -> Dict[str, int]:
    """
    Translate a header mapping into cell indexes of the header row.

    Exact header text wins; a normalized comparison is the fallback so a
    mapping edited by hand ("nom" vs "Nom") still resolves. Unresolvable
    entries are left out and read as empty cells.
    """
    headers = _header_row(grid)
    normalized = [normalize_header(header) for header in headers]
    indexes: Dict[str, int] = {}

    for key, header in mapping.items():
        if header is None or not str(header).strip():
            continue
        target = str(header).strip()
        if target in headers:
            indexes[key] = headers.index(target)
            continue
        normalized_target = normalize_header(target)
        if normalized_target in normalized:
            indexes[key] = normalized.index(normalized_target)
        else:
            logger.warning("Mapped header '%s' for column '%s' not found in file", target, key)

    return indexes
