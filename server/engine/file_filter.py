"""
Centralized file filtering for the engine.

Decides whether a file should be analyzed, based on:
- Vendor/generated directory exclusions (vendor, node_modules, caches, etc.)
- Extra directory names from configuration
- PHP extensions that hold no analyzable declarations (Blade templates)

Usage:
    from engine.file_filter import filter_files

    files = filter_files(candidates, extra_excludes=config.exclude_dirs)
"""

import re
from functools import lru_cache
from typing import FrozenSet, Iterable, List, Optional


# ============================================================================
# VENDOR / GENERATED DIRECTORY EXCLUSIONS
# ============================================================================
# These directories are universally excluded from analysis.
# They contain third-party code, build artifacts, or generated files.
EXCLUDED_DIRS: FrozenSet[str] = frozenset([
    # Package managers / dependencies
    "vendor",
    "vendors",
    "node_modules",
    "bower_components",

    # Build output
    "dist",
    "build",
    "out",

    # Version control
    ".git",
    ".svn",
    ".hg",

    # IDE / editor
    ".idea",
    ".vscode",

    # Cache / temp
    ".cache",
    ".phpunit.cache",
    ".php-cs-fixer.cache",
    "cache",
    "coverage",
    "htmlcov",

    # Generated code markers
    "generated",
    "__generated__",
])

# Compiled regex for efficient directory matching
# Pattern: /dirname/ or /dirname at end of path (requires full directory name match)
_EXCLUDED_DIR_PATTERN = re.compile(
    r'[/\\](?:' + '|'.join(re.escape(d) for d in EXCLUDED_DIRS) + r')(?:[/\\]|$)',
    re.IGNORECASE
)

# Templates compiled by a framework, not plain PHP declarations
EXCLUDED_SUFFIXES: FrozenSet[str] = frozenset([
    ".blade.php",
])


@lru_cache(maxsize=4096)
def is_excluded_path(file_path: str) -> bool:
    """
    Check if a file path is in an excluded directory.

    Args:
        file_path: Absolute or relative path to check

    Returns:
        True if the file should be excluded, False otherwise
    """
    normalized = file_path.replace('\\', '/')
    return bool(_EXCLUDED_DIR_PATTERN.search(normalized))


def has_excluded_suffix(file_path: str) -> bool:
    lowered = file_path.lower()
    return any(lowered.endswith(suffix) for suffix in EXCLUDED_SUFFIXES)


def _in_extra_excludes(file_path: str, extra_excludes: Iterable[str]) -> bool:
    parts = {part.lower() for part in re.split(r'[/\\]', file_path)[:-1]}
    return any(name.lower() in parts for name in extra_excludes)


def should_analyze_file(file_path: str, extra_excludes: Optional[Iterable[str]] = None) -> bool:
    """Check whether a single file should be analyzed."""
    if is_excluded_path(file_path) or has_excluded_suffix(file_path):
        return False
    if extra_excludes and _in_extra_excludes(file_path, extra_excludes):
        return False
    return True


def filter_files(files: Iterable[str], extra_excludes: Optional[Iterable[str]] = None) -> List[str]:
    """
    Filter a list of files to only those that should be analyzed.

    Args:
        files: List of file paths
        extra_excludes: Additional directory names to skip

    Returns:
        Filtered list of files that should be analyzed
    """
    extra = list(extra_excludes or [])
    return [f for f in files if should_analyze_file(f, extra)]


def clear_caches():
    """Clear all LRU caches. Useful for testing."""
    is_excluded_path.cache_clear()
