"""Path filtering.

Compiles the configured glob list into a predicate over dotted paths. Globs
treat ``.`` as a literal separator and ``*`` as "any sequence of characters";
every pattern must match the whole path.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from enum import StrEnum

_logger = logging.getLogger(__name__)

# Nothing under design.* varies over time, and notifications travel on
# their own channel.
RESERVED_PREFIXES: tuple[str, ...] = ("design.", "notifications.")


class FilterListType(StrEnum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


def glob_to_regex(glob: str) -> re.Pattern[str]:
    """Translate a path glob into a fully anchored regular expression."""
    pattern = glob.replace(".", r"\.").replace("*", ".*")
    regex = re.compile(f"^{pattern}$")
    _logger.debug("Compiled regex=%s from glob=%s", regex.pattern, glob)
    return regex


class PathFilter:
    """Accept/reject predicate over dotted paths.

    Parameters
    ----------
    filter_list_type : FilterListType
        ``include`` accepts a path only if some glob matches it,
        ``exclude`` accepts a path only if no glob matches it.
    filter_list : iterable of str
        Glob patterns, compiled once.
    """

    def __init__(self, filter_list_type: FilterListType | str, filter_list: Iterable[str] = ()) -> None:
        self.filter_list_type = FilterListType(filter_list_type)
        self._regexes = tuple(glob_to_regex(glob) for glob in filter_list)

    def __call__(self, path: str) -> bool:
        if path.startswith(RESERVED_PREFIXES):
            return False

        if self.filter_list_type == FilterListType.INCLUDE:
            return any(regex.match(path) for regex in self._regexes)
        return not any(regex.match(path) for regex in self._regexes)

    def __repr__(self) -> str:
        globs = [regex.pattern for regex in self._regexes]
        return f"PathFilter({self.filter_list_type.value!r}, {globs!r})"


def compile_path_filter(
    filter_list_type: FilterListType | str,
    filter_list: Iterable[str] = (),
) -> Callable[[str], bool]:
    return PathFilter(filter_list_type, filter_list)
