"""
LeakProbe Pattern Matcher - Identifier Extraction Engine
========================================================

Recognizes identifier-bearing storage container names and pulls the
account identifier out of them.

The rule table is plain data (pattern + capture group), so a new leak
source is one more entry in shared.constants.GOOGLE_ID_PATTERNS.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Set, Tuple
import re
import logging

from shared.constants import GOOGLE_ID_PATTERNS

logger = logging.getLogger(__name__)


@dataclass
class ExtractionRule:
    """A single identifier extraction rule"""
    pattern: str
    group: int = 1
    source: str = ""  # Service that creates the matching storage

    # Compiled regex (cached)
    _compiled_pattern: Optional[re.Pattern] = field(default=None, repr=False, compare=False)
    _compile_failed: bool = field(default=False, repr=False, compare=False)

    def get_compiled_pattern(self) -> Optional[re.Pattern]:
        """Get compiled regex pattern"""
        if self._compiled_pattern is None and not self._compile_failed:
            try:
                self._compiled_pattern = re.compile(self.pattern)
            except re.error as e:
                logger.error(f"Failed to compile extraction rule {self.pattern!r}: {e}")
                self._compile_failed = True
                return None
        return self._compiled_pattern

    def extract(self, name: str) -> Optional[str]:
        """Return the identifier captured from ``name``, or None"""
        compiled = self.get_compiled_pattern()
        if compiled is None:
            return None

        match = compiled.search(name)
        if not match:
            return None

        try:
            value = match.group(self.group)
        except IndexError:
            logger.error(f"Extraction rule {self.pattern!r} has no group {self.group}")
            return None

        return value or None


GOOGLE_ID_RULES: List[ExtractionRule] = [
    ExtractionRule(pattern=pattern, group=group, source=source)
    for pattern, group, source in GOOGLE_ID_PATTERNS
]


def descriptor_names(descriptors: Any) -> List[str]:
    """
    Normalize storage inventory descriptors into plain names.

    Accepts dicts with a ``name`` key (what ``indexedDB.databases()``
    returns through Playwright), objects with a ``name`` attribute, or
    bare strings. Entries without a string name are skipped.
    """
    names: List[str] = []
    if not descriptors:
        return names

    for descriptor in descriptors:
        if isinstance(descriptor, str):
            name = descriptor
        elif isinstance(descriptor, dict):
            name = descriptor.get("name")
        else:
            name = getattr(descriptor, "name", None)

        if isinstance(name, str):
            names.append(name)
    return names


class IdentifierPatternMatcher:
    """
    Extracts distinct identifiers from storage container names.

    Every name is tested against every rule in table order; each
    matching rule contributes one candidate. Pure and total: names that
    are not strings or match nothing are ignored.
    """

    def __init__(self, rules: Optional[Iterable[ExtractionRule]] = None):
        self.rules: List[ExtractionRule] = list(rules) if rules is not None else list(GOOGLE_ID_RULES)

    def match_name(self, name: Any) -> List[Tuple[ExtractionRule, str]]:
        """Return every (rule, identifier) pair a single name satisfies"""
        if not isinstance(name, str):
            return []

        matches = []
        for rule in self.rules:
            identifier = rule.extract(name)
            if identifier is not None:
                matches.append((rule, identifier))
        return matches

    def extract(self, names: Optional[Iterable[Any]]) -> Set[str]:
        """Extract the distinct identifiers found in ``names``"""
        identifiers: Set[str] = set()
        if not names:
            return identifiers

        for name in names:
            for rule, identifier in self.match_name(name):
                logger.debug(f"Identifier {identifier} found in {name!r} ({rule.source or rule.pattern})")
                identifiers.add(identifier)
        return identifiers


_default_matcher = IdentifierPatternMatcher()


def extract_identifiers(names: Optional[Iterable[Any]]) -> Set[str]:
    """
    Convenience function to run the default rule table over ``names``.

    Args:
        names: Storage container names

    Returns:
        Set of distinct identifiers
    """
    return _default_matcher.extract(names)
