"""Extension version compatibility policy."""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

_LEADING_DIGITS = re.compile(r"^\d+")


def parse_version(version: str) -> Tuple[int, ...]:
    """
    Parse a dotted extension version into a comparable tuple.

    Only the leading digits of each component count, so "1.10" -> (1, 10)
    and "2.0beta1" -> (2, 0). Components without leading digits are dropped.
    """
    parts = []
    for component in version.strip().split("."):
        match = _LEADING_DIGITS.match(component)
        if match:
            parts.append(int(match.group(0)))
    return tuple(parts)


@dataclass(frozen=True)
class VersionRule:
    """
    Inclusive version range for one extension.

    Attributes:
        min_version: Lowest supported version (None = unbounded)
        max_version: Highest supported version (None = unbounded)
    """
    min_version: Optional[str] = None
    max_version: Optional[str] = None

    def contains(self, version: str) -> bool:
        """Check whether version falls within this range."""
        parsed = parse_version(version)
        if self.min_version is not None and parsed < parse_version(self.min_version):
            return False
        if self.max_version is not None and parsed > parse_version(self.max_version):
            return False
        return True


class CompatibilityMatrix:
    """
    Decides whether an installed extension version is safe to enable.

    With no rules registered every (extension, version) pair is compatible.
    Once an extension has rules, a version must fall within at least one of
    them. Subclass and override is_compatible to plug in another policy.
    """

    def __init__(self, rules: Optional[Dict[str, Iterable[VersionRule]]] = None):
        self.rules: Dict[str, List[VersionRule]] = {}
        for extension_name, extension_rules in (rules or {}).items():
            for rule in extension_rules:
                self.add_rule(extension_name, rule)

    def add_rule(self, extension_name: str, rule: VersionRule) -> None:
        """Register a supported version range for an extension."""
        self.rules.setdefault(extension_name, []).append(rule)

    def is_compatible(self, extension_name: str, version: str) -> bool:
        """Check whether extension_name at version may be enabled."""
        extension_rules = self.rules.get(extension_name)
        if not extension_rules:
            return True
        return any(rule.contains(version) for rule in extension_rules)
