"""Read-only registry of rule definitions, grouped by category."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from docguard.errors import ConfigurationError
from docguard.severity import RULE_CATEGORIES, Category

from . import Rule


class RuleRegistry:
    """The single extension point for rules: new rules are data, not evaluator code."""

    def __init__(self, rules: Iterable[Rule], version: int = 1) -> None:
        by_id: Dict[str, Rule] = {}
        for rule in rules:
            if rule.id in by_id:
                raise ConfigurationError(f"Duplicate rule id: {rule.id}")
            if rule.category not in RULE_CATEGORIES:
                raise ConfigurationError(f"Rule {rule.id} uses non-rule category {rule.category.value}")
            by_id[rule.id] = rule
        self._rules: Tuple[Rule, ...] = tuple(by_id.values())
        self._by_id = by_id
        self.version = version

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def get(self, rule_id: str) -> Rule:
        try:
            return self._by_id[rule_id]
        except KeyError as exc:
            raise KeyError(f"Unknown rule id: {rule_id}") from exc

    def rules_for(self, category: Category) -> Tuple[Rule, ...]:
        return tuple(rule for rule in self._rules if rule.category is category)

    def categories(self) -> List[Category]:
        present = {rule.category for rule in self._rules}
        return [category for category in RULE_CATEGORIES if category in present]

    def select(
        self,
        area: str = "all",
        categories: Optional[Iterable[Category]] = None,
    ) -> "RuleRegistry":
        """Return a registry restricted to one area and/or a set of categories."""

        wanted = set(categories) if categories is not None else None
        selected = [
            rule
            for rule in self._rules
            if (area == "all" or rule.area == area) and (wanted is None or rule.category in wanted)
        ]
        return RuleRegistry(selected, version=self.version)
