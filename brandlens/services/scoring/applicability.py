"""Page category detection and the dimensions each analysis level scores."""

import re
from typing import List, Set

from brandlens.schemas.scoring import (
    AnalysisLevel,
    Dimension,
    PageApplicability,
    PageCategory,
    PageSignals,
    ScoringRulesConfig,
)
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

LIMITED_DIMENSIONS = {Dimension.STRUCTURE, Dimension.SNIPPET}


class PageCategorizer:
    """Matches a page against the configured categories, highest priority first."""

    def __init__(self, config: ScoringRulesConfig):
        self.config = config
        self._rules: List[PageApplicability] = sorted(
            config.page_categories, key=lambda rule: -rule.priority
        )

    def categorize(self, signals: PageSignals) -> PageCategory:
        url = signals.url.lower()
        title = signals.title.lower()
        schema_types = set(signals.structure.schema_types)

        for rule in self._rules:
            reason = self._match(rule, url, title, schema_types)
            if reason:
                return PageCategory(
                    category=rule.category,
                    analysis_level=rule.analysis_level,
                    weight_modifiers=dict(rule.weight_modifiers),
                    reason=reason,
                )

        return PageCategory(
            category=self.config.default_category,
            analysis_level=AnalysisLevel.FULL,
            reason="No category rule matched",
        )

    @staticmethod
    def _match(rule: PageApplicability, url: str, title: str, schema_types: Set[str]) -> str:
        for pattern in rule.url_patterns:
            if url and re.search(pattern, url):
                return f"URL matches {pattern}"
        for pattern in rule.title_patterns:
            if title and re.search(pattern, title):
                return f"Title matches {pattern}"
        for schema_type in rule.schema_types:
            if schema_type in schema_types:
                return f"Schema type {schema_type}"
        return ""


def applicable_dimensions(category: PageCategory, configured: List[Dimension]) -> List[Dimension]:
    """Dimensions scored for a page category, in configuration order."""
    if category.analysis_level == AnalysisLevel.EXCLUDED:
        return []
    if category.analysis_level == AnalysisLevel.LIMITED:
        return [d for d in configured if d in LIMITED_DIMENSIONS]
    return list(configured)
