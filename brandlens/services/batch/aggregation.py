"""Roll batch judgments up into per-model report metrics.

Every cell of a pipeline counts in that pipeline's denominators. Failed and
cancelled cells carry fallback judgments and therefore count as "no signal"
(not mentioned, neutral, zero alignment) instead of being dropped.
"""

import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List
from urllib.parse import urlparse

from brandlens.schemas.batch import BatchCell
from brandlens.schemas.judgments import (
    AccuracyJudgment,
    BrandBattleJudgment,
    ComparisonJudgment,
    SentimentJudgment,
    SpontaneousJudgment,
)
from brandlens.schemas.prompts import PipelineType, ProjectContext
from brandlens.schemas.report import (
    AlignmentMetrics,
    BrandBattleMetrics,
    CitationSummary,
    CompetitorBattle,
    CompetitorMetric,
    MentionCount,
    ModelAlignment,
    ModelBattleAnalysis,
    ModelSentiment,
    ModelVisibility,
    SentimentMetrics,
    VisibilityMetrics,
)
from brandlens.services.extraction.structured_extractor import fallback_data

TOP_MENTIONS_LIMIT = 10


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def _normalize(name: str) -> str:
    return " ".join(name.strip().lower().split())


def _top(counter: Counter, limit: int = TOP_MENTIONS_LIMIT) -> List[MentionCount]:
    ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [MentionCount(name=name, count=count) for name, count in ordered[:limit]]


def _by_model(cells: Iterable[BatchCell]) -> Dict[str, List[BatchCell]]:
    grouped: Dict[str, List[BatchCell]] = defaultdict(list)
    for cell in cells:
        grouped[cell.model_id].append(cell)
    return dict(sorted(grouped.items()))


class MetricsAggregator:
    """Computes visibility, sentiment, alignment and citation metrics for one batch."""

    def __init__(self, project: ProjectContext):
        self.project = project

    @staticmethod
    def _data(cell: BatchCell):
        if cell.judgment is None:
            return fallback_data(cell.pipeline_type)
        return cell.judgment.data

    def visibility(self, cells: List[BatchCell]) -> VisibilityMetrics:
        spontaneous = [c for c in cells if c.pipeline_type == PipelineType.SPONTANEOUS]
        grouped = _by_model(spontaneous)

        models: List[ModelVisibility] = []
        top_mentions: Counter = Counter()
        competitor_hits: Dict[str, Dict[str, int]] = {name: {} for name in self.project.competitors}
        total_mentions = 0

        for model_id, model_cells in grouped.items():
            mentions = 0
            for cell in model_cells:
                data: SpontaneousJudgment = self._data(cell)
                named = {_normalize(n) for n in data.top_of_mind if n.strip()}
                if data.mentioned:
                    mentions += 1
                for name in data.top_of_mind:
                    if name.strip():
                        top_mentions[name.strip()] += 1
                for competitor in self.project.competitors:
                    if _normalize(competitor) in named:
                        hits = competitor_hits[competitor]
                        hits[model_id] = hits.get(model_id, 0) + 1

            total_mentions += mentions
            models.append(
                ModelVisibility(
                    model_id=model_id,
                    provider=model_cells[0].provider,
                    mentions=mentions,
                    total=len(model_cells),
                    mention_rate=_rate(mentions, len(model_cells)),
                )
            )

        wins, losses, differentiators = self._comparison_record(cells)
        competitors = []
        for competitor in self.project.competitors:
            hits = competitor_hits[competitor]
            competitors.append(
                CompetitorMetric(
                    name=competitor,
                    global_rate=_rate(sum(hits.values()), len(spontaneous)),
                    per_model={
                        model_id: _rate(hits.get(model_id, 0), len(model_cells))
                        for model_id, model_cells in grouped.items()
                    },
                    comparison_wins=wins.get(competitor, 0),
                    comparison_losses=losses.get(competitor, 0),
                    differentiators=_top(differentiators[competitor]),
                )
            )

        return VisibilityMetrics(
            overall_mention_rate=_rate(total_mentions, len(spontaneous)),
            models=models,
            top_mentions=_top(top_mentions),
            competitors=competitors,
        )

    def _comparison_record(self, cells: List[BatchCell]):
        """Count head-to-head outcomes and cited differentiators per competitor.

        Wins and losses are counted from the competitor's side.
        """
        wins: Counter = Counter()
        losses: Counter = Counter()
        differentiators: Dict[str, Counter] = defaultdict(Counter)
        brand = _normalize(self.project.brand_name)
        for cell in cells:
            if cell.pipeline_type != PipelineType.COMPARISON or not cell.prompt.target:
                continue
            data: ComparisonJudgment = self._data(cell)
            for item in data.differentiators:
                if item.strip():
                    differentiators[cell.prompt.target][_normalize(item)] += 1
            winner = _normalize(data.winner)
            if winner == _normalize(cell.prompt.target):
                wins[cell.prompt.target] += 1
            elif winner == brand:
                losses[cell.prompt.target] += 1
        return wins, losses, differentiators

    def sentiment(self, cells: List[BatchCell]) -> SentimentMetrics:
        sentiment_cells = [c for c in cells if c.pipeline_type == PipelineType.SENTIMENT]
        distribution: Counter = Counter({"positive": 0, "neutral": 0, "negative": 0})
        keywords: Counter = Counter()
        models: List[ModelSentiment] = []

        for model_id, model_cells in _by_model(sentiment_cells).items():
            counts: Counter = Counter()
            for cell in model_cells:
                data: SentimentJudgment = self._data(cell)
                counts[data.valence] += 1
                for keyword in data.keywords:
                    if keyword.strip():
                        keywords[keyword.strip().lower()] += 1
            distribution.update(counts)
            models.append(
                ModelSentiment(
                    model_id=model_id,
                    positive=counts["positive"],
                    neutral=counts["neutral"],
                    negative=counts["negative"],
                    total=len(model_cells),
                    score=self._sentiment_score(counts["positive"], counts["negative"], len(model_cells)),
                )
            )

        return SentimentMetrics(
            overall_score=self._sentiment_score(
                distribution["positive"], distribution["negative"], len(sentiment_cells)
            ),
            distribution=dict(distribution),
            models=models,
            top_keywords=_top(keywords),
        )

    @staticmethod
    def _sentiment_score(positive: int, negative: int, total: int) -> float:
        """Net sentiment mapped to 0-100; 50 is neutral or no data."""
        if not total:
            return 50.0
        return round(((positive - negative) / total + 1) * 50, 2)

    def alignment(self, cells: List[BatchCell]) -> AlignmentMetrics:
        accuracy_cells = [c for c in cells if c.pipeline_type == PipelineType.ACCURACY]
        attributes = list(self.project.attributes)
        if not attributes:
            seen = []
            for cell in accuracy_cells:
                data: AccuracyJudgment = self._data(cell)
                for item in data.attribute_scores:
                    if item.attribute not in seen:
                        seen.append(item.attribute)
            attributes = seen

        models: List[ModelAlignment] = []
        sums: Dict[str, float] = defaultdict(float)
        for model_id, model_cells in _by_model(accuracy_cells).items():
            model_sums: Dict[str, float] = defaultdict(float)
            for cell in model_cells:
                data: AccuracyJudgment = self._data(cell)
                scores = {_normalize(item.attribute): item.score for item in data.attribute_scores}
                for attribute in attributes:
                    model_sums[attribute] += scores.get(_normalize(attribute), 0.0)
            attribute_scores = {
                attribute: round(model_sums[attribute] / len(model_cells), 4) for attribute in attributes
            }
            for attribute in attributes:
                sums[attribute] += model_sums[attribute]
            models.append(
                ModelAlignment(
                    model_id=model_id,
                    attribute_scores=attribute_scores,
                    alignment_score=self._alignment_score(attribute_scores.values()),
                )
            )

        averages = {
            attribute: round(sums[attribute] / len(accuracy_cells), 4) if accuracy_cells else 0.0
            for attribute in attributes
        }
        return AlignmentMetrics(
            overall_score=self._alignment_score(averages.values()),
            models=models,
            attribute_averages=averages,
        )

    @staticmethod
    def _alignment_score(scores: Iterable[float]) -> float:
        scores = list(scores)
        return round(sum(scores) / len(scores) * 100, 2) if scores else 0.0

    @staticmethod
    def citations(cells: List[BatchCell]) -> CitationSummary:
        domains: Counter = Counter()
        searched = 0
        for cell in cells:
            if cell.response is None or not cell.response.success:
                continue
            if cell.response.used_web_search:
                searched += 1
            for citation in cell.response.citations:
                host = urlparse(citation.url).netloc.lower()
                if host.startswith("www."):
                    host = host[4:]
                if host:
                    domains[host] += 1
        return CitationSummary(web_search_cells=searched, domains=_top(domains, limit=25))

    def brand_battle(self, cells: List[BatchCell]) -> BrandBattleMetrics:
        """Per-competitor strengths and weaknesses, plus those most models agree on.

        Only cells that got an answer contribute; a fallback judgment argues nothing.
        """
        battle_cells = [
            c for c in cells if c.pipeline_type == PipelineType.BRAND_BATTLE and c.succeeded
        ]
        by_competitor: Dict[str, List[ModelBattleAnalysis]] = defaultdict(list)
        for cell in sorted(battle_cells, key=lambda c: (c.model_id, c.run_index)):
            data: BrandBattleJudgment = self._data(cell)
            competitor = cell.prompt.target or data.competitor
            if not competitor:
                continue
            by_competitor[competitor].append(
                ModelBattleAnalysis(
                    model_id=cell.model_id,
                    strengths=[s.strip() for s in data.brand_strengths if s.strip()],
                    weaknesses=[w.strip() for w in data.brand_weaknesses if w.strip()],
                )
            )

        order = [c for c in self.project.competitors if c in by_competitor]
        order += sorted(c for c in by_competitor if c not in order)
        analyses = [
            CompetitorBattle(competitor=competitor, analysis_by_model=by_competitor[competitor])
            for competitor in order
        ]
        every_analysis = [a for battle in analyses for a in battle.analysis_by_model]
        return BrandBattleMetrics(
            competitor_analyses=analyses,
            common_strengths=common_items([a.strengths for a in every_analysis]),
            common_weaknesses=common_items([a.weaknesses for a in every_analysis]),
        )


def common_items(lists: List[List[str]]) -> List[str]:
    """Items named in at least half of the non-empty lists, most frequent first.

    Items are compared case-insensitively and counted once per list.
    """
    non_empty = [items for items in lists if items]
    if not non_empty:
        return []
    counts: Counter = Counter()
    for items in non_empty:
        counts.update({_normalize(item) for item in items})
    threshold = math.ceil(len(non_empty) / 2)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [item for item, count in ordered if count >= threshold]
