"""Measurements behind each scoring rule.

A rule measures one raw value from the page signals or the unified-KPI
judgments and explains it. The engine maps the value through the rule's
threshold table. A rule returns None when it has nothing to measure.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

from brandlens.schemas.judgments import StructuredJudgment, UnifiedKPIJudgment
from brandlens.schemas.scoring import Dimension, PageSignals, ScoringRulesConfig


@dataclass
class RuleInput:
    signals: PageSignals
    judgments: Sequence[StructuredJudgment]
    config: ScoringRulesConfig
    as_of: date
    brand_keywords: List[str] = field(default_factory=list)


@dataclass
class Measurement:
    raw_value: float
    evidence: List[str]
    issue: str = ""
    recommendation: str = ""


RuleFn = Callable[[RuleInput], Optional[Measurement]]


def _domain_matches(domain: str, trusted: str) -> bool:
    domain = domain.lower().lstrip(".")
    if domain.startswith("www."):
        domain = domain[4:]
    trusted = trusted.lower().lstrip(".")
    return domain == trusted or domain.endswith("." + trusted)


# =============================================================================
# AUTHORITY
# =============================================================================

def author_presence(data: RuleInput) -> Measurement:
    content = data.signals.content
    if not content.has_author:
        return Measurement(
            0, ["No author byline found"],
            issue="Content has no identifiable author",
            recommendation="Add a named author with a short bio.",
        )
    bio = content.author_bio.lower()
    credentials = [k for k in data.config.author_credential_keywords if k.lower() in bio]
    evidence = [f"Author: {content.author_name or 'named'}"]
    if credentials:
        evidence.append(f"Credentials: {', '.join(credentials)}")
        return Measurement(2, evidence)
    evidence.append("No credentials in author bio")
    return Measurement(
        1, evidence,
        issue="Author credentials are not stated",
        recommendation="State the author's qualifications or experience.",
    )


def outbound_citations(data: RuleInput) -> Measurement:
    count = data.signals.content.outbound_citations
    return Measurement(
        count, [f"{count} outbound citation(s)"],
        issue="Few or no outbound citations",
        recommendation="Cite at least two primary or reputable sources.",
    )


def trusted_sources(data: RuleInput) -> Measurement:
    domains = data.signals.content.citation_domains
    trusted = sorted({
        domain for domain in domains
        if any(_domain_matches(domain, t) for t in data.config.trusted_domains)
    })
    evidence = [f"Trusted domains cited: {', '.join(trusted)}"] if trusted else [
        f"None of {len(domains)} cited domain(s) is on the trusted list"
    ]
    return Measurement(
        len(trusted), evidence,
        issue="No citations to trusted sources",
        recommendation="Reference recognized authorities (official, academic or major media sources).",
    )


# =============================================================================
# FRESHNESS
# =============================================================================

def content_age(data: RuleInput) -> Optional[Measurement]:
    freshness = data.signals.freshness
    dates = [d for d in (freshness.publish_date, freshness.modified_date) if d is not None]
    if not dates:
        return None
    latest = max(dates)
    days = max(0, (data.as_of - latest).days)
    return Measurement(
        days, [f"Last updated {latest.isoformat()} ({days} days before {data.as_of.isoformat()})"],
        issue=f"Content was last updated {days} days ago",
        recommendation="Review and refresh the content, and show the modification date.",
    )


def date_signals(data: RuleInput) -> Measurement:
    freshness = data.signals.freshness
    present = [
        name for name, value in (("publish date", freshness.publish_date), ("modified date", freshness.modified_date))
        if value is not None
    ]
    evidence = [f"Found {', '.join(present)}"] if present else ["No publish or modified date found"]
    return Measurement(
        len(present), evidence,
        issue="No visible publication or update date",
        recommendation="Display publish and last-modified dates on the page.",
    )


# =============================================================================
# STRUCTURE
# =============================================================================

def single_h1(data: RuleInput) -> Measurement:
    count = data.signals.structure.h1_count
    issue = "Page has no H1 heading" if count == 0 else "Page has more than one H1 heading"
    return Measurement(
        count, [f"{count} H1 heading(s)"],
        issue=issue,
        recommendation="Use exactly one H1 that states the page topic.",
    )


def heading_hierarchy(data: RuleInput) -> Measurement:
    headings = [h.lower() for h in data.signals.structure.heading_hierarchy if h.lower().startswith("h")]
    levels = [int(h[1:]) for h in headings if h[1:].isdigit()]
    if not levels:
        return Measurement(
            0, ["No headings found"],
            issue="Content has no heading structure",
            recommendation="Break the content into sections with H2 and H3 headings.",
        )

    skips = sum(1 for previous, current in zip(levels, levels[1:]) if current > previous + 1)
    points = 0
    points += 40 if 1 in levels else 0
    points += 30 if 2 in levels else 0
    points += 10 if any(level >= 3 for level in levels) else 0
    points += 20 if skips == 0 else 0
    evidence = [f"Heading sequence: {' > '.join(headings[:12])}", f"{skips} skipped level(s)"]
    return Measurement(
        points, evidence,
        issue="Heading hierarchy is incomplete or skips levels",
        recommendation="Nest headings H1 > H2 > H3 without skipping levels.",
    )


def schema_markup(data: RuleInput) -> Measurement:
    found = data.signals.structure.schema_types
    recognized = data.config.recognized_schema_types
    types = sorted({t for t in found if not recognized or t in recognized})
    evidence = [f"Schema types: {', '.join(types)}"] if types else ["No recognized schema.org markup"]
    return Measurement(
        len(types), evidence,
        issue="No structured data markup",
        recommendation="Add schema.org markup (Article, FAQPage, Product, Organization).",
    )


def readability(data: RuleInput) -> Optional[Measurement]:
    words = data.signals.content.avg_sentence_words
    if words <= 0:
        return None
    return Measurement(
        words, [f"Average sentence length {words:.1f} words"],
        issue="Sentences are long",
        recommendation="Keep sentences under 20 words where possible.",
    )


# =============================================================================
# BRAND
# =============================================================================

def brand_mentions(data: RuleInput) -> Measurement:
    count = data.signals.brand.brand_mentions
    return Measurement(
        count, [f"Brand named {count} time(s)"],
        issue="Brand is rarely named in the content",
        recommendation="Name the brand explicitly where claims are made about it.",
    )


def keyword_coverage(data: RuleInput) -> Optional[Measurement]:
    keywords = data.brand_keywords or data.config.brand_keywords
    if not keywords:
        return None
    found = {k.lower() for k in data.signals.brand.keywords_found}
    present = [k for k in keywords if k.lower() in found]
    missing = [k for k in keywords if k.lower() not in found]
    coverage = len(present) / len(keywords) * 100
    evidence = [f"{len(present)}/{len(keywords)} brand keywords present"]
    if missing:
        evidence.append(f"Missing: {', '.join(missing)}")
    return Measurement(
        coverage, evidence,
        issue=f"Brand keywords missing: {', '.join(missing)}" if missing else "",
        recommendation="Work the missing brand keywords into the copy.",
    )


def outdated_terms(data: RuleInput) -> Measurement:
    found = data.signals.brand.outdated_terms_found
    configured = {t.lower() for t in data.config.outdated_terms}
    terms = sorted({t for t in found if not configured or t.lower() in configured})
    evidence = [f"Outdated terms: {', '.join(terms)}"] if terms else ["No outdated terms found"]
    return Measurement(
        len(terms), evidence,
        issue="Content uses outdated brand terms",
        recommendation="Replace outdated product or brand names with current ones.",
    )


# =============================================================================
# SNIPPET EXTRACTABILITY
# =============================================================================

def qa_blocks(data: RuleInput) -> Measurement:
    count = data.signals.snippet.qa_blocks
    return Measurement(
        count, [f"{count} question/answer block(s)"],
        issue="No question and answer blocks",
        recommendation="Add concise Q&A blocks that answer common questions directly.",
    )


def lists(data: RuleInput) -> Measurement:
    count = max(data.signals.snippet.list_count, data.signals.structure.list_count) + data.signals.structure.table_count
    return Measurement(
        count, [f"{count} list(s) or table(s)"],
        issue="Few lists or tables",
        recommendation="Present steps, features and comparisons as lists or tables.",
    )


def paragraph_length(data: RuleInput) -> Optional[Measurement]:
    words = data.signals.content.avg_paragraph_words
    if words <= 0:
        return None
    return Measurement(
        words, [f"Average paragraph length {words:.1f} words"],
        issue="Paragraphs are long",
        recommendation="Split paragraphs to 50 words or fewer.",
    )


def extractable_blocks(data: RuleInput) -> Measurement:
    count = data.signals.snippet.extractable_blocks
    return Measurement(
        count, [f"{count} self-contained answer block(s)"],
        issue="Few self-contained passages an assistant could quote",
        recommendation="Open sections with a one- or two-sentence direct answer.",
    )


# =============================================================================
# LLM JUDGMENT RULES
# =============================================================================

def _kpi_rule(score_field: str, label: str) -> RuleFn:
    def measure(data: RuleInput) -> Optional[Measurement]:
        values = []
        evidence = []
        for judgment in data.judgments:
            if not isinstance(judgment.data, UnifiedKPIJudgment):
                continue
            value = getattr(judgment.data.scores, score_field)
            if value is None:
                continue
            values.append(value)
            evidence.append(
                f"{judgment.model or judgment.provider or 'model'} rated {label} {value:.0f}/100 "
                f"({judgment.provenance.value})"
            )
        if not values:
            return None
        return Measurement(
            sum(values) / len(values), evidence,
            issue=f"Models rate {label} low",
            recommendation=f"Address the {label} issues reported by the model analysis.",
        )

    measure.__name__ = f"llm_{score_field}"
    return measure


RULES: Dict[str, RuleFn] = {
    "author_presence": author_presence,
    "outbound_citations": outbound_citations,
    "trusted_sources": trusted_sources,
    "llm_authority": _kpi_rule("authority", "authority"),
    "content_age": content_age,
    "date_signals": date_signals,
    "llm_freshness": _kpi_rule("freshness", "freshness"),
    "single_h1": single_h1,
    "heading_hierarchy": heading_hierarchy,
    "schema_markup": schema_markup,
    "readability": readability,
    "llm_structure": _kpi_rule("structure", "structure"),
    "brand_mentions": brand_mentions,
    "keyword_coverage": keyword_coverage,
    "outdated_terms": outdated_terms,
    "llm_brand_alignment": _kpi_rule("brand_alignment", "brand alignment"),
    "qa_blocks": qa_blocks,
    "lists": lists,
    "paragraph_length": paragraph_length,
    "extractable_blocks": extractable_blocks,
    "llm_snippet": _kpi_rule("snippet_extractability", "snippet extractability"),
}

RULE_DIMENSIONS: Dict[str, Dimension] = {
    "author_presence": Dimension.AUTHORITY,
    "outbound_citations": Dimension.AUTHORITY,
    "trusted_sources": Dimension.AUTHORITY,
    "llm_authority": Dimension.AUTHORITY,
    "content_age": Dimension.FRESHNESS,
    "date_signals": Dimension.FRESHNESS,
    "llm_freshness": Dimension.FRESHNESS,
    "single_h1": Dimension.STRUCTURE,
    "heading_hierarchy": Dimension.STRUCTURE,
    "schema_markup": Dimension.STRUCTURE,
    "readability": Dimension.STRUCTURE,
    "llm_structure": Dimension.STRUCTURE,
    "brand_mentions": Dimension.BRAND,
    "keyword_coverage": Dimension.BRAND,
    "outdated_terms": Dimension.BRAND,
    "llm_brand_alignment": Dimension.BRAND,
    "qa_blocks": Dimension.SNIPPET,
    "lists": Dimension.SNIPPET,
    "paragraph_length": Dimension.SNIPPET,
    "extractable_blocks": Dimension.SNIPPET,
    "llm_snippet": Dimension.SNIPPET,
}
