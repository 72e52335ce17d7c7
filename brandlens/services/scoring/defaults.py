"""Built-in scoring rules document, used when no rules file is configured."""

from brandlens.schemas.scoring import (
    AnalysisLevel,
    DimensionConfig,
    Dimension,
    GlobalScoreFormula,
    PageApplicability,
    RuleConfig,
    ScoringRulesConfig,
)
from brandlens.services.scoring.thresholds import bands

DEFAULT_RULES_VERSION = "2024.1"

# 0-20 -> 20, 21-40 -> 40, 41-60 -> 60, 61-80 -> 80, 81-100 -> 100
SCORE_BANDS = bands(
    [21, 41, 61, 81],
    [20, 40, 60, 80, 100],
    ["very weak", "weak", "fair", "good", "excellent"],
)

COUNT_BANDS = bands([1, 2], [20, 60, 100], ["none", "one", "two or more"])
FEW_MANY_BANDS = bands([1, 3], [20, 60, 100], ["none", "a few", "three or more"])


def _rule(thresholds, weight: float = 1.0, description: str = "") -> RuleConfig:
    return RuleConfig(weight=weight, thresholds=thresholds, description=description)


def default_page_categories():
    excluded_priority = 100
    return [
        PageApplicability(category="error_404", analysis_level=AnalysisLevel.EXCLUDED,
                          url_patterns=[r"/404\b"], title_patterns=[r"page not found", r"\b404\b"],
                          priority=excluded_priority),
        PageApplicability(category="login_account", analysis_level=AnalysisLevel.EXCLUDED,
                          url_patterns=[r"/(login|signin|sign-in|account|register|signup)\b"],
                          priority=excluded_priority),
        PageApplicability(category="legal_policy", analysis_level=AnalysisLevel.EXCLUDED,
                          url_patterns=[r"/(privacy|terms|legal|cookies?|gdpr)\b"],
                          priority=excluded_priority),
        PageApplicability(category="contact", analysis_level=AnalysisLevel.EXCLUDED,
                          url_patterns=[r"/contact\b"], priority=excluded_priority),
        PageApplicability(category="search_results", analysis_level=AnalysisLevel.EXCLUDED,
                          url_patterns=[r"/search\b", r"[?&](q|s|query)="], priority=excluded_priority),
        PageApplicability(category="homepage", url_patterns=[r"^https?://[^/]+/?$"],
                          weight_modifiers={Dimension.BRAND: 1.5}, priority=90),
        PageApplicability(category="faq", url_patterns=[r"/(faq|faqs|questions)\b"], schema_types=["FAQPage"],
                          weight_modifiers={Dimension.SNIPPET: 2.0}, priority=50),
        PageApplicability(category="documentation_help",
                          url_patterns=[r"/(docs|documentation|help|support|guides?)\b"],
                          weight_modifiers={Dimension.SNIPPET: 1.5, Dimension.AUTHORITY: 0.7}, priority=40),
        PageApplicability(category="blog_article", url_patterns=[r"/(blog|news|articles?|insights)/"],
                          schema_types=["Article", "BlogPosting", "NewsArticle"],
                          weight_modifiers={Dimension.AUTHORITY: 1.5, Dimension.FRESHNESS: 1.2}, priority=40),
        PageApplicability(category="case_study", url_patterns=[r"/(case-stud|success-stor|customers/)"],
                          weight_modifiers={Dimension.AUTHORITY: 1.3, Dimension.BRAND: 1.2}, priority=40),
        PageApplicability(category="pricing", analysis_level=AnalysisLevel.PARTIAL,
                          url_patterns=[r"/(pricing|plans)\b"],
                          weight_modifiers={Dimension.FRESHNESS: 0.5, Dimension.AUTHORITY: 0.5,
                                            Dimension.SNIPPET: 0.5, Dimension.BRAND: 2.0},
                          priority=35),
        PageApplicability(category="about_company", analysis_level=AnalysisLevel.PARTIAL,
                          url_patterns=[r"/(about|company|team|careers)\b"],
                          weight_modifiers={Dimension.FRESHNESS: 0.5, Dimension.AUTHORITY: 0.5,
                                            Dimension.BRAND: 2.0},
                          priority=35),
        PageApplicability(category="product_service",
                          url_patterns=[r"/(products?|services?|solutions?|features?)\b"], schema_types=["Product"],
                          weight_modifiers={Dimension.BRAND: 1.3, Dimension.SNIPPET: 1.2}, priority=30),
        PageApplicability(category="landing_campaign", url_patterns=[r"/(lp|landing|campaign|promo)/"],
                          priority=30),
        PageApplicability(category="navigation_category", analysis_level=AnalysisLevel.LIMITED,
                          url_patterns=[r"/(category|categories|tags?|archive|sitemap)\b"], priority=20),
    ]


def default_scoring_rules() -> ScoringRulesConfig:
    return ScoringRulesConfig(
        version=DEFAULT_RULES_VERSION,
        dimensions={
            Dimension.AUTHORITY: DimensionConfig(rules={
                "author_presence": _rule(bands([1, 2], [20, 60, 100], ["no author", "named author", "credentialed author"]),
                                         description="Named, credentialed author"),
                "outbound_citations": _rule(COUNT_BANDS, description="Outbound citations to sources"),
                "trusted_sources": _rule(COUNT_BANDS, description="Citations to trusted domains"),
                "llm_authority": _rule(SCORE_BANDS, weight=2.0, description="Model authority assessment"),
            }),
            Dimension.FRESHNESS: DimensionConfig(rules={
                "content_age": _rule(bands([91, 181, 366], [100, 80, 60, 40],
                                           ["within 3 months", "within 6 months", "within a year", "older than a year"]),
                                     weight=2.0, description="Days since last update"),
                "date_signals": _rule(bands([1], [20, 100], ["no date", "dated"]), description="Visible dates"),
                "llm_freshness": _rule(SCORE_BANDS, description="Model freshness assessment"),
            }),
            Dimension.STRUCTURE: DimensionConfig(rules={
                "single_h1": _rule(bands([1, 2], [20, 100, 40], ["missing H1", "single H1", "multiple H1"]),
                                   description="Exactly one H1"),
                "heading_hierarchy": _rule(SCORE_BANDS, description="Heading levels without gaps"),
                "schema_markup": _rule(bands([1, 2], [20, 80, 100], ["none", "one type", "several types"]),
                                       description="Structured data markup"),
                "readability": _rule(bands([21, 26, 31], [100, 80, 60, 40],
                                           ["concise", "readable", "long", "very long"]),
                                     description="Average sentence length"),
                "llm_structure": _rule(SCORE_BANDS, weight=1.5, description="Model structure assessment"),
            }),
            Dimension.BRAND: DimensionConfig(rules={
                "brand_mentions": _rule(FEW_MANY_BANDS, description="Brand named in the content"),
                "keyword_coverage": _rule(SCORE_BANDS, description="Brand keywords present"),
                "outdated_terms": _rule(bands([1, 3], [100, 60, 20], ["none", "a few", "many"]),
                                        description="Outdated brand terms"),
                "llm_brand_alignment": _rule(SCORE_BANDS, weight=2.0, description="Model brand alignment assessment"),
            }),
            Dimension.SNIPPET: DimensionConfig(rules={
                "qa_blocks": _rule(FEW_MANY_BANDS, description="Question and answer blocks"),
                "lists": _rule(FEW_MANY_BANDS, description="Lists and tables"),
                "paragraph_length": _rule(bands([51, 101], [100, 60, 20], ["short", "long", "wall of text"]),
                                          description="Average paragraph length"),
                "extractable_blocks": _rule(FEW_MANY_BANDS, description="Self-contained answer blocks"),
                "llm_snippet": _rule(SCORE_BANDS, description="Model snippet assessment"),
            }),
        },
        global_score_formula=GlobalScoreFormula(weights={
            Dimension.AUTHORITY: 0.25,
            Dimension.FRESHNESS: 0.2,
            Dimension.STRUCTURE: 0.2,
            Dimension.BRAND: 0.2,
            Dimension.SNIPPET: 0.15,
        }),
        page_categories=default_page_categories(),
        trusted_domains=[
            "wikipedia.org", "gov", "edu", "who.int", "nature.com", "sciencedirect.com",
            "reuters.com", "bbc.com", "nytimes.com", "forbes.com", "harvard.edu", "statista.com",
        ],
        author_credential_keywords=[
            "phd", "ph.d", "dr.", "md", "professor", "certified", "expert", "engineer",
            "researcher", "director", "founder", "years of experience",
        ],
        recognized_schema_types=[
            "Article", "BlogPosting", "NewsArticle", "FAQPage", "HowTo", "Product",
            "Organization", "BreadcrumbList", "WebPage", "Review", "Person",
        ],
    )
