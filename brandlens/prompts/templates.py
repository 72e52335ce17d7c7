# Prompt templates for the brand analysis battery.
# - Placeholders use {name}; literal braces are doubled ({{ }}).
# - Battery templates are sent to every selected model and answered in prose.
# - Analysis guidance tells the repair call what to judge in a prose answer.
# - STRUCTURED_OUTPUT_INSTRUCTIONS and REPAIR_PROMPT are appended/sent by adapters.

# =============================================================================
# BATTERY TEMPLATES
# =============================================================================
SPONTANEOUS_PROMPT = r"""
What are the best {category} brands in {market}? List the brands that come to mind first,
in order of relevance, with one sentence on each.
"""

SENTIMENT_PROMPT = r"""
What is your opinion of the brand {brand_name} in {market}? Describe its reputation,
its strengths and weaknesses, and how customers generally perceive it.
"""

COMPARISON_PROMPT = r"""
Compare {brand_name} and {competitor} for a customer in {market}. Which one would you
recommend, and what are the main differences between them?
"""

ACCURACY_PROMPT = r"""
Describe the brand {brand_name} ({category}, {market}). For each of the following
attributes, say whether and how strongly it applies to the brand: {attributes}.
"""

BRAND_BATTLE_PROMPT = r"""
{brand_name} versus {competitor}: list the strengths and weaknesses of {brand_name}
compared with {competitor}.
"""

CUSTOM_QUESTION_PROMPT = r"""
{question}
"""

# =============================================================================
# UNIFIED KPI PROMPT (page analysis, answered as JSON)
# =============================================================================
UNIFIED_KPI_PROMPT = r"""
You are an expert in generative engine optimization. Analyze the page below for
how likely AI assistants are to trust, quote and attribute it to {brand_name}.

Page URL: {url}
Page title: {title}
Brand keywords: {brand_keywords}

Page signals:
{page_signals}

Score each dimension from 0 to 100 using these criteria:
- authority: 20 = anonymous, no sources; 40 = some sources; 60 = named author or
  several sources; 80 = credentialed author and trusted sources; 100 = recognized expert
  with primary sources.
- freshness: 20 = no date; 40 = older than a year; 60 = within a year; 80 = within six
  months; 100 = within three months.
- structure: 20 = wall of text; 40 = few headings; 60 = headings with gaps; 80 = clean
  hierarchy; 100 = clean hierarchy, schema markup and short sentences.
- brandAlignment: 20 = brand absent or contradicted; 40 = weak; 60 = present;
  80 = consistent; 100 = consistent and covers every brand keyword.

Return ONLY this JSON:
{{
  "scores": {{"authority": 0, "freshness": 0, "structure": 0, "brandAlignment": 0}},
  "details": {{
    "authority": {{"hasAuthor": false, "citationCount": 0, "domainAuthority": "low", "authorCredentials": []}},
    "freshness": {{"daysSinceUpdate": null, "hasDateSignals": false, "publishDate": null, "modifiedDate": null}},
    "structure": {{"h1Count": 0, "avgSentenceWords": 0, "hasSchema": false, "headingHierarchyScore": 0}},
    "brand": {{"brandMentions": 0, "alignmentIssues": [], "consistencyScore": 0, "missingKeywords": []}}
  }},
  "issues": [{{"dimension": "authority", "severity": "high", "description": "", "recommendation": ""}}],
  "explanation": ""
}}
"""

# =============================================================================
# ANALYSIS GUIDANCE (used when a prose answer is converted to JSON)
# =============================================================================
SPONTANEOUS_GUIDANCE = r"""
The answer below responds to an open question about a product category.
Set "mentioned" to true only if {brand_name} is named. List in "topOfMind" every brand
named in the answer, in the order they appear.
"""

SENTIMENT_GUIDANCE = r"""
The answer below describes {brand_name}. Judge its overall tone toward the brand as
"positive", "neutral" or "negative" ("valence"), map it to a traffic-light "status"
(green, yellow, red), list up to five "keywords" that carry the judgment, and give a
"confidence" between 0 and 1.
"""

COMPARISON_GUIDANCE = r"""
The answer below compares {brand_name} with {competitor}. Set "winner" to the brand the
answer recommends ("{brand_name}", "{competitor}" or "tie") and list the key
"differentiators" it mentions.
"""

ACCURACY_GUIDANCE = r"""
The answer below describes {brand_name}. For each attribute in [{attributes}] give an
"attributeScores" entry with the attribute name, a "score" between 0 (contradicted or
absent) and 1 (clearly stated), and a short "evaluation".
"""

BRAND_BATTLE_GUIDANCE = r"""
The answer below contrasts {brand_name} with {competitor}. Set "competitor" to
"{competitor}" and list the "brandStrengths" and "brandWeaknesses" it attributes to
{brand_name}.
"""

# =============================================================================
# STRUCTURED OUTPUT AND REPAIR
# =============================================================================
STRUCTURED_OUTPUT_INSTRUCTIONS = r"""
Respond with a single JSON object that validates against this JSON schema.
Do not wrap it in markdown and do not add commentary.

{schema}
"""

REPAIR_PROMPT = r"""
The text below was supposed to be a JSON object matching the schema that follows,
but it could not be parsed or did not validate.
{guidance}
Text:
<<<
{malformed_text}
>>>

Schema:
{schema}

Return ONLY the corrected JSON object.
"""
