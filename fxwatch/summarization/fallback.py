"""
Extractive summary used when the LLM is unavailable.

Deterministic and offline: sentences of reasonable length are lifted from
the article as-is. The result is flagged ``is_fallback`` so readers know
it is not an analysis.
"""

import re

from fxwatch.ingestion.schemas import ArticleContent
from fxwatch.summarization.currencies import detect_currencies
from fxwatch.summarization.schemas import ArticleSummary, CurrencySection, Sentiment

_SENTENCE_END = re.compile(r"[.!?]+")

MIN_SENTENCE_CHARS = 50
MAX_SENTENCE_CHARS = 300
INTRO_SENTENCES = 2
SENTENCES_PER_CURRENCY = 2

FALLBACK_FACTOR = "Analyse complète indisponible sans API IA"
FALLBACK_CONCLUSION = "Pour un résumé détaillé en français, configurez votre clé API IA."
FALLBACK_TAKEAWAY = "Résumé automatique - analyse IA indisponible."


def candidate_sentences(content: str) -> list[str]:
    """Sentences between 50 and 300 characters, terminators removed."""
    sentences = (s.strip() for s in _SENTENCE_END.split(content))
    return [s for s in sentences if MIN_SENTENCE_CHARS < len(s) < MAX_SENTENCE_CHARS]


def _join(sentences: list[str]) -> str:
    return ". ".join(sentences) + "."


def extractive_summary(article: ArticleContent) -> ArticleSummary:
    """
    Build a summary from the article's own sentences.

    The introduction is the first two candidate sentences (or the title
    when none qualify, so it is never empty). Each detected currency gets
    up to two sentences mentioning its code, with a neutral sentiment.
    """
    mentioned = detect_currencies(article.content)
    sentences = candidate_sentences(article.content)

    if sentences:
        introduction = _join(sentences[:INTRO_SENTENCES])
    else:
        introduction = " ".join(article.content.split())[:MAX_SENTENCE_CHARS] or article.title

    currencies: dict[str, CurrencySection] = {}
    for code in mentioned:
        mentions = [s for s in sentences if code in s.upper()][:SENTENCES_PER_CURRENCY]
        if mentions:
            currencies[code] = CurrencySection(
                sentiment=Sentiment.NEUTRAL,
                summary=_join(mentions),
                factors=[FALLBACK_FACTOR],
            )

    return ArticleSummary(
        title=article.title,
        introduction=introduction,
        currencies=currencies,
        conclusion=FALLBACK_CONCLUSION,
        key_takeaway=FALLBACK_TAKEAWAY,
        mentioned_currencies=mentioned,
        is_fallback=True,
    )
