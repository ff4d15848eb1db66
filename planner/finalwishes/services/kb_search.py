"""
Knowledge base search
Ranked article snippets plus keyword-matched FAQ answers
"""

import logging
import re
from typing import Any, Dict, List

from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.models.support import FAQ, KBArticle

logger = logging.getLogger(__name__)

KB_RESULT_LIMIT = 5
FAQ_RESULT_LIMIT = 3
SNIPPET_LENGTH = 280

_WORD = re.compile(r"[a-z0-9']+")
_STOPWORDS = frozenset({
    "a", "an", "and", "are", "do", "does", "for", "how", "i", "in", "is", "it",
    "my", "of", "on", "or", "the", "to", "what", "when", "where", "who", "with",
})


def query_terms(query: str) -> List[str]:
    terms = [t for t in _WORD.findall(query.lower()) if t not in _STOPWORDS]
    # keep order, drop repeats
    return list(dict.fromkeys(terms))


def score_article(article: KBArticle, terms: List[str]) -> float:
    """Title hits weigh most, then tags, then body mentions"""
    if not terms:
        return 0.0
    title = (article.title or "").lower()
    body = (article.body or "").lower()
    tags = {str(tag).lower() for tag in (article.tags or [])}

    score = 0.0
    for term in terms:
        if term in title:
            score += 3
        if term in tags:
            score += 2
        score += min(body.count(term), 5) * 0.5
    return score / (len(terms) * 5.5)


def make_snippet(text: str, terms: List[str], length: int = SNIPPET_LENGTH) -> str:
    """Window of `length` characters around the first matching term"""
    text = text or ""
    lowered = text.lower()
    positions = [lowered.find(t) for t in terms if lowered.find(t) >= 0]
    start = max(0, min(positions) - length // 4) if positions else 0
    return text[start:start + length]


def faq_keyword_match(faq: FAQ, phrase: str, terms: List[str]) -> bool:
    """Whole keyword equal to the query or to one of its terms"""
    keywords = {str(k).strip().lower() for k in (faq.keywords or [])}
    return phrase.strip().lower() in keywords or any(term in keywords for term in terms)


async def search_knowledge_base(db: AsyncSession, query: str) -> Dict[str, List[Dict[str, Any]]]:
    terms = query_terms(query)

    kb: List[Dict[str, Any]] = []
    if terms:
        conditions = []
        for term in terms:
            pattern = f"%{term}%"
            conditions.extend([KBArticle.title.ilike(pattern), KBArticle.body.ilike(pattern)])
        result = await db.execute(select(KBArticle).where(or_(*conditions)))
        ranked = sorted(
            ((score_article(article, terms), article) for article in result.scalars().all()),
            key=lambda pair: pair[0],
            reverse=True,
        )
        kb = [
            {
                "id": str(article.id),
                "title": article.title,
                "snippet": make_snippet(article.body, terms),
                "source": "KB",
                "similarity": round(score, 4),
            }
            for score, article in ranked[:KB_RESULT_LIMIT]
            if score > 0
        ]

    phrase = query.strip()
    pattern = f"%{phrase}%"
    keyword_conditions = [cast(FAQ.keywords, String).ilike(f"%{k}%") for k in [phrase.lower(), *terms]]
    result = await db.execute(
        select(FAQ).where(or_(FAQ.question.ilike(pattern), FAQ.answer.ilike(pattern), *keyword_conditions))
    )
    matched = [
        faq for faq in result.scalars().all()
        if phrase.lower() in (faq.question or "").lower()
        or phrase.lower() in (faq.answer or "").lower()
        or faq_keyword_match(faq, phrase, terms)
    ]
    faqs = [
        {
            "id": str(faq.id),
            "title": faq.question,
            "snippet": (faq.answer or "")[:SNIPPET_LENGTH],
            "category": faq.category,
            "source": "FAQ",
        }
        for faq in matched[:FAQ_RESULT_LIMIT]
    ]

    logger.info(f"KB search '{query}': {len(kb)} articles, {len(faqs)} FAQs")
    return {"kb": kb, "faqs": faqs}
