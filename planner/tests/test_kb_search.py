"""
Tests for knowledge base and FAQ search.
"""

import pytest

from finalwishes.models import FAQ, KBArticle
from finalwishes.services.kb_search import (
    FAQ_RESULT_LIMIT,
    KB_RESULT_LIMIT,
    SNIPPET_LENGTH,
    make_snippet,
    query_terms,
    search_knowledge_base,
)


@pytest.fixture
async def knowledge_base(db):
    db.add_all([
        KBArticle(title="Writing your will", body="A will names an executor. " * 10, tags=["will", "legal"]),
        KBArticle(title="Choosing an executor", body="Your executor settles the estate and files the will.", tags=["executor"]),
        KBArticle(title="Pet care plans", body="Name a caregiver for your pets.", tags=["pets"]),
    ])
    for i in range(5):
        db.add(FAQ(
            category="Legal",
            question=f"Do I need a will? ({i})",
            answer="Yes. " + "A will makes your wishes clear. " * 20,
        ))
    await db.commit()


def test_query_terms_drop_stopwords_and_repeats():
    assert query_terms("How do I write my will, my WILL?") == ["write", "will"]


def test_snippet_centres_on_first_match():
    text = "x" * 500 + " executor " + "y" * 500
    snippet = make_snippet(text, ["executor"])
    assert "executor" in snippet
    assert len(snippet) == SNIPPET_LENGTH


async def test_search_ranks_title_matches_first(db, knowledge_base):
    results = await search_knowledge_base(db, "executor")

    titles = [r["title"] for r in results["kb"]]
    assert titles[0] == "Choosing an executor"
    assert "Pet care plans" not in titles
    assert len(results["kb"]) <= KB_RESULT_LIMIT
    assert all(r["source"] == "KB" for r in results["kb"])


async def test_faq_matches_are_limited_and_truncated(db, knowledge_base):
    results = await search_knowledge_base(db, "will")

    assert len(results["faqs"]) == FAQ_RESULT_LIMIT
    assert all(len(faq["snippet"]) <= SNIPPET_LENGTH for faq in results["faqs"])
    assert results["faqs"][0]["source"] == "FAQ"


async def test_faq_matches_on_keywords(db, knowledge_base):
    db.add(FAQ(
        category="Estate",
        question="What happens to my house?",
        answer="Your executor handles it through the courts.",
        keywords=["probate", "estate"],
    ))
    db.add(FAQ(category="Estate", question="Unrelated", answer="Nothing here.", keywords=["probates-office"]))
    await db.commit()

    results = await search_knowledge_base(db, "What is probate?")

    assert [faq["title"] for faq in results["faqs"]] == ["What happens to my house?"]


async def test_no_matches(db, knowledge_base):
    assert await search_knowledge_base(db, "spaceship") == {"kb": [], "faqs": []}


async def test_search_endpoint(client, knowledge_base):
    response = await client.post("/api/v1/kb/search", json={"query": "pets"})
    assert response.status_code == 200
    assert response.json()["kb"][0]["title"] == "Pet care plans"

    response = await client.post("/api/v1/kb/search", json={"query": "   "})
    assert response.status_code == 400
