"""Unit tests for prompt construction."""
from __future__ import annotations

import json

import pytest
from matchmaker.services.prompts import (
    AppliedFilters,
    build_messages,
    build_system_prompt,
    build_user_prompt,
    format_result_for_llm,
)

from tests.unit.factories import make_row


@pytest.mark.unit
class TestFormatResultForLLM:
    def test_full_row(self):
        formatted = format_result_for_llm(make_row(7, final_score=0.123456))

        assert formatted == {
            "id": 7,
            "name": "Person7 S.",
            "location": "Austin, TX, USA",
            "age": 30,
            "gender": "female",
            "summary": "Loves hiking and dogs.",
            "image": "https://images.example.com/7.jpg",
            "score": "0.1235",
        }

    def test_missing_fields_use_placeholders(self):
        row = make_row(
            8,
            last_name=None,
            city=None,
            state="",
            country=None,
            age_years=None,
            gender=None,
            personal_summary=None,
            primary_image_url=None,
            final_score=1,
        )

        formatted = format_result_for_llm(row)

        assert formatted["name"] == "Person8 ."
        assert formatted["location"] == "Location not specified"
        assert formatted["age"] == "Age not specified"
        assert formatted["gender"] == "Not specified"
        assert formatted["summary"] == "No summary available"
        assert formatted["image"] is None
        assert formatted["score"] == "1.0000"

    def test_partial_location(self):
        formatted = format_result_for_llm(make_row(9, city=None, state="CA", country="USA"))
        assert formatted["location"] == "CA, USA"


@pytest.mark.unit
class TestSystemPrompt:
    def test_initial_prompt_without_truncation(self):
        prompt = build_system_prompt(is_refinement=False, total=3, shown=3, max_results_for_ai=100)

        assert "Analyze search results and provide a concise summary" in prompt
        assert "2-3 specific refinement suggestions" in prompt
        assert "[#id]" in prompt
        assert "total profiles were found" not in prompt

    def test_initial_prompt_mentions_truncation(self):
        prompt = build_system_prompt(is_refinement=False, total=250, shown=100, max_results_for_ai=100)

        assert "Note: 250 total profiles were found." in prompt
        assert "analyzing the top 100 matches" in prompt

    def test_refinement_prompt(self):
        prompt = build_system_prompt(is_refinement=True, total=40, shown=40, max_results_for_ai=100)

        assert "The user has refined their previous search query." in prompt
        assert "Analyze the 40 total results" in prompt
        assert "Suggest 1-2 ways to further refine or expand" in prompt
        assert "[#id]" in prompt


@pytest.mark.unit
class TestUserPrompt:
    def test_lists_only_applied_filters(self):
        filters = AppliedFilters(gender="male", min_age=25, max_age=None, state="NY")

        prompt = build_user_prompt("likes jazz", filters, total=12, results_for_ai=[])

        assert prompt.startswith('Query: "likes jazz"')
        assert "- Gender: male" in prompt
        assert "- Min Age: 25" in prompt
        assert "- State: NY" in prompt
        assert "Max Age" not in prompt
        assert "Total results found: 12" in prompt
        assert "Analyzing top 0 matches:" in prompt

    def test_no_filters(self):
        prompt = build_user_prompt("anyone", AppliedFilters(), total=0, results_for_ai=[])
        assert "Filters applied:\n- None" in prompt

    def test_zero_age_is_not_a_filter(self):
        prompt = build_user_prompt("anyone", AppliedFilters(min_age=0), total=0, results_for_ai=[])
        assert "Min Age" not in prompt

    def test_results_embedded_as_json(self):
        results = [format_result_for_llm(make_row(1))]

        prompt = build_user_prompt("q", AppliedFilters(states=["CA", "OR"]), total=1, results_for_ai=results)

        assert "- States: CA, OR" in prompt
        assert json.dumps(results, indent=2) in prompt


@pytest.mark.unit
def test_build_messages_orders_system_history_user():
    history = [
        {"role": "user", "content": "first question"},
        {"role": "assistant", "content": "first answer"},
    ]

    messages = build_messages("system text", history, "current question")

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[0]["content"] == "system text"
    assert messages[1]["content"] == "first question"
    assert messages[-1]["content"] == "current question"
