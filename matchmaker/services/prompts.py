"""Prompt construction for the matchmaking summary.

These helpers are pure: they turn search results, filters and the
conversation so far into the message list sent to the chat model.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

CITATION_HINT = "When mentioning specific profiles, cite them as [#id] where id is the profile ID."


@dataclass
class AppliedFilters:
    """Filters as shown to the model; ``None`` means not applied."""

    gender: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    state: Optional[str] = None
    states: Optional[Sequence[str]] = None
    min_height: Optional[int] = None
    max_height: Optional[int] = None

    def lines(self) -> List[str]:
        lines = []
        if self.gender:
            lines.append(f"- Gender: {self.gender}")
        if self.min_age:
            lines.append(f"- Min Age: {self.min_age}")
        if self.max_age:
            lines.append(f"- Max Age: {self.max_age}")
        if self.state:
            lines.append(f"- State: {self.state}")
        if self.states:
            lines.append(f"- States: {', '.join(self.states)}")
        if self.min_height:
            lines.append(f"- Min Height: {self.min_height} in")
        if self.max_height:
            lines.append(f"- Max Height: {self.max_height} in")
        return lines


def format_result_for_llm(result: Mapping[str, Any]) -> Dict[str, Any]:
    """Compact, privacy-trimmed view of a search row (last name reduced to an initial)."""
    location_parts = [part for part in (result.get("city"), result.get("state"), result.get("country")) if part]
    last_name = result.get("last_name") or ""

    return {
        "id": result["id"],
        "name": f"{result.get('first_name') or ''} {last_name[:1]}.",
        "location": ", ".join(location_parts) if location_parts else "Location not specified",
        "age": result.get("age_years") or "Age not specified",
        "gender": result.get("gender") or "Not specified",
        "summary": result.get("personal_summary") or "No summary available",
        "image": result.get("primary_image_url") or None,
        "score": f"{float(result['final_score']):.4f}",
    }


def build_system_prompt(is_refinement: bool, total: int, shown: int, max_results_for_ai: int) -> str:
    if is_refinement:
        return f"""You are a helpful matchmaking assistant. The user has refined their previous search query.

Your task: Analyze the {total} total results and help filter them based on the user's refinement request.

Note: For efficiency, you're seeing the top {shown} results, but {total} total profiles were found.

For refinement queries:
1. Identify which profiles match the user's new criteria
2. Explain how you filtered the results
3. Highlight the best matches from the set
4. Suggest 1-2 ways to further refine or expand

{CITATION_HINT}
Keep your response conversational and focused on the refinement."""

    truncation_note = ""
    if total > max_results_for_ai:
        truncation_note = (
            f"Note: {total} total profiles were found. "
            f"For efficiency, you're analyzing the top {shown} matches."
        )

    return f"""You are a helpful matchmaking assistant. Analyze search results and provide a concise summary.

{truncation_note}

Include:
1. A brief overview of the results found (mention total count)
2. Key highlights about the top matches
3. 2-3 specific refinement suggestions to help narrow the search

{CITATION_HINT}
Keep your response conversational and helpful."""


def build_user_prompt(
    message: str,
    filters: AppliedFilters,
    total: int,
    results_for_ai: List[Dict[str, Any]],
) -> str:
    filter_block = "\n".join(filters.lines()) or "- None"
    return f"""Query: "{message}"

Filters applied:
{filter_block}

Total results found: {total}
Analyzing top {len(results_for_ai)} matches:
{json.dumps(results_for_ai, indent=2)}

Please provide a summary and refinement suggestions."""


def build_messages(
    system_prompt: str,
    history: Sequence[Mapping[str, str]],
    user_prompt: str,
) -> List[Dict[str, str]]:
    """System prompt, then earlier turns in order, then the current query."""
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn["role"], "content": turn["content"]} for turn in history)
    messages.append({"role": "user", "content": user_prompt})
    return messages
