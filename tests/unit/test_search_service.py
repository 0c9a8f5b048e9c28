"""Unit tests for the chat search orchestration."""
from __future__ import annotations

import pytest
from matchmaker.core.errors import InvalidRequestError, SearchFailedError
from matchmaker.schemas.search import SearchRequest
from matchmaker.services.profile_repository import HybridSearchParams
from matchmaker.services.search_service import SearchService

from tests.unit.factories import make_row


@pytest.fixture
def service(mock_repository, mock_llm_client):
    return SearchService(mock_repository, mock_llm_client)


def _sent_messages(mock_llm_client):
    return mock_llm_client.complete.await_args.args[0]


@pytest.mark.unit
class TestMessageValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [None, "", "   ", 42])
    async def test_rejects_missing_or_blank_message(self, service, mock_llm_client, message):
        with pytest.raises(InvalidRequestError) as exc_info:
            await service.chat(SearchRequest(message=message))

        assert exc_info.value.message == "Message is required and must be a non-empty string"
        mock_llm_client.embed.assert_not_awaited()


@pytest.mark.unit
class TestNewSearch:
    @pytest.mark.asyncio
    async def test_embeds_searches_and_summarises(self, service, mock_repository, mock_llm_client, sample_rows):
        response = await service.chat(SearchRequest(message="loves hiking"))

        mock_llm_client.embed.assert_awaited_once_with("loves hiking")
        params: HybridSearchParams = mock_repository.hybrid_search.await_args.args[0]
        assert params.query_text == "loves hiking"
        assert params.alpha == 0.6
        assert params.match_count == 10000
        assert params.gender is None
        assert params.min_age is None
        assert params.state is None

        assert response.answer == "Here are your matches [#1]."
        assert [match.id for match in response.results] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_passes_filters_and_turns_falsy_values_into_null(self, service, mock_repository):
        request = SearchRequest.model_validate(
            {
                "message": "q",
                "gender": "",
                "minAge": 0,
                "maxAge": 45,
                "state": "CA",
                "alpha": 0.3,
                "topK": 50,
            }
        )

        await service.chat(request)

        params = mock_repository.hybrid_search.await_args.args[0]
        assert params.gender is None
        assert params.min_age is None
        assert params.max_age == 45
        assert params.state == "CA"
        assert params.alpha == 0.3
        assert params.match_count == 50

    @pytest.mark.asyncio
    async def test_single_selected_state_is_sent_to_the_procedure(self, service, mock_repository):
        await service.chat(SearchRequest.model_validate({"message": "q", "states": ["ca"]}))

        assert mock_repository.hybrid_search.await_args.args[0].state == "CA"

    @pytest.mark.asyncio
    async def test_multiple_states_filter_the_results(self, service, mock_repository):
        mock_repository.hybrid_search.return_value = [
            make_row(1, state="CA"),
            make_row(2, state="tx"),
            make_row(3, state="NY"),
            make_row(4, state=None),
        ]

        response = await service.chat(SearchRequest.model_validate({"message": "q", "states": ["CA", "TX"]}))

        assert mock_repository.hybrid_search.await_args.args[0].state is None
        assert [match.id for match in response.results] == [1, 2]

    @pytest.mark.asyncio
    async def test_only_top_results_are_sent_to_the_model(self, service, mock_repository, mock_llm_client):
        mock_repository.hybrid_search.return_value = [make_row(i) for i in range(1, 151)]

        response = await service.chat(SearchRequest(message="q"))

        assert len(response.results) == 150
        system, user = _sent_messages(mock_llm_client)[0], _sent_messages(mock_llm_client)[-1]
        assert "Note: 150 total profiles were found." in system["content"]
        assert "Total results found: 150" in user["content"]
        assert "Analyzing top 100 matches:" in user["content"]
        assert '"id": 100' in user["content"]
        assert '"id": 101' not in user["content"]

    @pytest.mark.asyncio
    async def test_search_failure_propagates(self, service, mock_repository, mock_llm_client):
        mock_repository.hybrid_search.side_effect = SearchFailedError("Search failed: relation does not exist")

        with pytest.raises(SearchFailedError):
            await service.chat(SearchRequest(message="q"))

        mock_llm_client.complete.assert_not_awaited()


@pytest.mark.unit
class TestRefinement:
    @pytest.mark.asyncio
    async def test_reuses_existing_results_without_searching(self, service, mock_repository, mock_llm_client):
        existing = [make_row(10, custom_column="kept"), make_row(11)]
        request = SearchRequest.model_validate(
            {
                "message": "only dog lovers",
                "isRefinement": True,
                "existingResults": existing,
                "conversationHistory": [
                    {"role": "user", "content": "hikers"},
                    {"role": "assistant", "content": "Found 2 hikers."},
                ],
            }
        )

        response = await service.chat(request)

        mock_llm_client.embed.assert_not_awaited()
        mock_repository.hybrid_search.assert_not_awaited()
        assert [match.id for match in response.results] == [10, 11]
        assert response.results[0].model_dump()["custom_column"] == "kept"

        messages = _sent_messages(mock_llm_client)
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert "The user has refined their previous search query." in messages[0]["content"]
        assert messages[1]["content"] == "hikers"

    @pytest.mark.asyncio
    async def test_refinement_without_existing_results_searches_again(self, service, mock_repository, mock_llm_client):
        await service.chat(SearchRequest.model_validate({"message": "q", "isRefinement": True}))

        mock_repository.hybrid_search.assert_awaited_once()
        assert "refined their previous search" in _sent_messages(mock_llm_client)[0]["content"]
