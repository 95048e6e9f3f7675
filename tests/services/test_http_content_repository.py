"""Tests for HttpContentRepository request shaping and error handling."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from src.orchestrator.context.resolver import DocumentContextResolver
from src.orchestrator.models.conversation import Message, MessageRole
from src.services.content_repository import ContentRepositoryError
from src.services.http_content_repository import HttpContentRepository


def _response(status_code: int, payload=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", "https://proj.api.sanity.io")
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    return httpx.Response(status_code, json=payload, request=request)


@pytest.fixture
def repo():
    return HttpContentRepository(project_id="proj", dataset="production", token="sk-test")


class TestRequests:
    @pytest.mark.asyncio
    async def test_fetch_posts_query_and_params(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"result": [{"_id": "a"}]})

            result = await repo.fetch("*[_type == $t]", {"t": "page"})

        assert result == [{"_id": "a"}]
        args, kwargs = mock_post.call_args
        assert args[0] == "https://proj.api.sanity.io/v2024-01-01/data/query/production"
        assert kwargs["json"] == {"query": "*[_type == $t]", "params": {"t": "page"}}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_no_auth_header_without_token(self):
        repo = HttpContentRepository(project_id="proj", dataset="production")
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"result": None})
            await repo.fetch("*[0]")

        assert "Authorization" not in mock_post.call_args.kwargs["headers"]
        assert "params" not in mock_post.call_args.kwargs["json"]

    @pytest.mark.asyncio
    async def test_custom_base_url_and_version(self):
        repo = HttpContentRepository(
            project_id="proj",
            dataset="staging",
            api_version="v2023-05-03",
            base_url="http://localhost:9999",
        )
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"result": []})
            await repo.fetch("*")

        assert mock_post.call_args.args[0] == "http://localhost:9999/v2023-05-03/data/query/staging"

    @pytest.mark.asyncio
    async def test_patch_mutation(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(
                200, {"results": [{"id": "a", "document": {"_id": "a", "title": "New"}}]}
            )

            document = await repo.patch("a", {"title": "New"}, unset=["subtitle"])

        assert document == {"_id": "a", "title": "New"}
        kwargs = mock_post.call_args.kwargs
        assert kwargs["json"] == {
            "mutations": [{"patch": {"id": "a", "set": {"title": "New"}, "unset": ["subtitle"]}}]
        }
        assert kwargs["params"] == {"returnDocuments": "true"}
        assert mock_post.call_args.args[0].endswith("/data/mutate/production")

    @pytest.mark.asyncio
    async def test_create_and_replace_mutations(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"results": [{"id": "a"}]})

            created = await repo.create({"_type": "page"})
            await repo.create_or_replace({"_id": "a", "_type": "page"})

        assert created == {"_id": "a"}
        first, second = mock_post.call_args_list
        assert first.kwargs["json"] == {"mutations": [{"create": {"_type": "page"}}]}
        assert second.kwargs["json"] == {
            "mutations": [{"createOrReplace": {"_id": "a", "_type": "page"}}]
        }

    @pytest.mark.asyncio
    async def test_delete_falls_back_to_id(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"results": []})
            assert await repo.delete("a") == {"_id": "a"}

    @pytest.mark.asyncio
    async def test_get_document_queries_both_variants(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"result": {"_id": "drafts.a", "slug": "x"}})

            document = await repo.get_document("drafts.a", "{slug}")

        assert document["_id"] == "drafts.a"
        body = mock_post.call_args.kwargs["json"]
        assert body["query"] == "*[_id == $id || _id == $draftId][0]{slug}"
        assert body["params"] == {"id": "a", "draftId": "drafts.a"}


class TestErrors:
    @pytest.mark.asyncio
    async def test_transport_error(self, repo):
        with patch.object(
            httpx.AsyncClient,
            "post",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(ContentRepositoryError) as exc_info:
                await repo.fetch("*")

        assert exc_info.value.status_code is None
        assert "Connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_structured_error_description(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(
                403, {"error": {"description": "Insufficient permissions"}}
            )
            with pytest.raises(ContentRepositoryError) as exc_info:
                await repo.delete("a")

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Insufficient permissions"

    @pytest.mark.asyncio
    async def test_string_error(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(
                400, {"error": "Bad Request", "message": "Invalid query"}
            )
            with pytest.raises(ContentRepositoryError, match="Invalid query"):
                await repo.fetch("*[")

    @pytest.mark.asyncio
    async def test_non_json_error(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(502, text="Bad Gateway")
            with pytest.raises(ContentRepositoryError) as exc_info:
                await repo.fetch("*")

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, text="<html>maintenance</html>")
            with pytest.raises(ContentRepositoryError, match="Invalid JSON") as exc_info:
                await repo.fetch("*")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_non_object_success_body(self, repo):
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, ["not", "an", "object"])
            with pytest.raises(ContentRepositoryError, match="expected an object"):
                await repo.fetch("*")

    @pytest.mark.asyncio
    async def test_enrichment_survives_malformed_body(self, repo):
        resolver = DocumentContextResolver(repository=repo)
        resolver.switch_conversation("c1")
        resolver.refresh(
            [Message(role=MessageRole.assistant, content='{"_id": "a", "_type": "page"}')]
        )
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, text="not json")
            await resolver.enrich()

        assert [d.document_id for d in resolver.documents] == ["a"]
        assert resolver.documents[0].slug is None
        assert resolver.documents[0].is_loading is False
