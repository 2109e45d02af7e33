import asyncio
import json
import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

import httpx

from docflow.connectors import AnalysisServiceConnector, BaseConnector, ChunkServiceConnector, CompletionConnector
from docflow.connectors.base import AnalysisOptions, AnalysisRequest, ChunkServiceResponse, CompletionRequest
from docflow.documents import ChunkRetriever
from docflow.documents.chunking import chunk_stats, estimate_tokens, join_sections, select_chunks
from docflow.errors import ServiceError

CHUNKS = [f"chunk {i}" for i in range(20)]


class StaticChunkService:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error

    async def fetch_chunks(self, document_id, *, strategy, max_chunks):
        if self.error is not None:
            raise self.error
        return self.response


def run_with_transport(handler, call):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await call(client)

    return asyncio.run(go())


class ChunkSelectionTests(unittest.TestCase):
    def test_first_never_exceeds_three(self):
        self.assertEqual(select_chunks(CHUNKS, "first", 10), CHUNKS[:3])
        self.assertEqual(select_chunks(CHUNKS, "first", 2), CHUNKS[:2])

    def test_summary_picks_first_middle_last(self):
        self.assertEqual(select_chunks(CHUNKS, "summary", 10), ["chunk 0", "chunk 10", "chunk 19"])
        self.assertEqual(select_chunks(CHUNKS[:3], "summary", 10), CHUNKS[:3])

    def test_all_truncates_to_max(self):
        self.assertEqual(select_chunks(CHUNKS, "all", 5), CHUNKS[:5])

    def test_balanced_spreads_evenly(self):
        self.assertEqual(select_chunks(CHUNKS, "balanced", 4), ["chunk 0", "chunk 5", "chunk 10", "chunk 15"])
        self.assertEqual(select_chunks(CHUNKS[:4], "balanced", 10), CHUNKS[:4])

    def test_token_estimate_and_stats(self):
        self.assertEqual(estimate_tokens(["one two three", "four"]), 6)
        stats = chunk_stats(["ab cd", "efgh"])
        self.assertEqual(stats.total_words, 3)
        self.assertEqual(stats.largest_chunk, 5)
        self.assertIsNone(chunk_stats([]))

    def test_join_sections_marks_every_chunk(self):
        self.assertEqual(
            join_sections(["alpha", "beta"]),
            "[Section 1/2]\nalpha\n\n---\n\n[Section 2/2]\nbeta",
        )


class ChunkRetrieverTests(unittest.TestCase):
    def test_successful_response_is_joined_with_markers(self):
        response = ChunkServiceResponse.model_validate(
            {
                "success": True,
                "chunks": [{"content": "First part."}, {"content": "Second part."}],
                "processingInfo": {
                    "selectedChunks": 2,
                    "totalChunks": 7,
                    "strategy": "summary",
                    "stats": {"estimatedTokens": 42},
                },
            }
        )
        retriever = ChunkRetriever(StaticChunkService(response))

        chunk_set = asyncio.run(retriever.get_chunks("doc-9", strategy="summary", max_chunks=3))

        self.assertFalse(chunk_set.is_error)
        self.assertEqual(chunk_set.content, "[Section 1/2]\nFirst part.\n\n---\n\n[Section 2/2]\nSecond part.")
        self.assertEqual(chunk_set.metadata.total_chunks, 7)
        self.assertEqual(chunk_set.metadata.selected_chunks, 2)
        self.assertEqual(chunk_set.metadata.estimated_tokens, 42)

    def test_missing_stats_are_estimated_locally(self):
        response = ChunkServiceResponse(success=True, chunks=[{"content": "one two three four five"}])
        chunk_set = asyncio.run(ChunkRetriever(StaticChunkService(response)).get_chunks("d"))

        self.assertEqual(chunk_set.metadata.estimated_tokens, 7)
        self.assertEqual(chunk_set.metadata.total_chunks, 1)
        self.assertEqual(chunk_set.metadata.chunking_strategy, "balanced")

    def test_unsuccessful_response_becomes_flagged_set(self):
        response = ChunkServiceResponse(success=False, error="Document has no blob")
        chunk_set = asyncio.run(ChunkRetriever(StaticChunkService(response)).get_chunks("d7"))

        self.assertTrue(chunk_set.is_error)
        self.assertEqual(chunk_set.content, "Error: Could not retrieve document d7 - Document has no blob")
        self.assertEqual(chunk_set.metadata.error, "Document has no blob")

    def test_exception_never_escapes(self):
        service = StaticChunkService(error=ServiceError("gateway down", "transport_error"))
        chunk_set = asyncio.run(ChunkRetriever(service).get_chunks("d8", strategy="first"))

        self.assertTrue(chunk_set.is_error)
        self.assertIn("gateway down", chunk_set.content)
        self.assertEqual(chunk_set.metadata.chunking_strategy, "first")


class ConnectorTests(unittest.TestCase):
    def test_connectors_must_define_from_settings(self):
        class Incomplete(BaseConnector):
            service_name = "incomplete"

        client = httpx.AsyncClient()
        with self.assertRaises(TypeError):
            BaseConnector("http://x.test", client, 5)
        with self.assertRaises(TypeError):
            Incomplete("http://x.test", client, 5)
        self.assertIsInstance(ChunkServiceConnector("http://x.test", client, 5), BaseConnector)
        asyncio.run(client.aclose())

    def test_chunk_connector_sends_strategy_and_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True, "chunks": [{"content": "hello"}]})

        response = run_with_transport(
            handler,
            lambda client: ChunkServiceConnector("http://docs.test/api/", client, 5, "secret").fetch_chunks(
                "abc", strategy="first", max_chunks=3
            ),
        )

        self.assertTrue(response.success)
        self.assertEqual(response.chunks[0].content, "hello")
        self.assertEqual(seen["url"].path, "/api/documents/abc/chunks")
        self.assertEqual(seen["url"].params["chunkingStrategy"], "first")
        self.assertEqual(seen["url"].params["maxChunks"], "3")
        self.assertEqual(seen["auth"], "Bearer secret")

    def test_analysis_connector_posts_camel_case_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "analysis": {"summary": "s"}, "analysisId": "a1"})

        request = AnalysisRequest(
            document_id="abc",
            document_content="text",
            options=AnalysisOptions(model_type="gpt4o-mini", include_sentiment=False),
        )
        response = run_with_transport(
            handler,
            lambda client: AnalysisServiceConnector("http://ai.test/api", client, 5).analyze("summary", request),
        )

        self.assertEqual(seen["path"], "/api/analysis/summary")
        self.assertEqual(seen["body"]["documentId"], "abc")
        self.assertEqual(seen["body"]["documentContent"], "text")
        self.assertEqual(seen["body"]["options"]["modelType"], "gpt4o-mini")
        self.assertFalse(seen["body"]["options"]["includeSentiment"])
        self.assertEqual(response.analysis_id, "a1")

    def test_completion_connector_posts_to_full_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "response": "done"})

        request = CompletionRequest(system_prompt="s", user_prompt="u", model="m", max_tokens=50)
        response = run_with_transport(
            handler,
            lambda client: CompletionConnector("http://ai.test/api/ai/complete", client, 5).complete(request),
        )

        self.assertEqual(seen["url"], "http://ai.test/api/ai/complete")
        self.assertEqual(seen["body"]["maxTokens"], 50)
        self.assertEqual(response.output, "done")

    def test_http_status_codes_map_to_error_types(self):
        for status, error_type in ((401, "auth_error"), (403, "permission_denied"), (404, "not_found"),
                                   (429, "rate_limited"), (502, "service_error")):
            def handler(request, status=status):
                return httpx.Response(status, json={"error": "nope"})

            with self.subTest(status=status):
                with self.assertRaises(ServiceError) as ctx:
                    run_with_transport(
                        handler,
                        lambda client: ChunkServiceConnector("http://docs.test", client, 5).fetch_chunks(
                            "x", strategy="balanced", max_chunks=10
                        ),
                    )
                self.assertEqual(ctx.exception.error_type, error_type)
                self.assertIn("nope", str(ctx.exception))

    def test_non_json_and_invalid_payloads_are_malformed(self):
        def html(request):
            return httpx.Response(200, text="<html>gateway</html>")

        def wrong_shape(request):
            return httpx.Response(200, json={"success": "maybe"})

        for handler in (html, wrong_shape):
            with self.subTest(handler=handler.__name__):
                with self.assertRaises(ServiceError) as ctx:
                    run_with_transport(
                        handler,
                        lambda client: ChunkServiceConnector("http://docs.test", client, 5).fetch_chunks(
                            "x", strategy="balanced", max_chunks=10
                        ),
                    )
                self.assertEqual(ctx.exception.error_type, "malformed_response")

    def test_timeouts_are_reported_as_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with self.assertRaises(ServiceError) as ctx:
            run_with_transport(
                handler,
                lambda client: CompletionConnector("http://ai.test/complete", client, 1).complete(
                    CompletionRequest(system_prompt="s", user_prompt="u", model="m")
                ),
            )
        self.assertEqual(ctx.exception.error_type, "timeout")


if __name__ == "__main__":
    unittest.main()
