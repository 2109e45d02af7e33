import asyncio
import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from pydantic import ValidationError

from docflow.analysis import AnalysisInvoker, AnalysisResult, TierOutcome
from docflow.analysis.invoker import build_user_prompt
from docflow.connectors.base import CompletionServiceResponse
from docflow.documents import ChunkSetMetadata, DocumentChunkSet
from docflow.errors import ServiceError
from docflow.simulator import FailureConfig, FailureRule, create_simulator
from docflow.workflow.schema import AIAgentConfig

CONTENT = "[Section 1/1]\nQuarterly revenue growth was strong. Customer retention improved across regions."


def chunk_set(content: str = CONTENT) -> DocumentChunkSet:
    return DocumentChunkSet(
        document_id="doc-1",
        content=content,
        metadata=ChunkSetMetadata(chunking_strategy="balanced", total_chunks=4, selected_chunks=1),
    )


def invoker_with(rules: dict[str, FailureRule] | None = None):
    failures = FailureConfig(rules=rules) if rules else None
    state, _, analysis, completion = create_simulator(failure_config=failures)
    return state, AnalysisInvoker(analysis, completion)


class RecordingCompletion:
    def __init__(self, response: CompletionServiceResponse | None = None):
        self.requests = []
        self.response = response or CompletionServiceResponse(success=True, response="ok")

    async def complete(self, request):
        self.requests.append(request)
        return self.response


class ExplodingAnalysis:
    async def analyze(self, analysis_type, request):
        raise ConnectionResetError("socket closed")


class AnalysisInvokerTests(unittest.TestCase):
    def test_structured_success_uses_high_confidence(self):
        state, invoker = invoker_with()

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="comprehensive")))

        self.assertTrue(result.success)
        self.assertEqual(result.confidence, 0.95)
        self.assertEqual(result.metadata.processing_method, "structured_analysis")
        self.assertIsNotNone(result.metadata.analysis_id)
        self.assertEqual(result.metadata.chunks_used, 1)
        self.assertEqual(result.metadata.total_chunks, 4)
        self.assertIn("# Comprehensive Document Analysis", result.formatted_text)
        self.assertEqual(state.calls_to("completion"), [])

    def test_structured_failure_falls_back_exactly_once(self):
        state, invoker = invoker_with(
            {"analysis.comprehensive": FailureRule(error_type="service_error", message="upstream 500")}
        )

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="comprehensive")))

        self.assertTrue(result.success)
        self.assertEqual(result.metadata.processing_method, "fallback_ai")
        self.assertEqual(result.confidence, 0.80)
        self.assertEqual(len(state.calls_to("completion")), 1)
        self.assertTrue(result.formatted_text.startswith("Analysis (gpt4o-mini):"))

    def test_auth_failure_still_falls_back(self):
        state, invoker = invoker_with(
            {"analysis.*": FailureRule(error_type="auth_error", message="token expired")}
        )

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="summary")))

        self.assertTrue(result.success)
        self.assertEqual(result.metadata.processing_method, "fallback_ai")
        self.assertEqual(len(state.calls_to("completion")), 1)

    def test_empty_structured_payload_falls_back(self):
        state, invoker = invoker_with(
            {"analysis.keywords": FailureRule(error_type="malformed_response")}
        )

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="keywords")))

        self.assertTrue(result.success)
        self.assertEqual(result.metadata.processing_method, "fallback_ai")
        self.assertEqual(len(state.calls_to("completion")), 1)

    def test_unexpected_exception_from_structured_tier_falls_back(self):
        completion = RecordingCompletion()
        invoker = AnalysisInvoker(ExplodingAnalysis(), completion)

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="sentiment")))

        self.assertTrue(result.success)
        self.assertEqual(result.raw_data, "ok")
        self.assertEqual(len(completion.requests), 1)

    def test_custom_analysis_skips_structured_tier(self):
        state, invoker = invoker_with()

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="custom")))

        self.assertTrue(result.success)
        self.assertEqual(result.metadata.processing_method, "fallback_ai")
        self.assertEqual(state.calls_to("analysis"), [])
        self.assertEqual(len(state.calls_to("completion")), 1)

    def test_both_tiers_failing_reports_both_errors(self):
        state, invoker = invoker_with(
            {
                "analysis.summary": FailureRule(error_type="timeout", message="analysis timed out"),
                "completion.complete": FailureRule(error_type="unsuccessful", message="model overloaded"),
            }
        )

        result = asyncio.run(invoker.analyze(chunk_set(), AIAgentConfig(analysis_type="summary")))

        self.assertFalse(result.success)
        self.assertIsNone(result.raw_data)
        self.assertIsNone(result.formatted_text)
        self.assertEqual(result.confidence, 0.0)
        self.assertIn("analysis timed out", result.error)
        self.assertIn("model overloaded", result.error)
        self.assertIn("; ", result.error)

    def test_json_output_format_returns_data_payload(self):
        _, invoker = invoker_with()
        config = AIAgentConfig(analysis_type="custom", output_format="json")

        result = asyncio.run(invoker.analyze(chunk_set(), config))

        self.assertIsInstance(result.raw_data, dict)
        self.assertIn("keywords", result.raw_data)

    def test_fallback_request_carries_prompt_and_generation_settings(self):
        completion = RecordingCompletion()
        invoker = AnalysisInvoker(ExplodingAnalysis(), completion)
        config = AIAgentConfig(
            analysis_type="custom",
            model_type="claude-3-haiku",
            system_prompt="You are terse.",
            user_prompt="List risks in:\n{DOCUMENT_CONTENT}\nThanks.",
            temperature=0.2,
            max_tokens=300,
        )

        asyncio.run(invoker.analyze(chunk_set("[Section 1/1]\nbody"), config))

        request = completion.requests[0]
        self.assertEqual(request.user_prompt, "List risks in:\n[Section 1/1]\nbody\nThanks.")
        self.assertEqual(request.system_prompt, "You are terse.")
        self.assertEqual(request.model, "claude-3-haiku")
        self.assertEqual(request.temperature, 0.2)
        self.assertEqual(request.max_tokens, 300)

    def test_probe_caps_max_tokens(self):
        completion = RecordingCompletion()
        invoker = AnalysisInvoker(ExplodingAnalysis(), completion)

        outcome = asyncio.run(invoker.probe(AIAgentConfig(max_tokens=4000)))

        self.assertTrue(outcome.ok)
        self.assertEqual(completion.requests[0].max_tokens, 500)
        self.assertIn("test document", completion.requests[0].user_prompt)

    def test_probe_reports_service_error(self):
        _, invoker = invoker_with(
            {"completion.complete": FailureRule(error_type="rate_limited", message="slow down")}
        )

        outcome = asyncio.run(invoker.probe(AIAgentConfig()))

        self.assertFalse(outcome.ok)
        self.assertIn("slow down", outcome.error)


class PromptAndOutcomeTests(unittest.TestCase):
    def test_placeholder_replaced_everywhere(self):
        self.assertEqual(build_user_prompt("{DOCUMENT_CONTENT}|{DOCUMENT_CONTENT}", "x"), "x|x")

    def test_template_without_placeholder_gets_content_appended(self):
        self.assertEqual(build_user_prompt("Summarise this.", "body"), "Summarise this.\n\nbody")

    def test_or_else_keeps_first_success(self):
        async def never():
            raise AssertionError("second tier should not run")

        first = TierOutcome(ok=True, payload="done", method="structured_analysis", confidence=0.95)
        self.assertIs(asyncio.run(first.or_else(never)), first)

    def test_failed_result_cannot_carry_payload(self):
        with self.assertRaises(ValidationError):
            AnalysisResult(document_id="d", success=False, analysis_type="summary", model="m")
        with self.assertRaises(ValidationError):
            AnalysisResult(
                document_id="d",
                success=False,
                analysis_type="summary",
                model="m",
                raw_data={"summary": "x"},
                error="boom",
            )

    def test_service_error_keeps_error_type(self):
        error = ServiceError("denied", "permission_denied")
        self.assertEqual(error.error_type, "permission_denied")
        self.assertEqual(str(error), "denied")


if __name__ == "__main__":
    unittest.main()
