"""Tests for the AuditPipeline — stage ordering, routing, fallbacks, cancellation.

Generators are in-process doubles; no network is used.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from nimbus.audit.trail import ListSink, Severity
from nimbus.compliance import (
    ComplianceAuditor,
    Jurisdiction,
    LocationResolver,
    default_registry,
    default_resolver,
)
from nimbus.compliance.seed_data import JURISDICTIONS, POSTAL_PREFIXES
from nimbus.config import FALLBACK_MESSAGE, load_settings
from nimbus.errors import CollaboratorFailure, PipelineStateError
from nimbus.generation import GenerationRequest, GenerationResponse, StaticGenerator, TextGenerator
from nimbus.pipeline import (
    AuditPipeline,
    PipelineRequest,
    PipelineState,
    PipelineStateMachine,
    build_pipeline,
)
from nimbus.routing import Vertical

ROOFING_STAGES = [
    "Boot", "Route", "Load payload", "Resolve location",
    "Query rules", "Audit", "Inject", "Complete",
]


# ---------------------------------------------------------------------------
# Doubles and fixtures
# ---------------------------------------------------------------------------


class FailingGenerator(TextGenerator):
    def is_available(self) -> bool:
        return False

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        raise CollaboratorFailure("connection refused")


class BrokenGenerator(TextGenerator):
    def is_available(self) -> bool:
        return True

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        raise KeyError("response")


class SlowGenerator(TextGenerator):
    def __init__(self) -> None:
        self.cancelled = False

    def is_available(self) -> bool:
        return True

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return GenerationResponse(text="late")


class RecordingGenerator(StaticGenerator):
    def __init__(self) -> None:
        super().__init__()
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        return await super().generate(request)


def _auditor() -> ComplianceAuditor:
    return ComplianceAuditor(default_registry(), default_resolver())


def _pipeline(generator: TextGenerator | None = None, timeout: float = 1.0) -> AuditPipeline:
    return AuditPipeline(_auditor(), generator or StaticGenerator(), timeout=timeout)


def _collapse(stages: list[str]) -> list[str]:
    """Drop consecutive repeats so per-rule records count once."""
    out: list[str] = []
    for s in stages:
        if not out or out[-1] != s:
            out.append(s)
    return out


def _denver_request(*extra: dict[str, Any]) -> dict[str, Any]:
    return {
        "text": "Audit this roof estimate",
        "estimate": {
            "locationToken": "80202",
            "measurements": {"area": 3000, "pitch": "6/12"},
            "lineItems": [
                {"category": "RFG", "selector": "300", "description": "Shingles",
                 "quantity": 30.0, "unit": "SQ"},
                {"category": "RFG", "selector": "RIDGC", "description": "Ridge cap",
                 "quantity": 60.0, "unit": "LF"},
                *extra,
            ],
        },
    }


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


# ---------------------------------------------------------------------------
# Roofing requests
# ---------------------------------------------------------------------------


class TestRoofingAudit:
    def test_denver_injection(self, sink: ListSink) -> None:
        result = _pipeline().run_sync(_denver_request(), sink=sink)

        assert result.ok
        assert result.vertical is Vertical.ROOFING
        assert result.compliance is not None
        assert result.compliance.injected is True
        assert result.compliance.estimate.line_items[-1].selector == "IWS"
        assert result.payload is result.compliance
        warnings = [r for r in result.audit_trail if r.severity == Severity.WARNING]
        assert len(warnings) == 1
        assert "Denver Building Code 2022" in warnings[0].message

    def test_stage_order(self, sink: ListSink) -> None:
        result = _pipeline().run_sync(_denver_request(), sink=sink)
        assert sink.stages == ROOFING_STAGES
        assert result.stages == sink.stages

    def test_stage_order_when_compliant(self, sink: ListSink) -> None:
        iws = {"category": "RFG", "selector": "IWS", "description": "Ice & Water Shield",
               "quantity": 300.0, "unit": "SF"}
        result = _pipeline().run_sync(_denver_request(iws), sink=sink)
        assert _collapse(sink.stages) == ROOFING_STAGES
        assert result.compliance is not None
        assert result.compliance.injected is False

    def test_unknown_location(self, sink: ListSink) -> None:
        request = {"text": "roof audit", "estimate": {"locationToken": "ZZ99999", "lineItems": []}}
        result = _pipeline().run_sync(request, sink=sink)
        assert result.ok
        assert result.compliance is not None
        assert result.compliance.injected is False
        assert _collapse(sink.stages) == ROOFING_STAGES
        assert len([r for r in result.audit_trail if "No applicable rules" in r.message]) == 1

    def test_compliance_trail_is_full_trail(self) -> None:
        result = _pipeline().run_sync(_denver_request())
        assert result.compliance is not None
        assert result.compliance.audit_trail == result.audit_trail

    def test_payload_shape(self) -> None:
        data = _pipeline().run_sync(_denver_request()).to_payload()
        assert data["status"] == "ok"
        assert data["vertical"] == "roofing"
        assert data["result"]["injected"] is True
        assert [e["stage"] for e in data["result"]["auditTrail"]] == ROOFING_STAGES

    def test_roofing_without_estimate_uses_roofing_persona(self, sink: ListSink) -> None:
        generator = RecordingGenerator()
        result = _pipeline(generator).run_sync("My roof leaks after the hail", sink=sink)
        assert result.compliance is None
        assert result.response is not None
        assert result.response.persona == "Nimbus Roofing Specialist"
        assert sink.stages == ["Boot", "Route", "Generate", "Complete"]
        assert generator.requests[0].system

    def test_estimate_on_non_roofing_request_is_not_audited(self) -> None:
        request = _denver_request()
        request["text"] = "Plan a marketing campaign"
        result = _pipeline().run_sync(request)
        assert result.vertical is Vertical.MARKETING
        assert result.compliance is None
        assert result.response is not None


# ---------------------------------------------------------------------------
# Routed (generated) responses
# ---------------------------------------------------------------------------


class TestRoutedResponses:
    def test_marketing_persona(self, sink: ListSink) -> None:
        generator = StaticGenerator({"Nimbus Marketing Strategist": "Post daily."})
        result = _pipeline(generator).run_sync("Plan a social media campaign", sink=sink)
        assert result.ok
        assert result.response is not None
        assert result.response.text == "Post daily."
        assert result.response.fallback is False
        assert sink.stages == ["Boot", "Route", "Generate", "Complete"]

    def test_general_persona(self) -> None:
        result = _pipeline().run_sync("Build a startup")
        assert result.vertical is Vertical.GENERAL
        assert result.response is not None
        assert result.response.persona == "Nimbus IQ Master Architect"

    def test_accepts_pipeline_request(self) -> None:
        result = _pipeline().run_sync(PipelineRequest(text="hello"))
        assert result.ok

    def test_collaborator_failure_falls_back(self, sink: ListSink) -> None:
        result = _pipeline(FailingGenerator()).run_sync("hello", sink=sink)
        assert result.ok
        assert result.response is not None
        assert result.response.text == FALLBACK_MESSAGE
        assert result.response.fallback is True
        generate = [r for r in result.audit_trail if r.stage == "Generate"]
        assert len(generate) == 1
        assert generate[0].severity == Severity.WARNING
        assert "connection refused" in generate[0].message
        assert sink.stages == ["Boot", "Route", "Generate", "Complete"]

    def test_unexpected_generator_error_falls_back(self) -> None:
        result = _pipeline(BrokenGenerator()).run_sync("hello")
        assert result.ok
        assert result.response is not None
        assert result.response.fallback is True

    def test_timeout_falls_back(self) -> None:
        generator = SlowGenerator()
        result = _pipeline(generator, timeout=0.05).run_sync("hello")
        assert result.ok
        assert result.response is not None
        assert result.response.text == FALLBACK_MESSAGE
        assert "timed out" in result.audit_trail[-2].message
        assert generator.cancelled is True


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class TestValidationErrors:
    def test_malformed_estimate(self, sink: ListSink) -> None:
        request = {"text": "roof audit", "estimate": {"lineItems": [{"category": "RFG"}]}}
        result = _pipeline().run_sync(request, sink=sink)

        assert result.status == "error"
        assert result.error is not None
        assert result.error.kind == "validation"
        assert any("locationToken" in d for d in result.error.details)
        assert sink.stages == ["Boot", "Route", "Complete"]
        assert result.audit_trail[-1].severity == Severity.WARNING
        assert result.states[-1] is PipelineState.COMPLETE

    def test_empty_text(self) -> None:
        result = _pipeline().run_sync("   ")
        assert result.status == "error"
        assert result.error is not None
        assert result.error.kind == "validation"
        assert result.vertical is None

    def test_wrong_input_type(self) -> None:
        result = _pipeline().run_sync(42)  # type: ignore[arg-type]
        assert result.status == "error"
        assert result.error is not None
        assert "int" in result.error.details[0]

    def test_estimate_not_an_object(self) -> None:
        result = _pipeline().run_sync({"text": "roof", "estimate": ["80202"]})
        assert result.status == "error"

    def test_one_bad_request_does_not_affect_another(self) -> None:
        pipeline = _pipeline()

        async def both() -> list[Any]:
            bad = {"text": "roof", "estimate": {"lineItems": "nope"}}
            return await asyncio.gather(pipeline.run(bad), pipeline.run(_denver_request()))

        bad, good = asyncio.run(both())
        assert bad.status == "error"
        assert good.ok


# ---------------------------------------------------------------------------
# State machine and cancellation
# ---------------------------------------------------------------------------


class TestStateMachine:
    def test_successful_run_history(self) -> None:
        result = _pipeline().run_sync("hello")
        assert result.states == [
            PipelineState.IDLE,
            PipelineState.ROUTING,
            PipelineState.PROCESSING,
            PipelineState.COMPLETE,
        ]

    def test_no_back_transitions(self) -> None:
        machine = PipelineStateMachine()
        machine.advance(PipelineState.ROUTING)
        with pytest.raises(PipelineStateError):
            machine.advance(PipelineState.IDLE)

    def test_complete_is_terminal(self) -> None:
        machine = PipelineStateMachine()
        machine.advance(PipelineState.COMPLETE)
        with pytest.raises(PipelineStateError):
            machine.advance(PipelineState.ROUTING)

    def test_each_run_starts_fresh(self) -> None:
        pipeline = _pipeline()
        first = pipeline.run_sync("hello")
        second = pipeline.run_sync("hello")
        assert second.states[0] is PipelineState.IDLE
        assert len(first.audit_trail) == len(second.audit_trail)


class TestCancellation:
    def test_cancel_before_start(self, sink: ListSink) -> None:
        async def go() -> Any:
            cancel = asyncio.Event()
            cancel.set()
            return await _pipeline().run("hello", sink=sink, cancel=cancel)

        result = asyncio.run(go())
        assert result.status == "cancelled"
        assert sink.stages == []

    def test_cancel_during_generation(self, sink: ListSink) -> None:
        generator = SlowGenerator()
        pipeline = _pipeline(generator, timeout=5.0)

        async def go() -> Any:
            cancel = asyncio.Event()
            task = asyncio.ensure_future(pipeline.run("hello", sink=sink, cancel=cancel))
            await asyncio.sleep(0.05)
            cancel.set()
            return await asyncio.wait_for(task, timeout=2.0)

        result = asyncio.run(go())
        assert result.status == "cancelled"
        assert result.stages == ["Boot", "Route"]
        assert result.response is None
        assert generator.cancelled is True

    def test_cancel_after_generation_stops_before_next_stage(self, sink: ListSink) -> None:
        cancel_holder: dict[str, asyncio.Event] = {}

        class CancellingGenerator(StaticGenerator):
            async def generate(self, request: GenerationRequest) -> GenerationResponse:
                cancel_holder["event"].set()
                return await super().generate(request)

        async def go() -> Any:
            cancel_holder["event"] = asyncio.Event()
            return await _pipeline(CancellingGenerator()).run(
                "hello", sink=sink, cancel=cancel_holder["event"],
            )

        result = asyncio.run(go())
        assert result.status == "cancelled"
        assert sink.stages == ["Boot", "Route"]
        assert result.states[-1] is PipelineState.COMPLETE

    def test_cancel_during_audit_stops_before_next_audit_stage(self, sink: ListSink) -> None:
        cancel = asyncio.Event()

        class CancellingResolver(LocationResolver):
            def resolve(self, location_token: str) -> Jurisdiction:
                cancel.set()
                return super().resolve(location_token)

        resolver = CancellingResolver(JURISDICTIONS, POSTAL_PREFIXES)
        auditor = ComplianceAuditor(default_registry(), resolver)
        pipeline = AuditPipeline(auditor, StaticGenerator(), timeout=1.0)

        result = asyncio.run(pipeline.run(_denver_request(), sink=sink, cancel=cancel))
        assert result.status == "cancelled"
        assert _collapse(sink.stages) == ["Boot", "Route", "Load payload", "Resolve location"]
        assert result.compliance is None


# ---------------------------------------------------------------------------
# Concurrency and wiring
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_concurrent_runs_keep_their_own_trails(self) -> None:
        pipeline = _pipeline()
        sinks = [ListSink() for _ in range(10)]

        async def go() -> list[Any]:
            runs = []
            for i, s in enumerate(sinks):
                request: dict[str, Any] | str = _denver_request() if i % 2 == 0 else "Plan a campaign"
                runs.append(pipeline.run(request, sink=s))
            return await asyncio.gather(*runs)

        results = asyncio.run(go())
        for i, (result, s) in enumerate(zip(results, sinks)):
            assert result.ok
            if i % 2 == 0:
                assert s.stages == ROOFING_STAGES
            else:
                assert s.stages == ["Boot", "Route", "Generate", "Complete"]

    def test_slow_generation_does_not_block_audits(self) -> None:
        pipeline = _pipeline(SlowGenerator(), timeout=0.5)

        async def go() -> tuple[Any, Any]:
            slow = asyncio.ensure_future(pipeline.run("hello"))
            fast = await pipeline.run(_denver_request())
            done_first = not slow.done()
            await slow
            return fast, done_first

        fast, done_first = asyncio.run(go())
        assert fast.ok
        assert done_first is True


class TestBuildPipeline:
    def test_testing_profile_uses_static_generator(self) -> None:
        pipeline = build_pipeline(load_settings({"NIMBUS_ENV": "testing"}))
        assert isinstance(pipeline.generator, StaticGenerator)
        assert pipeline.timeout == 2.0
        assert pipeline.run_sync("hello").ok

    def test_default_sink(self, sink: ListSink) -> None:
        pipeline = build_pipeline(load_settings({"NIMBUS_ENV": "testing"}), sink=sink)
        pipeline.run_sync(_denver_request())
        assert sink.stages == ROOFING_STAGES
