"""AuditPipeline — route a request, then audit an estimate or generate a reply.

Usage::

    from nimbus.pipeline import build_pipeline

    pipeline = build_pipeline()
    result = await pipeline.run({
        "text": "Check this roof estimate",
        "estimate": {"locationToken": "80202", "lineItems": [...]},
    })
    result.to_payload()

Stages are emitted to the log sink in strict order::

    Boot -> Route -> Load payload -> Resolve location -> Query rules
         -> Audit -> Inject -> Complete           (roofing with an estimate)
    Boot -> Route -> Generate -> Complete         (everything else)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from nimbus.audit.trail import AuditRecord, AuditTrail, LogSink, Severity, Stage
from nimbus.compliance.auditor import ComplianceAuditor
from nimbus.compliance.location import default_resolver
from nimbus.compliance.registry import default_registry
from nimbus.compliance.report import ComplianceResult
from nimbus.config import DEFAULT_GENERATION_TIMEOUT, FALLBACK_MESSAGE, Settings, load_settings
from nimbus.errors import PipelineStateError, ValidationError
from nimbus.generation.personas import persona_for
from nimbus.generation.providers.base import TextGenerator
from nimbus.generation.providers.ollama import OllamaGenerator
from nimbus.generation.providers.static import StaticGenerator
from nimbus.generation.schema import GenerationRequest
from nimbus.models.estimate import Estimate
from nimbus.routing.intent import IntentClassifier, KeywordIntentRouter, Vertical

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class PipelineState(str, Enum):
    IDLE = "idle"
    ROUTING = "routing"
    PROCESSING = "processing"
    COMPLETE = "complete"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.ROUTING, PipelineState.COMPLETE}),
    PipelineState.ROUTING: frozenset({PipelineState.PROCESSING, PipelineState.COMPLETE}),
    PipelineState.PROCESSING: frozenset({PipelineState.COMPLETE}),
    PipelineState.COMPLETE: frozenset(),
}


class PipelineStateMachine:
    """Forward-only state tracker for one invocation."""

    def __init__(self) -> None:
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]

    def advance(self, target: PipelineState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise PipelineStateError(f"Illegal pipeline transition {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)


# ---------------------------------------------------------------------------
# Request / result models
# ---------------------------------------------------------------------------


class PipelineRequest(BaseModel):
    """Raw input: free text plus an optional estimate payload."""

    text: str = ""
    estimate: dict[str, Any] | None = None


class RoutedResponse(BaseModel):
    """Reply produced by the text generator for a routed request."""

    vertical: Vertical
    persona: str
    text: str
    fallback: bool = False
    """True when the generator failed and the fixed fallback text was used."""


class PipelineError(BaseModel):
    kind: str
    """'validation' or 'internal'."""

    message: str
    details: list[str] = Field(default_factory=list)


class PipelineResult(BaseModel):
    """Outcome of one invocation: a payload or a structured error, plus the trail."""

    status: Literal["ok", "error", "cancelled"] = "ok"
    vertical: Vertical | None = None
    compliance: ComplianceResult | None = None
    response: RoutedResponse | None = None
    error: PipelineError | None = None
    audit_trail: list[AuditRecord] = Field(default_factory=list)
    states: list[PipelineState] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def payload(self) -> ComplianceResult | RoutedResponse | None:
        return self.compliance if self.compliance is not None else self.response

    @property
    def stages(self) -> list[str]:
        return [r.stage for r in self.audit_trail]

    def to_payload(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status,
            "vertical": self.vertical.value if self.vertical else None,
        }
        if self.compliance is not None:
            data["result"] = self.compliance.to_payload()
        elif self.response is not None:
            data["result"] = self.response.model_dump(mode="json")
        if self.error is not None:
            data["error"] = self.error.model_dump()
        data["auditTrail"] = [r.model_dump(exclude_none=True, mode="json") for r in self.audit_trail]
        return data


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class _Cancelled(Exception):
    """Internal signal: the cancel event was set before a stage started."""


class _Invocation:
    """Per-call state: trail, state machine and cancellation check."""

    def __init__(self, trail: AuditTrail, cancel: asyncio.Event | None) -> None:
        self.trail = trail
        self.machine = PipelineStateMachine()
        self.cancel = cancel
        self.vertical: Vertical | None = None

    def check_cancelled(self, stage: Stage) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise _Cancelled(stage.value)

    def stage(self, stage: Stage, message: str, severity: Severity = Severity.INFO) -> None:
        self.check_cancelled(stage)
        self.trail.record(stage, message, severity)


def _coerce_request(raw_input: Any) -> PipelineRequest:
    if isinstance(raw_input, PipelineRequest):
        request = raw_input
    elif isinstance(raw_input, str):
        request = PipelineRequest(text=raw_input)
    elif isinstance(raw_input, dict):
        try:
            request = PipelineRequest.model_validate(raw_input)
        except PydanticValidationError as exc:
            details = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            ]
            raise ValidationError("Malformed request", details) from None
    else:
        raise ValidationError(
            "Request must be text or an object", [f"got {type(raw_input).__name__}"]
        )

    if not request.text.strip() and request.estimate is None:
        raise ValidationError("Empty request", ["text: must not be empty without an estimate"])
    return request


class AuditPipeline:
    """Orchestrate routing, compliance auditing and text generation.

    Each call to :meth:`run` is independent: it owns a fresh
    :class:`AuditTrail` and state machine.  The auditor, router and
    generator are shared read-only collaborators, so concurrent runs are
    safe without locking.

    Parameters
    ----------
    auditor:
        Compliance auditor used for roofing requests carrying an estimate.
    router:
        Intent classifier.  Defaults to :class:`KeywordIntentRouter`.
    generator:
        External text generator for every other request.
    timeout:
        Seconds allowed for one generation call.
    sink:
        Default log sink for audit records.
    """

    def __init__(
        self,
        auditor: ComplianceAuditor,
        generator: TextGenerator,
        *,
        router: IntentClassifier | None = None,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        sink: LogSink | None = None,
    ) -> None:
        self.auditor = auditor
        self.generator = generator
        self.router = router if router is not None else KeywordIntentRouter()
        self.timeout = timeout
        self.sink = sink

    async def run(
        self,
        raw_input: PipelineRequest | dict[str, Any] | str,
        *,
        sink: LogSink | None = None,
        cancel: asyncio.Event | None = None,
    ) -> PipelineResult:
        """Process one request.  Never raises for per-request failures.

        Parameters
        ----------
        raw_input:
            A :class:`PipelineRequest`, its dict form, or bare text.
        sink:
            Log sink for this call only; overrides the pipeline default.
        cancel:
            When set, the run stops before its next un-started stage and
            returns status ``'cancelled'`` with the records emitted so far.
        """
        inv = _Invocation(AuditTrail(sink if sink is not None else self.sink), cancel)
        compliance: ComplianceResult | None = None
        response: RoutedResponse | None = None

        try:
            inv.stage(Stage.BOOT, "Pipeline started.")
            request = _coerce_request(raw_input)

            inv.machine.advance(PipelineState.ROUTING)
            inv.check_cancelled(Stage.ROUTE)
            vertical = self.router.classify(request.text)
            inv.vertical = vertical
            inv.stage(Stage.ROUTE, f"Request routed to {vertical.value}.")

            inv.machine.advance(PipelineState.PROCESSING)
            if vertical is Vertical.ROOFING and request.estimate is not None:
                compliance = self._audit(inv, request.estimate)
            else:
                response = await self._generate(inv, vertical, request.text)

            if compliance is not None:
                summary = (
                    f"Audit complete: {len(compliance.injected_items)} item(s) injected."
                )
            else:
                summary = "Reply delivered."
            inv.stage(Stage.COMPLETE, summary)
            inv.machine.advance(PipelineState.COMPLETE)

        except _Cancelled as exc:
            logger.info("Pipeline cancelled before stage %s", exc)
            return self._finish(inv, "cancelled", compliance, response)

        except ValidationError as exc:
            inv.trail.record(Stage.COMPLETE, f"Request rejected: {exc}", Severity.WARNING)
            error = PipelineError(kind="validation", message=exc.message, details=exc.details)
            return self._finish(inv, "error", None, None, error)

        except Exception as exc:
            logger.exception("Pipeline failed unexpectedly")
            inv.trail.record(Stage.COMPLETE, f"Internal error: {exc}", Severity.WARNING)
            error = PipelineError(kind="internal", message=str(exc))
            return self._finish(inv, "error", None, None, error)

        return self._finish(inv, "ok", compliance, response)

    def run_sync(self, raw_input: PipelineRequest | dict[str, Any] | str, **kwargs: Any) -> PipelineResult:
        """Blocking wrapper around :meth:`run` for callers without an event loop."""
        return asyncio.run(self.run(raw_input, **kwargs))

    # -- Stages --------------------------------------------------------------

    def _audit(self, inv: _Invocation, payload: dict[str, Any]) -> ComplianceResult:
        inv.check_cancelled(Stage.LOAD_PAYLOAD)
        estimate = Estimate.from_payload(payload)
        inv.stage(
            Stage.LOAD_PAYLOAD,
            f"Loaded estimate for {estimate.location_token!r} "
            f"with {len(estimate.line_items)} line item(s).",
        )
        return self.auditor.audit(estimate, inv.trail, before_stage=inv.check_cancelled)

    async def _generate(self, inv: _Invocation, vertical: Vertical, text: str) -> RoutedResponse:
        inv.check_cancelled(Stage.GENERATE)
        persona = persona_for(vertical)
        gen_request = GenerationRequest(
            persona=persona.name,
            prompt=text,
            system=persona.system_instruction,
        )

        task = asyncio.ensure_future(
            asyncio.wait_for(self.generator.generate(gen_request), timeout=self.timeout)
        )
        try:
            if inv.cancel is not None:
                waiter = asyncio.ensure_future(inv.cancel.wait())
                try:
                    await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if not task.done():
                    raise _Cancelled(Stage.GENERATE.value)
            reply = await task
        except asyncio.TimeoutError:
            return self._fallback(inv, vertical, persona.name, f"timed out after {self.timeout:g}s")
        except _Cancelled:
            raise
        except Exception as exc:
            logger.debug("Text generation failed: %s", exc, exc_info=True)
            return self._fallback(inv, vertical, persona.name, str(exc) or type(exc).__name__)
        finally:
            if not task.done():
                task.cancel()
                await asyncio.wait({task})

        inv.stage(Stage.GENERATE, f"Reply generated by {persona.name}.")
        return RoutedResponse(vertical=vertical, persona=persona.name, text=reply.text)

    def _fallback(
        self, inv: _Invocation, vertical: Vertical, persona: str, reason: str,
    ) -> RoutedResponse:
        inv.stage(
            Stage.GENERATE,
            f"Text generation failed ({reason}); fallback message returned.",
            Severity.WARNING,
        )
        return RoutedResponse(vertical=vertical, persona=persona, text=FALLBACK_MESSAGE, fallback=True)

    # -- Result --------------------------------------------------------------

    @staticmethod
    def _finish(
        inv: _Invocation,
        status: Literal["ok", "error", "cancelled"],
        compliance: ComplianceResult | None,
        response: RoutedResponse | None,
        error: PipelineError | None = None,
    ) -> PipelineResult:
        if inv.machine.state is not PipelineState.COMPLETE:
            inv.machine.advance(PipelineState.COMPLETE)
        records = inv.trail.records
        if compliance is not None:
            compliance = compliance.model_copy(update={"audit_trail": records})
        return PipelineResult(
            status=status,
            vertical=inv.vertical,
            compliance=compliance,
            response=response,
            error=error,
            audit_trail=records,
            states=list(inv.machine.history),
        )


def build_pipeline(settings: Settings | None = None, *, sink: LogSink | None = None) -> AuditPipeline:
    """Wire the seeded registry, resolver, keyword router and configured generator.

    Raises
    ------
    ConfigurationError
        If the embedded tables or the settings are invalid.
    """
    if settings is None:
        settings = load_settings()

    auditor = ComplianceAuditor(default_registry(), default_resolver())
    if settings.generation_provider == "static":
        generator: TextGenerator = StaticGenerator()
    else:
        generator = OllamaGenerator(
            base_url=settings.ollama_host,
            model=settings.model,
            timeout=settings.generation_timeout,
        )
    return AuditPipeline(
        auditor,
        generator,
        router=KeywordIntentRouter(),
        timeout=settings.generation_timeout,
        sink=sink,
    )
