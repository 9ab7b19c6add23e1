"""The extraction controller: a finite state machine over extraction tiers.

The controller does not parse pages or drive a browser. It sequences the
allowlist guard, the sandbox fixtures and the two extractors according to
the requested mode, with deterministic phase transitions.

Responsibilities:
- Walk START -> GUARD -> {SANDBOX | HTML | BROWSER} -> DONE | FAILED
- Bound every tier call with its timeout budget
- Apply the completeness check at every tier boundary
- In auto mode, escalate html -> browser on failure, except for policy
  violations and timeouts, which end the run immediately

MUST NOT:
- Retry a tier automatically
- Swallow a failure without recording it
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable

from labelguard.browser.extractor import BrowserExtractor
from labelguard.conduit.fallback import FallbackExhausted, Strategy, run_fallback
from labelguard.conduit.phases import TERMINAL_PHASES, VALID_TRANSITIONS, Phase
from labelguard.config.settings import AllowlistConfig, TimeoutConfig
from labelguard.config.url_policy import ensure_allowed_url
from labelguard.pipeline.extraction import (
    ExtractionMode,
    ExtractionRequest,
    ProductRecord,
    is_minimally_complete,
)
from labelguard.pipeline.fixtures import sandbox_lookup
from labelguard.pipeline.html_extractor import HTMLExtractor
from labelguard.telemetry.errors import (
    DomainNotAllowed,
    ExtractionFailed,
    ExtractionIncomplete,
    TimeoutExceeded,
)

logger = logging.getLogger(__name__)

# Failures that end an auto-mode run instead of escalating to the next tier
TERMINAL_ERRORS: tuple[type[BaseException], ...] = (DomainNotAllowed, TimeoutExceeded)


class ControllerError(Exception):
    """Raised on an illegal phase transition."""


class ExtractionController:
    """Controls a single extraction request from START to DONE or FAILED.

    One instance per request; the extractors it delegates to are shared.
    """

    def __init__(
        self,
        allowlist: AllowlistConfig,
        timeouts: TimeoutConfig,
        html_extractor: HTMLExtractor,
        browser_extractor: BrowserExtractor,
    ) -> None:
        self._allowlist = allowlist
        self._timeouts = timeouts
        self._html = html_extractor
        self._browser = browser_extractor
        self._phase = Phase.START
        self._history: list[Phase] = [Phase.START]

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def history(self) -> list[Phase]:
        return list(self._history)

    # --- Phase Transition ---

    def _transition(self, to_phase: Phase, context: dict[str, Any] | None = None) -> None:
        """Transition to a new phase with guard validation.

        Every phase transition MUST go through this method.
        """
        if to_phase not in VALID_TRANSITIONS.get(self._phase, set()):
            raise ControllerError(f"Invalid transition: {self._phase.value} -> {to_phase.value}")

        from_phase = self._phase
        self._phase = to_phase
        self._history.append(to_phase)
        logger.info(
            "phase transition",
            extra={"from_phase": from_phase.value, "to_phase": to_phase.value, **(context or {})},
        )

    def _fail(self, reason: str) -> None:
        if self._phase not in TERMINAL_PHASES:
            self._transition(Phase.FAILED, {"reason": reason})

    # --- Tiers ---

    async def _bounded(self, tier: str, call: Awaitable[ProductRecord | None], budget_s: float) -> ProductRecord | None:
        try:
            return await asyncio.wait_for(call, timeout=budget_s)
        except asyncio.TimeoutError as exc:
            raise TimeoutExceeded(f"{tier} extraction timed out after {budget_s}s") from exc

    async def _run_html(self, url: str) -> ProductRecord | None:
        return await self._bounded(
            "html", self._html.extract(url), self._timeouts.html_extraction_timeout_s
        )

    async def _run_browser(self, url: str) -> ProductRecord | None:
        return await self._bounded(
            "browser", self._browser.extract(url), self._timeouts.browser_extraction_timeout_s
        )

    async def _run_single(self, phase: Phase, request: ExtractionRequest) -> ProductRecord:
        self._transition(phase)
        if phase is Phase.SANDBOX:
            return sandbox_lookup(request.url)
        if phase is Phase.HTML:
            record = await self._run_html(request.url)
        else:
            record = await self._run_browser(request.url)
        if record is None or not is_minimally_complete(record):
            raise ExtractionIncomplete(f"Extraction incomplete ({phase.value.lower()}).")
        return record

    async def _run_auto(self, request: ExtractionRequest) -> ProductRecord:
        strategies: list[Strategy[ProductRecord]] = [
            Strategy("html", lambda: self._run_html(request.url)),
            Strategy("browser", lambda: self._run_browser(request.url)),
        ]
        try:
            result = await run_fallback(
                strategies,
                accept=is_minimally_complete,
                terminal=TERMINAL_ERRORS,
                on_start=lambda strategy: self._transition(Phase(strategy.name.upper())),
            )
        except FallbackExhausted as exc:
            raise ExtractionFailed("Extraction failed after all strategies.") from exc
        return result.value

    # --- Main Run ---

    async def run(self, request: ExtractionRequest) -> ProductRecord:
        """Execute one extraction and return the record, or raise a LabelGuardError."""
        started = time.monotonic()
        try:
            self._transition(Phase.GUARD, {"url": request.url, "mode": request.mode.value})
            ensure_allowed_url(request.url, self._allowlist)

            if request.mode is ExtractionMode.SANDBOX:
                record = await self._run_single(Phase.SANDBOX, request)
            elif request.mode is ExtractionMode.HTML:
                record = await self._run_single(Phase.HTML, request)
            elif request.mode is ExtractionMode.BROWSER:
                record = await self._run_single(Phase.BROWSER, request)
            else:
                record = await self._run_auto(request)
        except Exception as exc:
            self._fail(str(exc))
            raise

        self._transition(
            Phase.DONE,
            {"platform": record.platform, "duration_s": round(time.monotonic() - started, 2)},
        )
        return record
