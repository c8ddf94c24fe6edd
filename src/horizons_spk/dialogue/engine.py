"""State machine that drives a stage table over a session.

A run moves ``NotStarted -> stage[0] -> ... -> stage[n-1] -> Completed``, and
any stage may end in ``Aborted`` on a deadline, an error pattern, a malformed
capture or a lost connection. The session is closed on every path, sending
the table's cancel token once. A ``TemplateError`` from a stage table that
references an unknown value is a configuration bug and propagates after the
session is closed.
"""

import logging
from typing import Any, Mapping, Optional

from horizons_spk.constants import DIAGNOSTIC_TAIL_LINES
from horizons_spk.dialogue.errors import (
    MalformedCaptureError,
    SessionClosedError,
    StageTimeoutError,
)
from horizons_spk.dialogue.patterns import PatternKind, PatternMatch
from horizons_spk.dialogue.stage import (
    DialogueContext,
    Stage,
    StageTable,
    narrow_numeric,
    render,
)
from horizons_spk.models.outcome import AbortReason, Outcome
from horizons_spk.session.base import SessionClient
from horizons_spk.utils.terminal import tail_excerpt

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Internal signal carrying the outcome of an aborted stage."""

    def __init__(self, reason: AbortReason, diagnostic_text: str, detail: Optional[str] = None):
        super().__init__(reason.value)
        self.reason = reason
        self.diagnostic_text = diagnostic_text
        self.detail = detail


class DialogueEngine:
    """Run one stage table to a terminal outcome over a fresh session."""

    def __init__(self, session: SessionClient):
        self.session = session

    def run(self, table: StageTable, inputs: Mapping[str, Any]) -> Outcome:
        context = DialogueContext()
        index = 0
        stage_name = None
        try:
            if table.seed is not None:
                context.update(table.seed(inputs))

            try:
                self.session.connect()
            except ConnectionError as e:
                logger.error(f"[{table.name}] connection failed: {e}")
                return Outcome.aborted(
                    AbortReason.CONNECTION_ERROR, diagnostic_text=str(e), context=context.values
                )

            for index, stage in enumerate(table):
                stage_name = stage.name
                if not stage.applies(inputs):
                    logger.debug(f"[{table.name}] skipping stage {index} ({stage.name})")
                    continue
                logger.debug(f"[{table.name}] entering stage {index} ({stage.name})")
                self._run_stage(table, stage, inputs, context)

        except _Abort as abort:
            logger.warning(
                f"[{table.name}] aborted at stage {index} ({stage_name}): "
                f"{abort.reason.value} {abort.diagnostic_text!r}"
            )
            return Outcome.aborted(
                abort.reason,
                diagnostic_text=abort.diagnostic_text,
                detail=abort.detail,
                stage_index=index,
                stage_name=stage_name,
                context=context.values,
            )
        finally:
            self.session.close(farewell=table.cancel_token)

        logger.info(f"[{table.name}] completed with {context.as_dict()}")
        return Outcome.completed(context.as_dict())

    def _run_stage(
        self,
        table: StageTable,
        stage: Stage,
        inputs: Mapping[str, Any],
        context: DialogueContext,
    ) -> None:
        message = render(stage.send, inputs, context) if stage.send is not None else None
        try:
            if message is not None:
                self.session.send(message)
            if not stage.patterns:
                return

            hit = self.session.await_match(stage.patterns, stage.deadline)
            if hit.kind == PatternKind.TRANSIENT_FAULT:
                hit = self._retry_once(table, stage, message, hit)

            if hit.kind == PatternKind.ERROR_SIGNAL:
                raise _Abort(hit.pattern.reason, hit.line, hit.pattern.detail)

            self._bind(table, stage, hit, context)
            if stage.derive is not None:
                context.update(stage.derive(inputs, context.values))

        except StageTimeoutError as e:
            raise _Abort(
                AbortReason.STAGE_TIMEOUT, tail_excerpt(e.buffered, DIAGNOSTIC_TAIL_LINES)
            ) from e
        except SessionClosedError as e:
            raise _Abort(
                AbortReason.CONNECTION_ERROR,
                tail_excerpt(e.buffered or self.session.transcript, DIAGNOSTIC_TAIL_LINES),
            ) from e

    def _retry_once(
        self,
        table: StageTable,
        stage: Stage,
        message: Optional[str],
        fault: PatternMatch,
    ) -> PatternMatch:
        """Apply the stage fallback and re-issue its message exactly once."""
        if stage.fallback is None:
            raise _Abort(AbortReason.TRANSIENT_FAULT_EXHAUSTED, fault.line)

        logger.warning(
            f"[{table.name}] transient fault in {stage.name}: {fault.line!r}; "
            f"retrying once after '{stage.fallback}'"
        )
        self.session.send(stage.fallback)
        acknowledgement = None
        if stage.fallback_ack is not None:
            ack = self.session.await_match((stage.fallback_ack,), stage.deadline)
            acknowledgement = ack.text.splitlines()[0].strip()
            logger.info(f"[{table.name}] fallback acknowledged: {acknowledgement!r}")
        if message is not None:
            self.session.send(message)

        hit = self.session.await_match(stage.patterns, stage.deadline)
        if hit.kind == PatternKind.TRANSIENT_FAULT:
            diagnostic = hit.line if acknowledgement is None else f"{acknowledgement} | {hit.line}"
            raise _Abort(AbortReason.TRANSIENT_FAULT_EXHAUSTED, diagnostic)
        return hit

    def _bind(
        self, table: StageTable, stage: Stage, hit: PatternMatch, context: DialogueContext
    ) -> None:
        values = {}
        for position, name in enumerate(stage.captures):
            raw = hit.groups[position] if position < len(hit.groups) else None
            try:
                if name in stage.numeric:
                    values[name] = narrow_numeric(name, raw)
                elif raw is None:
                    raise MalformedCaptureError(name, raw, expected="a captured value")
                else:
                    values[name] = raw.strip()
            except MalformedCaptureError as e:
                raise _Abort(AbortReason.MALFORMED_CAPTURE, hit.line, name) from e

        for name, value in values.items():
            logger.info(f"[{table.name}] captured {name}={value!r}")
        context.update(values)
