"""Payment provider adapter — the deadline-aware attempt loop.

``PaymentProviderAdapter`` submits one payment to one provider account and
drives it to a definitive outcome before the caller's deadline. It owns no
shared state itself: the latency estimator and the admission gate are
injected services shared by every payment on the account, while the
attempt identity, retry counter and backoff live on the worker thread
running the loop.

ARCHITECTURE
────────────
::

    submit_payment()  ──▶ ThreadPoolExecutor ──▶ process_payment()
                                                   │
        report_submission ◀── INIT → SUBMITTED ────┤
                                                   ▼
        ┌──────────────── while scheduler.should_continue() ───────────────┐
        │ gate.admitted(deadline - now)        refused ─▶ DEADLINE_ABORTED │
        │ now + estimated >= deadline ?        yes     ─▶ DEADLINE_ABORTED │
        │ transport.call(timeout=estimator.current_timeout())              │
        │ decode → classify → report_processing                            │
        │ record_latency, release slot         (always)                    │
        │ SUCCESS ─▶ stop   TERMINAL ─▶ stop   RETRIABLE ─▶ sleep, double  │
        └──────────────────────────────────────────────────────────────────┘
                                                   │
        report_processing("max retries ...") ◀── EXHAUSTED

Deadline enforcement is soft by default: the deadline is checked before a
slot is taken and again before each call, but neither the rate-limiter
wait nor the backoff sleep is cut short. With ``strict_deadline`` both are
bounded by the time left. A call already in flight is never cancelled; it
runs to its own timeout.

A provider timeout is retried without a processing event. Any other
exception from the transport ends the loop with a failure event so every
payment still gets a final ledger entry.

Example::

    adapter = PaymentProviderAdapter(settings, ledger)
    adapter.submit_payment("p-1", amount=100, started_at=now_ms(), deadline=now_ms() + 5000)
    ...
    adapter.shutdown()
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor

from payspine.core.errors import (
    DEADLINE_EXCEEDED,
    AdmissionTimeout,
    AttemptsExhausted,
    BodyDecodeError,
    RetriableProviderError,
    TerminalProviderError,
)
from payspine.core.logging import LogContext, get_logger
from payspine.core.settings import ProviderAccountSettings
from payspine.core.timestamps import Clock, SystemClock
from payspine.execution.admission import AdmissionGate
from payspine.execution.classify import CallOutcome, Outcome, classify
from payspine.execution.latency import LatencyEstimator
from payspine.execution.ledger import PaymentLedger
from payspine.execution.models import AttemptReport, AttemptState, PaymentAttempt
from payspine.execution.retry import RetryScheduler
from payspine.execution.transport import (
    BodyDecoder,
    HttpxTransport,
    JsonBodyDecoder,
    PaymentRequest,
    Transport,
)

logger = get_logger(__name__)


class PaymentProviderAdapter:
    """Submits payments to one provider account.

    Args:
        settings: Account configuration
        ledger: Where submission and processing outcomes are reported
        transport: Provider transport (default: HttpxTransport on ``base_url``)
        decoder: Response body decoder (default: JsonBodyDecoder)
        estimator: Shared latency estimator (default: built from settings)
        gate: Shared admission gate (default: built from settings)
        clock: Time source (default: SystemClock)
    """

    def __init__(
        self,
        settings: ProviderAccountSettings,
        ledger: PaymentLedger,
        *,
        transport: Transport | None = None,
        decoder: BodyDecoder | None = None,
        estimator: LatencyEstimator | None = None,
        gate: AdmissionGate | None = None,
        clock: Clock | None = None,
    ):
        self.settings = settings
        self.ledger = ledger
        self.transport = transport or HttpxTransport(settings.base_url)
        self.decoder = decoder or JsonBodyDecoder()
        self.estimator = estimator or LatencyEstimator.from_settings(settings)
        self.gate = gate or AdmissionGate.from_settings(settings)
        self.clock = clock or SystemClock()
        self._executor: ThreadPoolExecutor | None = None

    # =========================================================================
    # EXPOSED SURFACE
    # =========================================================================

    def price(self) -> int:
        return self.settings.price

    def is_enabled(self) -> bool:
        return self.settings.enabled

    def provider_name(self) -> str:
        return self.settings.account_name

    def submit_payment(self, payment_id: str, amount: int, started_at: int, deadline: int) -> None:
        """Start the attempt loop on a worker thread and return immediately.

        The outcome is observable only through the ledger.
        """
        logger.info("payment_submit_requested", account=self.provider_name(), payment_id=str(payment_id))
        future = self._get_executor().submit(self.process_payment, payment_id, amount, started_at, deadline)
        future.add_done_callback(self._log_worker_failure)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting payments; optionally wait for running loops."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.settings.worker_threads,
                thread_name_prefix=f"payspine-{self.settings.account_name}",
            )
        return self._executor

    @staticmethod
    def _log_worker_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error("payment_worker_crashed", exc_info=error)

    # =========================================================================
    # ATTEMPT LOOP
    # =========================================================================

    def process_payment(self, payment_id: str, amount: int, started_at: int, deadline: int) -> AttemptReport:
        """Run the attempt loop for one payment on the calling thread."""
        attempt = PaymentAttempt.create(payment_id, amount, started_at, deadline)
        with LogContext(
            account=self.provider_name(),
            payment_id=attempt.payment_id,
            transaction_id=attempt.transaction_id,
        ):
            return self._run(attempt)

    def _run(self, attempt: PaymentAttempt) -> AttemptReport:
        now = self.clock.now_ms()
        self.ledger.report_submission(
            attempt.payment_id, attempt.transaction_id, True, now, now - attempt.started_at
        )
        logger.info("payment_submitted", elapsed_ms=now - attempt.started_at)

        avg = self.settings.average_processing_time_ms
        scheduler = RetryScheduler.for_deadline(attempt.started_at, attempt.deadline, avg)
        report = AttemptReport(attempt, AttemptState.SUBMITTED, max_attempts=scheduler.max_attempts)
        request = PaymentRequest(
            service_name=self.settings.service_name,
            account_name=self.settings.account_name,
            transaction_id=attempt.transaction_id,
            payment_id=attempt.payment_id,
            amount=attempt.amount,
        )

        while scheduler.should_continue():
            report.state = AttemptState.ATTEMPTING
            estimated = max(avg, self.estimator.estimated_processing_time())

            with self.gate.admitted(attempt.deadline - self.clock.now_ms()) as admitted:
                if not admitted:
                    return self._abort(report, scheduler, "no concurrency slot before deadline")
                if self.clock.now_ms() + estimated >= attempt.deadline:
                    return self._abort(report, scheduler, f"call would not finish before deadline ({estimated}ms)")
                outcome = self._call_once(attempt, request, report, scheduler.attempt)

            if outcome is Outcome.SUCCESS:
                return self._finish(report, scheduler, AttemptState.SUCCESS)
            if outcome.is_final:
                return self._finish(report, scheduler, AttemptState.TERMINAL_FAILURE)

            delay = scheduler.record_retry()
            if self.settings.strict_deadline:
                delay = min(delay, max(attempt.deadline - self.clock.now_ms(), 0))
            logger.warning(
                "payment_retry_scheduled",
                delay_ms=delay,
                attempt=scheduler.attempt,
                max_attempts=scheduler.max_attempts,
            )
            self.clock.sleep_ms(delay)

        # the last retriable failure stays reachable as the cause
        error = AttemptsExhausted(cause=report.error).with_context(**self._error_context(attempt, scheduler.attempt))
        logger.error("payment_attempts_exhausted", max_attempts=scheduler.max_attempts)
        self.ledger.report_processing(
            attempt.payment_id, attempt.transaction_id, False, self.clock.now_ms(), error.reason
        )
        report.error = error
        return self._finish(report, scheduler, AttemptState.EXHAUSTED)

    def _call_once(
        self,
        attempt: PaymentAttempt,
        request: PaymentRequest,
        report: AttemptReport,
        index: int,
    ) -> Outcome:
        """One provider call; the latency is recorded however it ends."""
        timeout_ms = self.estimator.current_timeout()
        started = self.clock.now_ms()
        report.calls += 1
        try:
            return self._exchange(attempt, request, report, index, timeout_ms)
        finally:
            self.estimator.record_latency(self.clock.now_ms() - started)

    def _exchange(
        self,
        attempt: PaymentAttempt,
        request: PaymentRequest,
        report: AttemptReport,
        index: int,
        timeout_ms: int,
    ) -> Outcome:
        context = self._error_context(attempt, index)
        try:
            response = self.transport.call(request, timeout_ms)
        except TimeoutError as e:
            logger.warning("payment_call_timeout", timeout_ms=timeout_ms, attempt=index)
            report.error = RetriableProviderError(str(e), cause=e).with_context(**context)
            return classify(CallOutcome.from_exception(e))
        except Exception as e:
            logger.error("payment_call_failed", attempt=index, exc_info=True)
            error = TerminalProviderError(f"unexpected error: {type(e).__name__}: {e}", cause=e)
            report.error = error.with_context(**context)
            self.ledger.report_processing(
                attempt.payment_id, attempt.transaction_id, False, self.clock.now_ms(), error.reason
            )
            return classify(CallOutcome.from_exception(e))

        try:
            body = self.decoder.decode(response.body)
            call = CallOutcome(body_result=body.result, status_code=response.status_code, reason=body.message)
        except BodyDecodeError as e:
            logger.error("payment_body_undecodable", status_code=response.status_code, reason=e.reason)
            call = CallOutcome(body_result=False, status_code=response.status_code, reason=e.reason)

        logger.info(
            "payment_processed",
            succeeded=call.body_result,
            status_code=call.status_code,
            message=call.reason,
            timeout_ms=timeout_ms,
        )
        self.ledger.report_processing(
            attempt.payment_id, attempt.transaction_id, call.body_result, self.clock.now_ms(), call.reason
        )

        outcome = classify(call)
        context["status_code"] = call.status_code
        if outcome is Outcome.RETRIABLE:
            report.error = RetriableProviderError(call.reason).with_context(**context)
        elif outcome is Outcome.TERMINAL:
            logger.warning("payment_non_retriable", status_code=call.status_code)
            report.error = TerminalProviderError(call.reason).with_context(**context)
        elif outcome is Outcome.INDETERMINATE:
            report.error = TerminalProviderError("indeterminate provider response").with_context(**context)
        return outcome

    def _abort(self, report: AttemptReport, scheduler: RetryScheduler, detail: str) -> AttemptReport:
        attempt = report.attempt
        error = AdmissionTimeout().with_context(detail=detail, **self._error_context(attempt, scheduler.attempt))
        logger.error("deadline_exceeded", detail=detail, attempt=scheduler.attempt)
        self.ledger.report_processing(
            attempt.payment_id, attempt.transaction_id, False, self.clock.now_ms(), DEADLINE_EXCEEDED
        )
        report.error = error
        return self._finish(report, scheduler, AttemptState.DEADLINE_ABORTED)

    def _finish(self, report: AttemptReport, scheduler: RetryScheduler, state: AttemptState) -> AttemptReport:
        report.state = state
        report.delays_ms = list(scheduler.delays)
        if state is AttemptState.SUCCESS:
            report.error = None
        logger.info("payment_finished", state=state.value, calls=report.calls)
        return report

    def _error_context(self, attempt: PaymentAttempt, index: int) -> dict:
        return {
            "payment_id": attempt.payment_id,
            "transaction_id": attempt.transaction_id,
            "account_name": self.settings.account_name,
            "attempt": index,
        }


__all__ = ["PaymentProviderAdapter"]
