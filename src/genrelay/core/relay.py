"""The generation relay: one inbound request, one upstream job.

:class:`GenerationRelay` bridges a synchronous-looking HTTP request to the
inference API's asynchronous job lifecycle:

1. **Validate**: reject a missing prompt or a missing credential before any
   outbound call.
2. **Submit**: start the upstream job and record its request id.
3. **Poll**: check the job status once per interval until it is COMPLETE
   or FAILED, or the attempt ceiling is reached.  Transient poll failures
   use up an attempt but do not abort the loop.
4. **Fetch**: retrieve the final payload and hand it back verbatim.

Per-request state machine::

    SUBMITTING -> POLLING -> FETCHING -> DONE
         |           |
         |           +-> FAILED_TERMINAL   (upstream reported FAILED)
         |           +-> TIMED_OUT         (attempt ceiling reached)
         +-> SUBMIT_ERROR                  (submit call failed)

The relay keeps no state between calls.  Each call owns its own
:class:`~genrelay.core.jobs.UpstreamJob`, so any number of generations may be
in flight on the same relay instance.

See Also
--------
- :mod:`genrelay.core.polling`: the bounded-retry loop used in phase 3.
- :mod:`genrelay.core.errors`: the error raised for every failure mode.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from genrelay.core.config import RelayConfig
from genrelay.core.errors import (
    ClientDisconnected,
    GenerationFailed,
    GenerationTimedOut,
    InvalidRequest,
    Misconfigured,
    UpstreamFetchFailed,
    UpstreamSubmitFailed,
)
from genrelay.core.jobs import (
    GenerationRequest,
    GenerationResult,
    JobStatus,
    RelayPhase,
    UpstreamJob,
)
from genrelay.core.polling import (
    BoundedPoller,
    PollAttemptsExhausted,
    PollCancelled,
    PollDecision,
)
from genrelay.core.upstream import InferenceClient, UpstreamError

logger = logging.getLogger(__name__)

PROBE_PROMPT = "test"


class GenerationRelay:
    """Submit, poll and fetch one upstream job per call.

    Args:
        config: Relay configuration (credential, polling limits).
        client: Inference API client used for all outbound calls.
    """

    def __init__(self, config: RelayConfig, client: InferenceClient) -> None:
        self._config = config
        self._client = client

    def _check_credential(self) -> None:
        if not self._config.has_credential:
            raise Misconfigured(details="Set MODEL_ACCESS_KEY in the environment or .env file")

    def _validate(self, request: GenerationRequest) -> None:
        if not request.prompt or not request.prompt.strip():
            raise InvalidRequest()
        self._check_credential()

    async def _submit(self, request: GenerationRequest) -> UpstreamJob:
        logger.info(f"[{RelayPhase.SUBMITTING.value}] submitting to {self._config.model_id}")
        try:
            request_id = await self._client.submit(request)
        except UpstreamError as exc:
            logger.error(f"[{RelayPhase.SUBMIT_ERROR.value}] {exc.message}: {exc.details}")
            raise UpstreamSubmitFailed(details=exc.details) from exc
        logger.info(f"upstream accepted job {request_id}")
        return UpstreamJob(request_id=request_id)

    async def _poll(
        self,
        job: UpstreamJob,
        disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        logger.info(f"[{RelayPhase.POLLING.value}] polling job {job.request_id}")

        async def check(attempt: int) -> PollDecision[UpstreamJob]:
            job.attempts = attempt
            body = await self._client.status(job.request_id)
            job.status = JobStatus.from_upstream(body.get("status"))
            logger.debug(
                f"job {job.request_id} attempt {attempt}/{self._config.max_poll_attempts}: "
                f"{body.get('status')}"
            )
            if job.status is JobStatus.FAILED:
                job.error = body.get("error")
                raise GenerationFailed(details=job.error or body)
            if job.status is JobStatus.COMPLETE:
                return PollDecision.finish(job)
            return PollDecision.proceed()

        poller = BoundedPoller(
            check,
            interval=self._config.poll_interval_seconds,
            max_attempts=self._config.max_poll_attempts,
            jitter=self._config.poll_jitter_seconds,
            transient=(UpstreamError,),
            stop_when=disconnected,
            name=f"job {job.request_id}",
        )
        try:
            await poller.run()
        except GenerationFailed as exc:
            logger.error(f"[{RelayPhase.FAILED_TERMINAL.value}] job {job.request_id}: {exc.details}")
            raise
        except PollAttemptsExhausted as exc:
            logger.error(
                f"[{RelayPhase.TIMED_OUT.value}] job {job.request_id} still not complete "
                f"after {exc.attempts} attempts"
            )
            raise GenerationTimedOut(job.request_id, exc.attempts) from exc
        except PollCancelled as exc:
            logger.warning(f"job {job.request_id}: caller disconnected, stopped polling")
            raise ClientDisconnected(job.request_id, exc.attempts) from exc

    async def _fetch(self, job: UpstreamJob) -> GenerationResult:
        logger.info(
            f"[{RelayPhase.FETCHING.value}] job {job.request_id} complete after "
            f"{job.attempts} attempts"
        )
        try:
            job.result = await self._client.fetch(job.request_id)
        except UpstreamError as exc:
            logger.error(f"job {job.request_id}: result fetch failed: {exc.details}")
            raise UpstreamFetchFailed(details=exc.details) from exc
        logger.info(f"[{RelayPhase.DONE.value}] job {job.request_id}")
        return GenerationResult(data=job.result, request_id=job.request_id, attempts=job.attempts)

    async def generate(
        self,
        request: GenerationRequest,
        *,
        disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> GenerationResult:
        """Run one generation end to end.

        Args:
            request: The generation parameters.
            disconnected: Optional coroutine function reporting whether the
                caller has gone away; polling stops once it returns ``True``.

        Returns:
            The upstream result payload wrapped in a :class:`GenerationResult`.

        Raises:
            InvalidRequest: Prompt missing or blank.
            Misconfigured: No credential configured.
            UpstreamSubmitFailed: The submit call failed.
            GenerationFailed: Upstream reported the job as FAILED.
            GenerationTimedOut: The attempt ceiling was reached.
            UpstreamFetchFailed: The result could not be retrieved.
            ClientDisconnected: ``disconnected`` fired during polling.
        """
        self._validate(request)
        job = await self._submit(request)
        await self._poll(job, disconnected)
        return await self._fetch(job)

    async def probe(self) -> dict[str, Any]:
        """Check the configured credential with one minimal submit.

        The submitted job is not polled.

        Raises:
            Misconfigured: No credential configured.
            UpstreamSubmitFailed: Upstream rejected the credential or was
                unreachable.
        """
        self._check_credential()
        job = await self._submit(
            GenerationRequest(prompt=PROBE_PROMPT, num_inference_steps=1, num_images=1)
        )
        return {
            "success": True,
            "message": "API key is valid",
            "request_id": job.request_id,
        }
