"""Beat orchestrator: the scheduling and retry state machine.

One beat is an ingest (inbox -> queue or deferred) followed by a drain
(queue -> agent -> store). Beats are triggered by a recurring timer or by a
"run now" command; shutdown is only observed between beats.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .. import storage
from ..agent import AgentInput
from ..intents import Intent
from ..retry import run_with_retry
from ..state import AppContext

logger = logging.getLogger(__name__)


class BeatState(Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    DRAINING = "draining"
    SHUTTING_DOWN = "shutting_down"


class OrchestratorCommand(Enum):
    REQUEST_BEAT = "request_beat"


@dataclass
class IngestReport:
    queued: int = 0
    deferred: int = 0
    errors: int = 0


@dataclass
class DrainReport:
    processed: int = 0
    retried: int = 0
    quarantined: int = 0


@dataclass
class BeatReport:
    ingest: IngestReport = field(default_factory=IngestReport)
    drain: DrainReport = field(default_factory=DrainReport)


class OrchestratorHandle:
    """Sender side of the command channel.

    Cheap to copy around; every submitter may hold one.
    """

    def __init__(self, commands: asyncio.Queue, closed: asyncio.Event) -> None:
        self._commands = commands
        self._closed = closed

    async def request_beat(self) -> bool:
        """Ask for a beat as soon as the current one (if any) finishes.

        Returns:
            True if the command was delivered, False if the orchestrator has
            shut down or the channel is full.
        """
        if self._closed.is_set():
            logger.warning("Beat request rejected: orchestrator shut down")
            return False
        try:
            self._commands.put_nowait(OrchestratorCommand.REQUEST_BEAT)
        except asyncio.QueueFull:
            logger.warning("Beat request rejected: command channel full")
            return False
        return True


class BeatOrchestrator:
    """Drains the shared intent queue on every beat."""

    def __init__(self, ctx: AppContext, commands: asyncio.Queue | None = None) -> None:
        self.ctx = ctx
        if commands is None:
            commands = asyncio.Queue(maxsize=ctx.config.beat.command_buffer)
        self.commands = commands
        self.state = BeatState.IDLE
        self._closed = asyncio.Event()

    @property
    def data_dir(self) -> Path:
        return self.ctx.data_dir

    def handle(self) -> OrchestratorHandle:
        return OrchestratorHandle(self.commands, self._closed)

    # -- scheduling loop ------------------------------------------------

    async def run(self) -> None:
        """Bootstrap the queue, then beat on every tick or command until shutdown."""
        self.load_existing_queue()

        loop = asyncio.get_running_loop()
        interval = self.ctx.config.beat.interval_seconds
        next_tick = loop.time()
        shutdown = self.ctx.shutdown_event

        try:
            while True:
                trigger = await self._next_trigger(max(next_tick - loop.time(), 0))
                if trigger == "shutdown":
                    logger.info("Beat orchestrator shutting down")
                    break
                if trigger == "tick":
                    logger.info("Beat ticker fired")
                    next_tick = max(next_tick + interval, loop.time())
                else:
                    logger.info("Beat requested by subsystem")
                try:
                    await self.run_beat()
                except Exception:
                    logger.exception("Beat failed; waiting for the next trigger")
                    self.state = BeatState.IDLE
                if shutdown.is_set():
                    logger.info("Beat orchestrator shutting down")
                    break
        finally:
            self.state = BeatState.SHUTTING_DOWN
            self._closed.set()

    async def _next_trigger(self, timeout: float) -> str:
        """Wait for the first of shutdown, a command or the next tick."""
        shutdown = self.ctx.shutdown_event
        if shutdown.is_set():
            return "shutdown"
        if not self.commands.empty():
            self.commands.get_nowait()
            return "command"

        command_task = asyncio.ensure_future(self.commands.get())
        shutdown_task = asyncio.ensure_future(shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {command_task, shutdown_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (command_task, shutdown_task):
                if not task.done():
                    task.cancel()

        if shutdown_task in done:
            return "shutdown"
        if command_task in done:
            command_task.result()
            return "command"
        return "tick"

    async def run_beat(self) -> BeatReport:
        """One full ingest + drain cycle."""
        started = time.monotonic()
        self.ctx.events.log("beat_start", queued=len(self.ctx.intents))

        self.state = BeatState.INGESTING
        ingest_report = self.ingest()

        self.state = BeatState.DRAINING
        drain_report = await self.drain()

        self.state = BeatState.IDLE
        self.ctx.events.log(
            "beat_end",
            duration_ms=(time.monotonic() - started) * 1000,
            queued=ingest_report.queued,
            deferred=ingest_report.deferred,
            processed=drain_report.processed,
            retried=drain_report.retried,
            quarantined=drain_report.quarantined,
        )
        return BeatReport(ingest=ingest_report, drain=drain_report)

    # -- ingest ---------------------------------------------------------

    def load_existing_queue(self) -> int:
        """Re-enqueue records left in the queue directory by a previous run."""
        try:
            scan = storage.scan_queue(self.data_dir)
        except OSError as e:
            logger.warning("Failed to bootstrap intent queue: %s", e)
            return 0

        for record in scan.records:
            record.intent.storage_path = record.path
            self.ctx.intents.push(record.intent)
        if scan.records:
            logger.info("Restored %d queued intent(s)", len(scan.records))
        return len(scan.records)

    def ingest(self) -> IngestReport:
        """Move inbox records to the queue or to deferred by alignment.

        Failures are logged per record and never abort the pass.
        """
        report = IngestReport()
        threshold = self.ctx.config.beat.intent_threshold

        try:
            scan = storage.scan_inbox(self.data_dir)
        except OSError as e:
            logger.warning("Failed to scan inbox: %s", e)
            self.ctx.events.log("ingest_error", error=str(e))
            report.errors += 1
            return report

        for parse_error in scan.errors:
            self.ctx.events.log("ingest_error", error=str(parse_error))
            report.errors += 1

        for record in scan.records:
            intent = record.intent
            try:
                if intent.alignment >= threshold:
                    intent.storage_path = storage.promote(record.path, self.data_dir)
                    self.ctx.intents.push(intent)
                    report.queued += 1
                else:
                    intent.storage_path = storage.defer(record.path, self.data_dir)
                    self.ctx.events.log(
                        "intent_deferred",
                        intent_id=str(intent.id),
                        summary=intent.summary,
                        alignment=intent.alignment,
                    )
                    report.deferred += 1
            except OSError as e:
                logger.warning("Failed to relocate intent %s: %s", record.path, e)
                self.ctx.events.log("ingest_error", intent_id=str(intent.id), error=str(e))
                report.errors += 1

        return report

    # -- drain ----------------------------------------------------------

    async def drain(self) -> DrainReport:
        """Process queued intents until the queue is empty.

        A failed intent goes back to the front of the queue until it has
        failed ``max_intent_attempts`` times in this pass, then it is
        quarantined and dropped.
        """
        report = DrainReport()
        max_attempts = self.ctx.config.beat.max_intent_attempts
        attempts: dict[uuid.UUID, int] = {}

        while True:
            intent = self.ctx.intents.pop_next()
            if intent is None:
                logger.info("No intents pending for beat")
                break

            started = time.monotonic()
            try:
                await self.process_intent(intent)
            except Exception as e:
                count = attempts.get(intent.id, 0) + 1
                attempts[intent.id] = count

                if count >= max_attempts:
                    logger.warning(
                        "Intent '%s' failed after %d attempts: %s",
                        intent.summary,
                        count,
                        e,
                    )
                    self._quarantine(intent)
                    attempts.pop(intent.id, None)
                    self.ctx.events.log(
                        "intent_quarantined",
                        intent_id=str(intent.id),
                        summary=intent.summary,
                        attempt=count,
                        error=str(e),
                    )
                    report.quarantined += 1
                else:
                    logger.warning(
                        "Intent '%s' processing failed (attempt %d), will retry: %s",
                        intent.summary,
                        count,
                        e,
                    )
                    self.ctx.intents.push_front(intent)
                    self.ctx.events.log(
                        "intent_retry",
                        intent_id=str(intent.id),
                        summary=intent.summary,
                        attempt=count,
                        error=str(e),
                    )
                    report.retried += 1
                continue

            attempts.pop(intent.id, None)
            report.processed += 1
            self.ctx.events.log(
                "intent_processed",
                intent_id=str(intent.id),
                summary=intent.summary,
                duration_ms=(time.monotonic() - started) * 1000,
            )

        return report

    async def process_intent(self, intent: Intent) -> None:
        """Run the agent for one intent and persist everything it produced.

        Each storage step is retried on its own; the first step up to and
        including the archive that still fails after its retries aborts
        processing with that step's error. The memory snapshot runs once the
        intent is archived and only logs its failures.
        """
        backlog_size = len(self.ctx.intents)
        run = await self.ctx.agent.run_react(AgentInput(intent=intent, backlog_size=backlog_size))
        outcome = run.outcome
        data_dir = self.data_dir
        policy = self.ctx.config.beat.storage_retry

        def label(stage: str) -> str:
            return f"{stage} for '{intent.summary}'"

        await run_with_retry(
            label("llm_logs"),
            lambda: storage.append_llm_logs(data_dir, run.llm_logs),
            policy,
        )
        journal_path = await run_with_retry(
            label("journal"),
            lambda: storage.append_journal_entry(data_dir, intent, outcome),
            policy,
        )
        await run_with_retry(
            label("usage_index"),
            lambda: storage.update_usage_index(data_dir, intent, outcome),
            policy,
        )
        history_path = storage.history_path_for(intent, data_dir)
        await run_with_retry(
            label("archive"),
            lambda: storage.archive(intent, data_dir),
            policy,
        )
        logger.info("Beat handled intent '%s': %s", intent.summary, outcome.final_answer)

        # The intent is archived at this point; memory failures must not requeue it.
        snapshot = storage.MemorySnapshotInput(
            intent=intent,
            outcome=outcome,
            journal_path=journal_path,
            history_path=history_path,
        )
        try:
            await run_with_retry(
                label("memory"),
                lambda: storage.ingest_memory_snapshot(data_dir, snapshot),
                policy,
            )
        except Exception as e:
            logger.warning("Memory snapshot for '%s' failed: %s", intent.summary, e)
            self.ctx.events.log(
                "memory_error",
                intent_id=str(intent.id),
                summary=intent.summary,
                error=str(e),
            )

    def _quarantine(self, intent: Intent) -> None:
        if intent.storage_path is None:
            return
        try:
            storage.quarantine(intent.storage_path, self.data_dir)
        except OSError as e:
            logger.warning("Failed to move intent '%s' to failed queue: %s", intent.summary, e)


def spawn(ctx: AppContext) -> tuple[OrchestratorHandle, asyncio.Task]:
    """Start the orchestrator loop as a task on the running event loop."""
    orchestrator = BeatOrchestrator(ctx)
    task = asyncio.create_task(orchestrator.run(), name="beat-orchestrator")
    return orchestrator.handle(), task
