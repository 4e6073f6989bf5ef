"""Ordered, concurrent processing of assembled dump units.

The reader thread assembles units and pushes one :class:`ResultSlot` per unit
onto a bounded FIFO before any work starts. Passthrough slots are resolved
immediately; candidate slots are resolved by a worker pool running
parse -> anonymize -> serialize. The consumer drains the FIFO in push order,
waiting on each slot in turn, so output order always equals input order no
matter which worker finishes first. The FIFO bound caps in-flight work and
blocks the reader when workers fall behind.
"""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from shared.observability.logger import get_logger

from .anonymizer import FieldAnonymizer
from .assembler import Candidate, StatementAssembler, Unit
from .errors import StatementParseError, StatementSerializeError
from .sql_engine import SQLEngine

__all__ = [
    "DEFAULT_QUEUE_CAPACITY",
    "OrderedPipeline",
    "PipelineStats",
    "ProcessResult",
    "ResultSlot",
    "StatementProcessor",
]

logger = get_logger(__name__)

DEFAULT_QUEUE_CAPACITY = 10

OUTCOME_ANONYMIZED = "anonymized"
OUTCOME_PARSE_FAILED = "parse_failed"
OUTCOME_SERIALIZE_FAILED = "serialize_failed"


@dataclass(slots=True, frozen=True)
class ProcessResult:
    """Text produced for a candidate plus how it was obtained."""

    text: str
    outcome: str = OUTCOME_ANONYMIZED
    replaced: int = 0


class StatementProcessor:
    """Worker body: parse, anonymize and re-render one candidate statement."""

    def __init__(self, engine: SQLEngine, anonymizer: FieldAnonymizer) -> None:
        self._engine = engine
        self._anonymizer = anonymizer

    def process(self, text: str) -> ProcessResult:
        """Return the anonymized SQL for ``text``.

        Parse and serialize failures fall back to the original text so the
        unit is still reproduced in the output.
        """

        try:
            statement = self._engine.parse(text)
        except StatementParseError as exc:
            logger.error("statement_parse_failed", error=str(exc), line=exc.text)
            return ProcessResult(_terminated(text), OUTCOME_PARSE_FAILED)

        statement, report = self._anonymizer.apply_with_report(statement)

        try:
            rendered = self._engine.serialize(statement)
        except StatementSerializeError as exc:
            logger.error(
                "statement_serialize_failed",
                error=str(exc),
                table=report.table_name,
            )
            return ProcessResult(_terminated(text), OUTCOME_SERIALIZE_FAILED)

        return ProcessResult(rendered, OUTCOME_ANONYMIZED, report.total_replaced)


def _terminated(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"


@dataclass(slots=True)
class ResultSlot:
    """Ordered placeholder for the output of one unit."""

    raw_text: str
    future: Future[ProcessResult]
    candidate: bool = False

    @classmethod
    def resolved(cls, text: str) -> "ResultSlot":
        future: Future[ProcessResult] = Future()
        future.set_result(ProcessResult(text))
        return cls(raw_text=text, future=future)


@dataclass(slots=True)
class PipelineStats:
    """Counters describing a completed pipeline run."""

    units: int = 0
    passthrough: int = 0
    candidates: int = 0
    replaced: int = 0
    parse_failures: int = 0
    serialize_failures: int = 0
    worker_failures: int = 0
    input_error: OSError | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "units": self.units,
            "passthrough": self.passthrough,
            "candidates": self.candidates,
            "replaced": self.replaced,
            "parse_failures": self.parse_failures,
            "serialize_failures": self.serialize_failures,
            "worker_failures": self.worker_failures,
            "input_error": str(self.input_error) if self.input_error else None,
        }


_END_OF_INPUT = object()
_PUT_POLL_SECONDS = 0.1


@dataclass(slots=True)
class _Run:
    slots: "queue.Queue[object]"
    stats: PipelineStats = field(default_factory=PipelineStats)
    cancelled: threading.Event = field(default_factory=threading.Event)
    failure: BaseException | None = None

    def put(self, item: object) -> bool:
        """Block until ``item`` is queued; return ``False`` if the run is cancelled."""

        while not self.cancelled.is_set():
            try:
                self.slots.put(item, timeout=_PUT_POLL_SECONDS)
            except queue.Full:
                continue
            return True
        return False

    def discard_pending(self) -> None:
        while True:
            try:
                self.slots.get_nowait()
            except queue.Empty:
                return


class OrderedPipeline:
    """Process dump lines concurrently while emitting results in input order."""

    def __init__(
        self,
        processor: StatementProcessor,
        *,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        max_workers: int | None = None,
        assembler: StatementAssembler | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._processor = processor
        self._capacity = capacity
        self._max_workers = max_workers
        self._assembler = assembler or StatementAssembler()
        self.stats = PipelineStats()

    @property
    def capacity(self) -> int:
        return self._capacity

    def run(self, lines: Iterable[str]) -> Iterator[str]:
        """Yield output text for every unit assembled from ``lines``, in order.

        Read errors stop the reader: every unit assembled before the error is
        still emitted and the error is recorded on :attr:`stats`. Closing the
        iterator early cancels outstanding work.
        """

        run = _Run(slots=queue.Queue(maxsize=self._capacity))
        self.stats = run.stats

        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="statement-worker"
        )
        producer = threading.Thread(
            target=self._produce,
            args=(lines, run, executor),
            name="dump-reader",
            daemon=True,
        )
        producer.start()

        completed = False
        try:
            yield from self._drain(run)
            completed = True
        finally:
            if completed:
                producer.join()
                executor.shutdown(wait=True)
            else:
                run.cancelled.set()
                run.discard_pending()
                executor.shutdown(wait=False, cancel_futures=True)

        if run.failure is not None:
            raise run.failure
        logger.info("pipeline_completed", **run.stats.as_dict())

    def _produce(
        self, lines: Iterable[str], run: _Run, executor: ThreadPoolExecutor
    ) -> None:
        try:
            for unit in self._assembler.units(lines):
                if run.cancelled.is_set():
                    return
                slot = self._slot_for(unit, run.stats)
                # Queue the slot before its work starts.
                if not run.put(slot):
                    return
                if slot.candidate:
                    executor.submit(self._resolve, slot)
        except OSError as exc:
            run.stats.input_error = exc
            logger.error("input_read_failed", error=str(exc))
        except Exception as exc:
            # A cancelled run shuts the executor down under the reader.
            if not run.cancelled.is_set():
                run.failure = exc
        finally:
            run.put(_END_OF_INPUT)

    def _slot_for(self, unit: Unit, stats: PipelineStats) -> ResultSlot:
        stats.units += 1
        if isinstance(unit, Candidate):
            stats.candidates += 1
            return ResultSlot(raw_text=unit.text, future=Future(), candidate=True)

        stats.passthrough += 1
        return ResultSlot.resolved(unit.text)

    def _resolve(self, slot: ResultSlot) -> None:
        try:
            result = self._processor.process(slot.raw_text)
        except Exception as exc:
            slot.future.set_exception(exc)
        else:
            slot.future.set_result(result)

    def _drain(self, run: _Run) -> Iterator[str]:
        stats = run.stats
        while True:
            slot = run.slots.get()
            if slot is _END_OF_INPUT:
                return
            assert isinstance(slot, ResultSlot)

            try:
                result = slot.future.result()
            except Exception:
                stats.worker_failures += 1
                logger.exception("statement_worker_failed", line=slot.raw_text)
                yield _terminated(slot.raw_text)
                continue

            if slot.candidate:
                stats.replaced += result.replaced
                if result.outcome == OUTCOME_PARSE_FAILED:
                    stats.parse_failures += 1
                elif result.outcome == OUTCOME_SERIALIZE_FAILED:
                    stats.serialize_failures += 1
            yield result.text
