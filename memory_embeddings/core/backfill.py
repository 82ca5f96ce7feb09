"""
Bulk backfill of embeddings for records created before semantic search existed.

Records are visited type by type (memories, then tasks), in ascending id order,
in small chunks with a pause between chunks. A record that fails is counted and
logged; only a model load failure or an unreachable store stops the run.
"""

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Callable, Dict, List, Optional

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGenerator
from ..vector.errors import BackfillError, EmptyInputError, ModelLoadError
from ..vector.text import build_searchable_text
from .config import get_backfill_pacing
from .dao import IRecordStore
from .schema import EmbeddingStats, RecordType, SearchableRecord

RECORD_ORDER = (RecordType.MEMORY, RecordType.TASK)


class BackfillState(str, Enum):
    IDLE = "idle"
    STATS_LOADED = "stats_loaded"
    MODEL_LOADING = "model_loading"
    PROCESSING = "processing"
    REPORTING = "reporting"
    DONE = "done"


@dataclass
class BackfillProgress:
    """Per-type counters for one run. Never persisted."""

    total: int
    started_at: float
    processed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def succeeded(self) -> int:
        return self.processed - self.failed - self.skipped

    def rate(self, now: float) -> float:
        """Items per second since the run started."""
        elapsed = now - self.started_at
        if elapsed <= 0:
            return 0.0
        return self.processed / elapsed

    def eta_seconds(self, now: float) -> int:
        if self.processed >= self.total:
            return 0
        rate = self.rate(now)
        if rate <= 0:
            return 0
        return round((self.total - self.processed) / rate)

    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.processed / self.total * 100)


@dataclass(frozen=True)
class ItemOutcome:
    """Result of processing one record."""

    record_id: int
    status: str  # embedded|skipped|failed
    error: Optional[str] = None


@dataclass
class TypeSummary:
    record_type: RecordType
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: List[ItemOutcome] = field(default_factory=list)


@dataclass
class BackfillReport:
    force: bool
    summaries: Dict[RecordType, TypeSummary] = field(default_factory=dict)
    stats_before: Dict[RecordType, EmbeddingStats] = field(default_factory=dict)
    stats_after: Dict[RecordType, EmbeddingStats] = field(default_factory=dict)
    elapsed_sec: float = 0.0
    cancelled: bool = False

    @property
    def total_failed(self) -> int:
        return sum(summary.failed for summary in self.summaries.values())

    @property
    def total_processed(self) -> int:
        return sum(summary.processed for summary in self.summaries.values())


def format_progress(label: str, progress: BackfillProgress, now: float) -> str:
    """Progress line: processed/total, percentage, rate and ETA."""
    return (
        f"{label}: {progress.processed}/{progress.total} "
        f"({progress.percent()}%) "
        f"- {progress.rate(now):.1f}/sec - ETA: {progress.eta_seconds(now)}s"
    )


def format_stats(stats: Dict[RecordType, EmbeddingStats]) -> List[str]:
    lines = []
    for record_type in RECORD_ORDER:
        if record_type not in stats:
            continue
        entry = stats[record_type]
        lines.append(f"{record_type.label}:")
        lines.append(f"  Total: {entry.total}")
        lines.append(f"  With embeddings: {entry.with_embedding}")
        lines.append(f"  Without embeddings: {entry.without_embedding}")
    return lines


class BackfillOrchestrator:
    """
    Drives EmbeddingGenerator over the record store.

    State moves IDLE -> STATS_LOADED -> MODEL_LOADING -> PROCESSING -> REPORTING -> DONE.
    """

    def __init__(self, store: IRecordStore, generator: EmbeddingGenerator,
                 chunk_size: Optional[int] = None, chunk_pause_sec: Optional[float] = None,
                 progress_every: Optional[int] = None, output: Callable[[str], None] = print,
                 should_stop: Optional[Callable[[], bool]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Args:
            store: Record store supplying records and receiving embeddings
            generator: Embedding generator owning the model
            chunk_size: Records per chunk, defaults to BACKFILL_CHUNK_SIZE
            chunk_pause_sec: Pause between chunks, defaults to BACKFILL_CHUNK_PAUSE_SEC
            progress_every: Emit a progress line every N processed records
            output: Receives human-readable progress and summary lines
            should_stop: Checked between chunks; returning True ends the run early
            clock: Monotonic clock used for rate/ETA
            sleep: Sleep function used for pacing
        """
        default_size, default_pause, default_every = get_backfill_pacing()
        self.store = store
        self.generator = generator
        self.chunk_size = default_size if chunk_size is None else chunk_size
        self.chunk_pause_sec = default_pause if chunk_pause_sec is None else chunk_pause_sec
        self.progress_every = default_every if progress_every is None else progress_every
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.chunk_pause_sec < 0:
            raise ValueError(f"chunk_pause_sec must be >= 0, got {self.chunk_pause_sec}")
        if self.progress_every < 1:
            raise ValueError(f"progress_every must be >= 1, got {self.progress_every}")
        self.output = output
        self.should_stop = should_stop
        self.clock = clock
        self.sleep = sleep
        self.state = BackfillState.IDLE
        self._cancelled = False

    def load_stats(self) -> Dict[RecordType, EmbeddingStats]:
        """Read embedding coverage for every record type."""
        try:
            return {record_type: self.store.fetch_embedding_stats(record_type) for record_type in RECORD_ORDER}
        except Exception as e:
            raise BackfillError(f"Failed to read embedding statistics: {e}") from e

    def print_stats(self, stats: Dict[RecordType, EmbeddingStats]) -> None:
        self.output("\nEmbedding Statistics:")
        for line in format_stats(stats):
            self.output(line)
        info = self.generator.model_info()
        self.output(f"Embedding Model: {info['name']} ({info['dimensions']} dimensions)")

    def run(self, force: bool = False) -> BackfillReport:
        """
        Run the whole backfill.

        Raises:
            ModelLoadError: the model could not be loaded
            BackfillError: the record store failed outside of a single record's write
        """
        report = BackfillReport(force=force)
        started = self.clock()
        self._cancelled = False

        report.stats_before = self.load_stats()
        self.state = BackfillState.STATS_LOADED
        self.print_stats(report.stats_before)

        self.state = BackfillState.MODEL_LOADING
        self.output("\nLoading embedding model...")
        self.generator.preload()

        self.state = BackfillState.PROCESSING
        for record_type in RECORD_ORDER:
            if self._cancelled:
                break
            report.summaries[record_type] = self.process_type(record_type, force)

        self.state = BackfillState.REPORTING
        report.cancelled = self._cancelled
        report.elapsed_sec = self.clock() - started
        if report.cancelled:
            self.output(f"\nBatch embedding generation stopped early after {report.elapsed_sec:.2f}s")
        else:
            self.output(f"\nBatch embedding generation completed in {report.elapsed_sec:.2f}s")

        report.stats_after = self.load_stats()
        self.print_stats(report.stats_after)

        self.state = BackfillState.DONE
        logger.log_operation("backfill.run", "success", {
            "force": force,
            "processed": report.total_processed,
            "failed": report.total_failed,
            "cancelled": report.cancelled
        })
        return report

    def process_type(self, record_type: RecordType, force: bool = False) -> TypeSummary:
        """Embed every target record of one type, chunk by chunk."""
        self.output(f"\nProcessing {record_type.label.lower()}...")

        try:
            records = self.store.fetch_records_needing_embedding(record_type, force)
        except Exception as e:
            raise BackfillError(f"Failed to fetch {record_type.value} records: {e}") from e

        summary = TypeSummary(record_type=record_type, total=len(records))
        if not records:
            self.output(f"No {record_type.label.lower()} need embedding generation.")
            return summary

        self.output(f"Found {len(records)} {record_type.label.lower()} to process")
        progress = BackfillProgress(total=len(records), started_at=self.clock())

        for start in range(0, len(records), self.chunk_size):
            if self.should_stop is not None and self.should_stop():
                self._cancelled = True
                self.output(f"Stop requested, {len(records) - start} {record_type.label.lower()} left unprocessed")
                break

            chunk = records[start:start + self.chunk_size]
            summary.outcomes.extend(self.process_chunk(record_type, chunk, progress))

            if start + self.chunk_size < len(records) and self.chunk_pause_sec > 0:
                self.sleep(self.chunk_pause_sec)

        summary.processed = progress.processed
        summary.failed = progress.failed
        summary.skipped = progress.skipped
        summary.succeeded = progress.succeeded

        self.output(
            f"Completed processing {record_type.label.lower()}: "
            f"{summary.succeeded} successful, {summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    def process_chunk(self, record_type: RecordType, chunk: List[SearchableRecord],
                      progress: BackfillProgress) -> List[ItemOutcome]:
        """Process records one after another; return one outcome per record."""
        outcomes = []
        for record in chunk:
            outcome = self.process_record(record_type, record)
            outcomes.append(outcome)

            progress.processed += 1
            if outcome.status == "failed":
                progress.failed += 1
            elif outcome.status == "skipped":
                progress.skipped += 1

            if progress.processed % self.progress_every == 0 or progress.processed == progress.total:
                self.output(format_progress(record_type.label, progress, self.clock()))

        return outcomes

    def process_record(self, record_type: RecordType, record: SearchableRecord) -> ItemOutcome:
        """Build text, embed, store. Any failure other than a model load becomes a failed outcome."""
        try:
            text = build_searchable_text(record)
            if not text.strip():
                self.output(f"Skipping {record_type.value} {record.id}: no searchable content")
                return ItemOutcome(record_id=record.id, status="skipped")

            vector = self.generator.generate(text)
            self.store.store_embedding(record_type, record.id, vector)
        except ModelLoadError:
            raise
        except EmptyInputError:
            self.output(f"Skipping {record_type.value} {record.id}: no searchable content")
            return ItemOutcome(record_id=record.id, status="skipped")
        except Exception as e:
            self.output(f"Failed to generate embedding for {record_type.value} {record.id}: {e}")
            logger.log_backfill_item(record_type.value, record.id, "failed", e)
            return ItemOutcome(record_id=record.id, status="failed", error=str(e))

        return ItemOutcome(record_id=record.id, status="embedded")
