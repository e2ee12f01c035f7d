"""
Batch embedding generation.

Walks the whole catalog page by page and fills in missing or stale
embeddings. Re-running after a partial run only builds what is still
missing, so the job can be stopped between pages and resumed.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .models import GenerationReport
from .store import EmbeddingStore
from ..config import settings
from ..interfaces import CatalogReader

logger = logging.getLogger("anime_embeddings.jobs")


@dataclass
class JobProgress:
    """Snapshot of a running job, emitted after every page."""
    page: int
    total_pages: int
    visited: int
    total: int
    processed: int
    successful: int
    skipped: int
    failed: int
    elapsed_seconds: float

    @property
    def percent(self) -> float:
        return 100.0 * self.visited / self.total if self.total else 100.0

    @property
    def rate(self) -> float:
        """Items visited per second."""
        return self.visited / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    @property
    def eta_seconds(self) -> Optional[float]:
        if self.rate <= 0:
            return None
        return max(self.total - self.visited, 0) / self.rate


ProgressCallback = Callable[[JobProgress], None]


class EmbeddingGenerationJob:
    """Fills the embedding store for every catalog item."""

    def __init__(
        self,
        catalog: CatalogReader,
        store: EmbeddingStore,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._catalog = catalog
        self._store = store
        self._batch_size = batch_size or settings.batch_size
        self._on_progress = on_progress
        self._clock = clock

    async def run(self) -> GenerationReport:
        started = self._clock()
        total = await self._catalog.count_items()
        total_pages = -(-total // self._batch_size)
        report = GenerationReport(total=total)

        logger.info("Embedding generation started: %d items, %d pages", total, total_pages)

        offset = 0
        page = 0
        while True:
            item_ids = await self._catalog.list_item_ids(offset, self._batch_size)
            if not item_ids:
                break

            page += 1
            offset += len(item_ids)

            for item_id in item_ids:
                await self._process_item(item_id, report)
                report.visited += 1

            self._emit_progress(page, max(total_pages, page), report, started)

            if len(item_ids) < self._batch_size:
                break

        report.duration_seconds = self._clock() - started
        logger.info(
            "Embedding generation finished: %d built, %d skipped, %d failed in %.1fs",
            report.successful,
            report.skipped,
            report.failed,
            report.duration_seconds,
        )
        return report

    async def _process_item(self, item_id: str, report: GenerationReport) -> None:
        try:
            if await self._store.lookup(item_id) is not None:
                report.skipped += 1
                return

            embedding = await self._store.get_or_build(item_id)
            if embedding is None:
                logger.warning("Item %s disappeared from the catalog", item_id)
                report.failed += 1
            else:
                report.successful += 1

        except Exception as e:
            # One bad item must not abort the run
            logger.error("Failed to generate embedding for %s: %s", item_id, e)
            report.failed += 1

        report.processed += 1

    def _emit_progress(
        self,
        page: int,
        total_pages: int,
        report: GenerationReport,
        started: float,
    ) -> None:
        progress = JobProgress(
            page=page,
            total_pages=total_pages,
            visited=report.visited,
            total=max(report.total, report.visited),
            processed=report.processed,
            successful=report.successful,
            skipped=report.skipped,
            failed=report.failed,
            elapsed_seconds=self._clock() - started,
        )

        eta = f"{progress.eta_seconds:.0f}s" if progress.eta_seconds is not None else "n/a"
        logger.info(
            "Batch %d/%d: %d/%d (%.1f%%) | %d built, %d skipped, %d failed | %.1f items/s, ETA %s",
            progress.page,
            progress.total_pages,
            progress.visited,
            progress.total,
            progress.percent,
            progress.successful,
            progress.skipped,
            progress.failed,
            progress.rate,
            eta,
        )

        if self._on_progress is not None:
            self._on_progress(progress)
