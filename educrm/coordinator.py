"""
Batch Coordinator Module

Re-scores student leads in configurable batches with progress tracking.
Each batch runs through the parallel lead scorer, so one failing student
never stops the run; failures are counted and reported at the end.

Usage:
    educrm-rescore --data-dir data --status new_lead --status contacted
"""

import argparse
import asyncio
import sys
import uuid
from typing import Any, Optional, TypeVar

from dotenv import load_dotenv

from educrm.agents.lead_scoring import score_leads_batch
from educrm.models.config import SystemParams
from educrm.store.jsonl_store import open_jsonl_store
from educrm.store.repository import EntityStore
from educrm.utils.logger import configure_logging, get_logger
from educrm.utils.progress_tracker import ProgressTracker
from educrm.utils.reasoning import ReasoningClient

T = TypeVar("T")


def divide_into_batches(items: list[T], batch_size: int) -> list[list[T]]:
    """
    Divide a list of items into batches of specified size.

    Args:
        items: List of items to batch
        batch_size: Number of items per batch

    Returns:
        List of batches, where each batch is a list of items

    Raises:
        ValueError: If batch_size <= 0

    Example:
        >>> divide_into_batches([1, 2, 3, 4, 5, 6, 7], 3)
        [[1, 2, 3], [4, 5, 6], [7]]
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")

    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]


class BatchCoordinator:
    """Runs bulk workflows over the store in batches."""

    def __init__(
        self,
        store: EntityStore,
        reasoner: ReasoningClient,
        params: SystemParams,
        progress_tracker: Optional[ProgressTracker] = None,
        correlation_id: Optional[str] = None,
    ):
        self.store = store
        self.reasoner = reasoner
        self.params = params
        self.progress_tracker = progress_tracker or ProgressTracker()
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.logger = get_logger(
            correlation_id=self.correlation_id,
            phase="coordinator",
            component="batch_coordinator",
        )

    async def rescore_leads(self, statuses: Optional[list[str]] = None) -> dict[str, Any]:
        """
        Re-score every student (or those in ``statuses``) batch by batch.

        Returns:
            Dict with total, scored, failed and the per-student results
        """
        repo = self.store["StudentProfile"]
        students = repo.filter({"status": statuses}) if statuses else repo.list()
        student_ids = [s.id for s in students]

        batch_size = self.params.batch_config.lead_scoring_batch_size
        batches = divide_into_batches(student_ids, batch_size)
        total_batches = len(batches)

        self.logger.info(
            "Divided students into batches",
            total_students=len(student_ids),
            batch_size=batch_size,
            total_batches=total_batches,
        )

        self.progress_tracker.start_phase("Lead re-scoring", total_items=len(student_ids))

        results: list[dict[str, Any]] = []
        for batch_id, batch in enumerate(batches):
            self.progress_tracker.update_batch(
                batch_num=batch_id + 1,
                total_batches=total_batches,
                batch_desc=f"{len(batch)} students",
            )
            batch_results = await score_leads_batch(
                self.store,
                self.reasoner,
                self.params,
                batch,
                correlation_id=f"{self.correlation_id}-batch-{batch_id}",
            )
            results.extend(batch_results)
            self.progress_tracker.increment(len(batch))

            self.logger.info(
                f"Batch {batch_id + 1} of {total_batches} complete",
                scored=sum(1 for r in batch_results if r["success"]),
            )

        scored = sum(1 for r in results if r["success"])
        failed = len(results) - scored
        self.progress_tracker.complete_phase(f"{scored} scored, {failed} failed")

        self.logger.info("Lead re-scoring complete", scored=scored, failed=failed)
        return {"total": len(results), "scored": scored, "failed": failed, "results": results}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Re-score student leads in batches")
    parser.add_argument("--config", default=None, help="Path to system_params.json")
    parser.add_argument("--data-dir", default="data", help="Directory of the JSONL entity store")
    parser.add_argument(
        "--status",
        action="append",
        dest="statuses",
        help="Only re-score students in this pipeline stage (repeatable)",
    )
    args = parser.parse_args(argv)

    load_dotenv()
    params = SystemParams.load(args.config)
    configure_logging(log_file=params.log_file, log_level=params.log_level)

    coordinator = BatchCoordinator(
        store=open_jsonl_store(args.data_dir),
        reasoner=ReasoningClient.from_params(params),
        params=params,
    )
    summary = asyncio.run(coordinator.rescore_leads(args.statuses))
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
