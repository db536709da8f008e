"""
Bulk jobs — run one step over many records without aborting on failure.

Used to update every group key and to initialize the module over existing
principals and groups. Each item runs independently: a failing item is
logged and reported, and processing continues with the next one.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

logger = logging.getLogger("navigator.pubkey")

T = TypeVar("T")


@dataclass
class BatchReport:
    """Outcome of a bulk job."""

    operation: str
    total: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[tuple[str, Exception]] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def ok(self) -> bool:
        return not self.errors

    def failed_ids(self) -> list[str]:
        return [item_id for item_id, _ in self.errors]

    def merge(self, other: "BatchReport") -> "BatchReport":
        self.total += other.total
        self.updated += other.updated
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self

    def as_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total": self.total,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.failed,
        }


async def run_batch(
    operation: str,
    items: Iterable[T],
    step: Callable[[T], Awaitable[Optional[Any]]],
    item_id: Callable[[T], str] = lambda item: getattr(item, "id", str(item)),
) -> BatchReport:
    """Apply ``step`` to every item.

    ``step`` returning None counts as skipped. Any exception raised by a
    step is recorded against the item id.

    Returns:
        BatchReport with per-item failures.
    """
    report = BatchReport(operation=operation)
    logger.info("Starting %s", operation)
    for item in items:
        report.total += 1
        ident = item_id(item)
        try:
            result = await step(item)
        except Exception as err:
            logger.error("Error in %s for %s: %s", operation, ident, err)
            report.errors.append((ident, err))
            continue
        if result is None:
            report.skipped += 1
        else:
            report.updated += 1
    logger.info("%s complete: %s", operation, report.as_dict())
    return report
