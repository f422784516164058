# phaseflow/planning/orphans.py
"""
Orphan scan: recover unfinished tasks from archived phases.

Walks the archive entries of every Complete phase. Each task that is
neither done nor deferred becomes an Open backlog item (unless one with the
same provenance and task id already exists) and is marked deferred in the
archive, so running the scan again finds nothing new.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from phaseflow.models.responses import ScanReport
from phaseflow.models.roadmap import ArchiveEntry, BacklogItem, PhaseStatus, RoadmapDocument
from phaseflow.store.workspace import Transaction, Workspace

logger = logging.getLogger(__name__)

ORPHAN_REASON = "Orphaned task found in archived phase"


def find_orphans(
    document: RoadmapDocument,
    lookup: Callable[[str], ArchiveEntry | None],
    now: datetime,
) -> tuple[ScanReport, list[ArchiveEntry]]:
    """
    File unfinished archived tasks into the document's backlog.

    Args:
        document: Roadmap copy to add items to
        lookup: Returns the archive entry for a phase number, or None
        now: Creation time for new items

    Returns:
        (report, touched) where touched holds the entries whose tasks were
        marked deferred; persisting them is up to the caller
    """
    existing = {
        (item.provenance, item.source_task) for item in document.backlog if item.source_task
    }

    report = ScanReport()
    touched: list[ArchiveEntry] = []
    for phase in document.phases:
        if phase.status != PhaseStatus.COMPLETE:
            continue
        entry = lookup(phase.number)
        if entry is None:
            continue
        report.scanned_phases.append(phase.number)

        changed = False
        for task in entry.snapshot.tasks:
            if task.done or task.deferred:
                continue
            key = (phase.number, task.id)
            if key not in existing:
                item = BacklogItem(
                    id=document.next_backlog_id(),
                    description=task.description,
                    provenance=phase.number,
                    source_task=task.id,
                    category=entry.snapshot.category,
                    reason=ORPHAN_REASON,
                    created_at=now,
                )
                document.backlog.append(item)
                existing.add(key)
                report.created.append(item)
            task.deferred = True
            changed = True

        if changed:
            touched.append(entry)

    return report, touched


def scan_in_transaction(txn: Transaction, now: datetime) -> ScanReport:
    """Run the scan against an open transaction; archive updates are staged."""
    report, touched = find_orphans(txn.document, txn.staged_archive, now)
    for entry in touched:
        txn.write_archive(entry)

    if report.created:
        logger.info(
            f"Orphan scan filed {len(report.created)} item(s) from "
            f"{len(report.scanned_phases)} archived phase(s)"
        )
    return report


def scan_orphans(workspace: Workspace) -> ScanReport:
    """Locked, idempotent orphan scan."""
    with workspace.transaction() as txn:
        report = scan_in_transaction(txn, workspace.clock())
    return report
