# phaseflow/planning/triage/engine.py
"""
BacklogTriageEngine: assign Open backlog items to phases.

Modes:
- interactive: the oracle decides every item
- auto: High-band items are assigned directly; Medium/Low go to the oracle;
  None-band items stay Open unless the oracle asks for a new phase
- dry-run: compute proposals from an unlocked read and persist nothing;
  orphans the scan would file are included in the proposals

Interactive and auto runs first perform the orphan scan, then triage every
Open item inside the same transaction. An invalid oracle answer raises
ValidationError and the whole run is rolled back.
"""

import logging
from typing import Literal

from phaseflow.errors import ValidationError
from phaseflow.models.responses import Assignment, NewPhase, Proposal, TriageReport
from phaseflow.models.roadmap import BacklogItem, BacklogStatus, PhaseRecord, PhaseStatus, RoadmapDocument
from phaseflow.planning.lifecycle import insert_phase
from phaseflow.planning.orphans import find_orphans, scan_in_transaction
from phaseflow.planning.triage.oracle import (
    Candidate,
    Choice,
    DecisionOracle,
    KeepOpenOracle,
    TriagePrompt,
)
from phaseflow.planning.triage.scorer import ConfidenceBand, TriageScorer
from phaseflow.store.workspace import Transaction, Workspace

logger = logging.getLogger(__name__)

TriageMode = Literal["interactive", "auto", "dry-run"]
MODES = ("interactive", "auto", "dry-run")

CANDIDATE_STATUSES = (PhaseStatus.DRAFT, PhaseStatus.ACTIVE)


def _candidate(scorer: TriageScorer, phase: PhaseRecord, score: float) -> Candidate:
    return Candidate(
        phase_number=phase.number,
        phase_name=phase.name,
        score=score,
        band=scorer.band(score).value,
    )


class BacklogTriageEngine:
    """
    Scores and assigns backlog items.

    Args:
        workspace: Project workspace
        scorer: Fit scorer (default: built from workspace triage config)
    """

    def __init__(self, workspace: Workspace, scorer: TriageScorer | None = None) -> None:
        self.workspace = workspace
        self.scorer = scorer or TriageScorer(workspace.config.triage)

    def _rank(self, document: RoadmapDocument, item: BacklogItem) -> list[tuple[PhaseRecord, float]]:
        phases = [p for p in document.phases if p.status in CANDIDATE_STATUSES]
        return self.scorer.rank(item, phases)

    def triage(self, mode: TriageMode = "auto", oracle: DecisionOracle | None = None) -> TriageReport:
        """
        Run triage over every Open backlog item.

        Args:
            mode: interactive, auto or dry-run
            oracle: Decision interface (required for interactive; auto
                defaults to a keep-open policy)

        Raises:
            ValidationError: Unknown mode, missing oracle, or invalid oracle answer
        """
        if mode not in MODES:
            raise ValidationError(f"Unknown triage mode '{mode}'", f"Use one of: {', '.join(MODES)}")
        if mode == "dry-run":
            return self.propose()
        if oracle is None:
            if mode == "interactive":
                raise ValidationError("Interactive triage needs a decision oracle")
            oracle = KeepOpenOracle()

        report = TriageReport(mode=mode)
        with self.workspace.transaction() as txn:
            scan = scan_in_transaction(txn, self.workspace.clock())
            report.orphans = [item.id for item in scan.created]

            for item in list(txn.document.open_items()):
                self._triage_item(txn, item, mode, oracle, report)

            report.remaining_open = [i.id for i in txn.document.open_items()]

        logger.info(
            f"Triage ({mode}): {len(report.assignments)} assigned, "
            f"{len(report.new_phases)} new phase(s), {len(report.skipped)} skipped, "
            f"{len(report.remaining_open)} still open"
        )
        return report

    def propose(self) -> TriageReport:
        """Dry-run: what auto mode would do, from an unlocked read."""
        document = self.workspace.read()
        report = TriageReport(mode="dry-run")
        scan, _ = find_orphans(document, self.workspace.archive.find, self.workspace.clock())
        report.orphans = [item.id for item in scan.created]
        high = self.scorer.config.high
        low = self.scorer.config.low

        for item in document.open_items():
            ranked = self._rank(document, item)
            proposal = Proposal(item_id=item.id, description=item.description, action="keep_open")
            if ranked:
                best, best_score = ranked[0]
                proposal.best_phase = best.number
                proposal.best_score = best_score
                proposal.band = self.scorer.band(best_score).value
                if len(ranked) > 1:
                    proposal.runner_up = ranked[1][0].number
                    proposal.runner_up_score = ranked[1][1]
                if best_score >= high:
                    proposal.action = "assign"
                elif best_score >= low:
                    proposal.action = "ask"
            report.proposals.append(proposal)

        report.remaining_open = [i.id for i in document.open_items()]
        return report

    def _triage_item(
        self,
        txn: Transaction,
        item: BacklogItem,
        mode: str,
        oracle: DecisionOracle,
        report: TriageReport,
    ) -> None:
        document = txn.document
        ranked = self._rank(document, item)
        best, best_score = ranked[0] if ranked else (None, 0.0)
        band = self.scorer.band(best_score)

        if mode == "auto" and best is not None and band == ConfidenceBand.HIGH:
            self._assign(item, best, best_score, report, confirmed=False)
            return

        if mode == "auto" and band == ConfidenceBand.NONE:
            options = ["create_phase", "keep_open"]
        else:
            options = []
            if best is not None:
                options.append("assign_recommended")
            if len(ranked) > 1:
                options.append("assign_other")
            options += ["create_phase", "skip", "keep_open"]

        prompt = TriagePrompt(
            item=item,
            recommended=_candidate(self.scorer, best, best_score) if best else None,
            runner_up=_candidate(self.scorer, *ranked[1]) if len(ranked) > 1 else None,
            candidates=[_candidate(self.scorer, p, s) for p, s in ranked],
            options=options,
        )
        choice = oracle.ask(prompt)
        self._apply(txn, item, choice, ranked, options, report)

    def _apply(
        self,
        txn: Transaction,
        item: BacklogItem,
        choice: Choice,
        ranked: list[tuple[PhaseRecord, float]],
        options: list[str],
        report: TriageReport,
    ) -> None:
        if choice.kind not in options:
            raise ValidationError(
                f"Choice '{choice.kind}' was not offered for item {item.id}",
                f"Offered: {', '.join(options)}",
            )

        if choice.kind == "assign_recommended":
            phase, score = ranked[0]
            self._assign(item, phase, score, report, confirmed=True)

        elif choice.kind == "assign_other":
            match = next(((p, s) for p, s in ranked if p.number == choice.phase), None)
            if match is None:
                raise ValidationError(
                    f"Phase {choice.phase} is not a triage candidate for item {item.id}",
                    f"Candidates: {', '.join(p.number for p, _ in ranked)}",
                )
            self._assign(item, match[0], match[1], report, confirmed=True)

        elif choice.kind == "create_phase":
            if not choice.name or not choice.name.strip():
                raise ValidationError(f"New phase for item {item.id} needs a name")
            phase, renumbering = insert_phase(
                txn,
                name=choice.name,
                goal=choice.goal,
                scope=[item.description],
                after=choice.after,
                category=choice.category or item.category,
            )
            if renumbering:
                self._record_renumbering(report, renumbering)
            score = self.scorer.score(item, phase)
            item.status = BacklogStatus.ASSIGNED
            item.assigned_phase = phase.number
            item.confidence_score = score
            report.new_phases.append(
                NewPhase(item_id=item.id, phase_number=phase.number, name=phase.name, after=choice.after)
            )
            logger.info(f"Created phase {phase.number} - {phase.name} for item {item.id}")

        elif choice.kind == "skip":
            item.status = BacklogStatus.SKIPPED
            report.skipped.append(item.id)

        # keep_open leaves the item untouched

    def _assign(
        self,
        item: BacklogItem,
        phase: PhaseRecord,
        score: float,
        report: TriageReport,
        confirmed: bool,
    ) -> None:
        phase.scope.append(item.description)
        item.status = BacklogStatus.ASSIGNED
        item.assigned_phase = phase.number
        item.confidence_score = score
        band = self.scorer.band(score)
        report.assignments.append(
            Assignment(
                item_id=item.id,
                description=item.description,
                phase_number=phase.number,
                score=score,
                band=band.value,
                confirmed=confirmed,
            )
        )
        logger.info(f"Assigned {item.id} to phase {phase.number} (score {score:.2f}, {band.value})")

    def _record_renumbering(self, report: TriageReport, mapping: dict[str, str]) -> None:
        moved_to = set(report.renumbered.values())
        composed = {old: mapping.get(mid, mid) for old, mid in report.renumbered.items()}
        for old, new in mapping.items():
            if old not in moved_to:
                composed[old] = new
        report.renumbered = composed

        for assignment in report.assignments:
            assignment.phase_number = mapping.get(assignment.phase_number, assignment.phase_number)
        for created in report.new_phases:
            created.phase_number = mapping.get(created.phase_number, created.phase_number)
            if created.after is not None:
                created.after = mapping.get(created.after, created.after)
