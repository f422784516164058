# phaseflow/planning/triage/oracle.py
"""
Decision Oracle: the interface triage uses whenever a human (or policy)
must choose what happens to a backlog item.

The engine never guesses. It builds a TriagePrompt listing the offered
choice kinds and the oracle answers with exactly one Choice.
"""

from typing import Literal, Protocol

from pydantic import BaseModel, Field

from phaseflow.models.roadmap import BacklogItem

ChoiceKind = Literal["assign_recommended", "assign_other", "create_phase", "skip", "keep_open"]

ALL_KINDS: tuple[str, ...] = (
    "assign_recommended",
    "assign_other",
    "create_phase",
    "skip",
    "keep_open",
)


class Choice(BaseModel):
    """One answer from the oracle."""

    kind: ChoiceKind
    phase: str | None = Field(default=None, description="Target phase for assign_other")
    name: str | None = Field(default=None, description="New phase name for create_phase")
    goal: str = Field(default="", description="New phase goal for create_phase")
    after: str | None = Field(
        default=None, description="Insert new phase after this one (None = append)"
    )
    category: str | None = None

    @classmethod
    def assign_recommended(cls) -> "Choice":
        return cls(kind="assign_recommended")

    @classmethod
    def assign_other(cls, phase: str) -> "Choice":
        return cls(kind="assign_other", phase=phase)

    @classmethod
    def create_phase(
        cls, name: str, goal: str = "", after: str | None = None, category: str | None = None
    ) -> "Choice":
        return cls(kind="create_phase", name=name, goal=goal, after=after, category=category)

    @classmethod
    def skip(cls) -> "Choice":
        return cls(kind="skip")

    @classmethod
    def keep_open(cls) -> "Choice":
        return cls(kind="keep_open")


class Candidate(BaseModel):
    """A scored phase offered to the oracle."""

    phase_number: str
    phase_name: str
    score: float
    band: str


class TriagePrompt(BaseModel):
    """Everything the oracle needs to decide one item."""

    item: BacklogItem
    recommended: Candidate | None = None
    runner_up: Candidate | None = None
    candidates: list[Candidate] = Field(default_factory=list)
    options: list[str] = Field(default_factory=list, description="Offered choice kinds")


class DecisionOracle(Protocol):
    """Synchronous chooser over a finite option set."""

    def ask(self, prompt: TriagePrompt) -> Choice:
        ...


class ScriptedOracle:
    """
    Answers from a per-item decision map and records every prompt.

    Args:
        decisions: Backlog item id -> Choice
        default: Answer for items not in the map (default: keep_open)
    """

    def __init__(self, decisions: dict[str, Choice] | None = None, default: Choice | None = None):
        self.decisions = dict(decisions or {})
        self.default = default or Choice.keep_open()
        self.prompts: list[TriagePrompt] = []

    def ask(self, prompt: TriagePrompt) -> Choice:
        self.prompts.append(prompt)
        return self.decisions.get(prompt.item.id, self.default)

    @property
    def asked_ids(self) -> list[str]:
        return [p.item.id for p in self.prompts]


class KeepOpenOracle:
    """Policy stub: leave every item for a later session."""

    def ask(self, prompt: TriagePrompt) -> Choice:
        return Choice.keep_open()
