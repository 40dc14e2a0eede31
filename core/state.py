"""Run state and generation record models shared across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from core.schemas import EvaluationMetrics, RequirementsAnalysis, UIBlueprint, UIEvaluation

PENDING = "pending"
GENERATING = "generating"
COMPLETED = "completed"
FAILED = "failed"

STATUSES = (PENDING, GENERATING, COMPLETED, FAILED)
TERMINAL_STATUSES = (COMPLETED, FAILED)


@dataclass
class GenerationRecord:
    id: str
    prompt: str
    title: str = ""                     # prompt excerpt for listings
    status: str = PENDING               # pending|generating|completed|failed
    created_at: str = ""                # ISO-8601 UTC
    completed_at: str | None = None
    error: str | None = None
    output_ref: str | None = None       # blob key of the final artifact
    stage: str | None = None            # last reported pipeline stage
    score: float | None = None

    def to_dict(self):
        return {
            "id": self.id,
            "prompt": self.prompt,
            "title": self.title,
            "status": self.status,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "error": self.error,
            "outputRef": self.output_ref,
            "stage": self.stage,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            prompt=data["prompt"],
            title=data.get("title", ""),
            status=data.get("status", PENDING),
            created_at=data.get("createdAt", ""),
            completed_at=data.get("completedAt"),
            error=data.get("error"),
            output_ref=data.get("outputRef"),
            stage=data.get("stage"),
            score=data.get("score"),
        )


@dataclass(frozen=True)
class Candidate:
    id: str             # "v1", "prev", "new", "new-2"...
    title: str
    html: str

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class RefinementState:
    """Current best artifact. Replaced, never mutated, as the loop advances."""

    artifact: str
    score: float
    evaluation: UIEvaluation
    iteration: int = 0


@dataclass
class Iteration:
    number: int
    candidate_scores: list[float]
    winner: str                 # "new" | "new-k" | "prev"
    best_score: float
    improvement: float


@dataclass
class RunResult:
    artifact: str
    score: float
    evaluation: UIEvaluation
    requirements: RequirementsAnalysis
    blueprint: UIBlueprint
    rubric: EvaluationMetrics
    iterations: list[Iteration] = field(default_factory=list)
    stop_reason: str = "max_iterations"     # target|diminishing_returns|max_iterations
