"""Refinement policy, best-so-far reducers and stopping rules."""

from dataclasses import dataclass, replace

from config.defaults import DEFAULTS
from core.state import RefinementState

TARGET = "target"
DIMINISHING_RETURNS = "diminishing_returns"
MAX_ITERATIONS = "max_iterations"


@dataclass(frozen=True)
class RefinementPolicy:
    """Knobs of the refinement loop.

    min_improvement=None selects the target-only policy: the loop stops on
    the target score or the iteration ceiling, never on a slow gain.
    """

    max_iterations: int = DEFAULTS["max_iterations"]
    target_score: float = DEFAULTS["target_score"]
    min_improvement: float | None = DEFAULTS["min_improvement"]
    samples_per_iteration: int = DEFAULTS["samples_per_iteration"]

    def __post_init__(self):
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.samples_per_iteration < 1:
            raise ValueError(f"samples_per_iteration must be >= 1, got {self.samples_per_iteration}")


def initial_state(artifact, evaluation) -> RefinementState:
    """Best-so-far after the absolute scoring of the first candidate."""
    return RefinementState(artifact=artifact, score=evaluation.total_score, evaluation=evaluation)


def candidate_wins(evaluation, candidate_id, previous_id) -> bool:
    """True when the same comparison scored the candidate strictly above the incumbent."""
    return evaluation.score_for(candidate_id) > evaluation.score_for(previous_id)


def apply_comparison(state: RefinementState, candidate_id, artifact, evaluation,
                     previous_id="prev") -> RefinementState:
    """Fold one head-to-head result into the best-so-far.

    Both scores come from the same evaluation: the candidate replaces the
    best only when it beats `previous_id` there; ties keep the incumbent.
    The best score never decreases. The latest evaluation is carried
    forward either way so the next pass sees the newest critique.
    """
    if candidate_wins(evaluation, candidate_id, previous_id):
        score = max(state.score, evaluation.score_for(candidate_id))
        return replace(state, artifact=artifact, score=score, evaluation=evaluation)
    score = max(state.score, evaluation.score_for(previous_id))
    return replace(state, score=score, evaluation=evaluation)


def stop_reason(policy: RefinementPolicy, before: RefinementState, after: RefinementState):
    """Return why the loop should stop after an iteration, or None."""
    if after.score >= policy.target_score:
        return TARGET
    if policy.min_improvement is not None and after.score - before.score < policy.min_improvement:
        return DIMINISHING_RETURNS
    return None
