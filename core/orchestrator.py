"""Refinement controller — requirements → blueprint → candidates → scoring loop → validation."""

import asyncio
import logging
import time
from dataclasses import replace

from core.config import ModelConfig
from core.quality import (
    MAX_ITERATIONS,
    TARGET,
    RefinementPolicy,
    apply_comparison,
    candidate_wins,
    initial_state,
    stop_reason,
)
from core.state import Candidate, Iteration, RunResult
from stages.blueprint import BlueprintSynthesizer
from stages.candidate import CandidateGenerator
from stages.requirements import RequirementsAnalyst
from stages.rubric import RubricBuilder
from stages.scoring import CandidateScorer
from stages.validation import ArtifactValidator
from utils.llm import ModelGateway

logger = logging.getLogger(__name__)

INITIAL_ID = "v1"
PREVIOUS_ID = "prev"


class Orchestrator:
    """Runs one generation end to end.

    The stage order is fixed. Candidate generation and rubric building run
    concurrently; everything else is sequential. The refinement loop keeps
    the best-so-far in an immutable RefinementState and stops on the target
    score, on diminishing returns (unless the policy disables it), or after
    policy.max_iterations passes. Any stage failure aborts the run and
    propagates unchanged.
    """

    def __init__(self, gateway=None, models=None, policy=None):
        self.models = models or ModelConfig()
        self.policy = policy or RefinementPolicy()
        self.gateway = gateway or ModelGateway(provider_url=self.models.provider_url)
        self.analyst = RequirementsAnalyst(self.gateway)
        self.synthesizer = BlueprintSynthesizer(self.gateway)
        self.generator = CandidateGenerator(self.gateway)
        self.rubric_builder = RubricBuilder(self.gateway)
        self.scorer = CandidateScorer(self.gateway)
        self.validator = ArtifactValidator(self.gateway)

    async def run(self, prompt, reflections="", on_progress=None) -> RunResult:
        """Generate, refine and validate a page for `prompt`.

        Args:
            prompt: The user's natural-language request.
            reflections: Optional user preferences passed to every stage.
            on_progress: Optional callback(stage, best_score) invoked when a
                stage starts; best_score is None until the first scoring.
        """
        started = time.monotonic()
        models = self.models
        logger.info("Starting generation: %s", prompt[:100] + ("..." if len(prompt) > 100 else ""))

        _report(on_progress, "requirements")
        requirements = await self.analyst.run(models.requirement_analysis, prompt, reflections=reflections)

        _report(on_progress, "blueprint")
        blueprint = await self.synthesizer.run(models.ui_spec_synthesis, requirements, reflections=reflections)
        logger.info("Blueprint ready: %d element(s)", len(blueprint.elements))

        _report(on_progress, "initial")
        drafts, rubric = await asyncio.gather(
            self.generator.run(models.coding, requirements, blueprint, reflections=reflections),
            self.rubric_builder.run(models.evaluation, requirements),
        )
        first = drafts[0]
        evaluation = await self.scorer.run(
            models.evaluation, requirements, rubric,
            [Candidate(INITIAL_ID, "Candidate v1", first)],
            reflections=reflections,
        )
        state = initial_state(first, evaluation)
        logger.info("Initial candidate scored %.1f", state.score)

        iterations = []
        reason = TARGET if state.score >= self.policy.target_score else None
        while reason is None and state.iteration < self.policy.max_iterations:
            before = state
            state, record = await self._refine(state, requirements, blueprint, rubric, reflections, on_progress)
            iterations.append(record)
            reason = stop_reason(self.policy, before, state)
        reason = reason or MAX_ITERATIONS
        logger.info("Refinement stopped (%s) at %.1f after %d iteration(s)",
                    reason, state.score, len(iterations))

        _report(on_progress, "validation", state.score)
        artifact = await self.validator.run(models.validation, state.artifact, reflections=reflections)

        logger.info("Generation finished in %.1fs (%d characters)", time.monotonic() - started, len(artifact))
        return RunResult(
            artifact=artifact,
            score=state.score,
            evaluation=state.evaluation,
            requirements=requirements,
            blueprint=blueprint,
            rubric=rubric,
            iterations=iterations,
            stop_reason=reason,
        )

    async def _refine(self, state, requirements, blueprint, rubric, reflections, on_progress):
        """Run one refinement pass and return (new_state, Iteration)."""
        number = state.iteration + 1
        _report(on_progress, "iteration", state.score)
        logger.info("Iteration %d/%d: generating %d refinement(s)",
                    number, self.policy.max_iterations, self.policy.samples_per_iteration)

        drafts = await self.generator.run(
            self.models.coding, requirements, blueprint,
            artifact=state.artifact,
            evaluation=state.evaluation,
            reflections=reflections,
            samples=self.policy.samples_per_iteration,
        )

        start_score = state.score
        winner = PREVIOUS_ID
        scores = []
        for index, draft in enumerate(drafts, 1):
            candidate_id = "new" if len(drafts) == 1 else f"new-{index}"
            pair = [
                Candidate(PREVIOUS_ID, f"Best so far (iter {number - 1})", state.artifact),
                Candidate(candidate_id, f"Refined (iter {number})", draft),
            ]
            evaluation = await self.scorer.run(
                self.models.evaluation, requirements, rubric, pair, reflections=reflections,
            )
            scores.append(evaluation.score_for(candidate_id))
            if candidate_wins(evaluation, candidate_id, PREVIOUS_ID):
                winner = candidate_id
            state = apply_comparison(state, candidate_id, draft, evaluation, previous_id=PREVIOUS_ID)

        state = replace(state, iteration=number)
        record = Iteration(
            number=number,
            candidate_scores=scores,
            winner=winner,
            best_score=state.score,
            improvement=state.score - start_score,
        )
        logger.info("Iteration %d: winner=%s score=%.1f improvement=%.1f",
                    number, winner, state.score, record.improvement)
        return state, record


def _report(on_progress, stage, score=None):
    if on_progress is not None:
        on_progress(stage, score)
