"""Rubric builder — derives task-specific weighted evaluation metrics."""

import logging

from core.schemas import EvaluationMetrics, RequirementsAnalysis
from config.defaults import DEFAULTS
from utils.template_engine import render_template

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 0.01


class RubricBuilder:
    """Builds the scoring rubric from the requirements. 1 LLM call.

    Weights are expected to sum to 1.0 but are treated as relative by
    consumers; drift is logged, never rejected.
    """

    name = "rubric"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, requirements: RequirementsAnalysis) -> EvaluationMetrics:
        system_prompt = render_template("rubric.txt", {"requirementsContext": requirements})
        rubric = await self.gateway.complete_structured(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": "Produce the evaluation rubric as JSON."},
            ],
            EvaluationMetrics,
            max_tokens=DEFAULTS["max_tokens"]["metrics"],
        )
        total = rubric.weight_total()
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            logger.warning("Rubric weights sum to %.3f, treating them as relative", total)
        return rubric
