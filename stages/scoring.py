"""Candidate scorer — absolute or head-to-head evaluation against the rubric."""

import json

from core.schemas import EvaluationMetrics, RequirementsAnalysis, UIEvaluation
from config.defaults import DEFAULTS
from utils.template_engine import render_template


class CandidateScorer:
    """Scores one candidate (absolute) or several (comparative). 1 LLM call.

    The prompt and schema are identical in both modes; only the candidate
    set differs. Results naming a candidate that was not submitted are
    rejected and retried by the gateway.
    """

    name = "scoring"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, requirements: RequirementsAnalysis, rubric: EvaluationMetrics,
                  candidates, reflections="") -> UIEvaluation:
        if not candidates:
            raise ValueError("At least one candidate is required for scoring")
        submitted = [c.id for c in candidates]
        if len(set(submitted)) != len(submitted):
            raise ValueError(f"Candidate ids must be unique: {submitted}")

        system_prompt = render_template("scoring.txt", {
            "requirementsContext": requirements,
            "reflectionsContext": reflections,
            "evaluationMetrics": rubric,
            "articlesContent": json.dumps([c.to_dict() for c in candidates], indent=2),
        })
        return await self.gateway.complete_structured(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": "Evaluate the candidates and return the JSON evaluation."},
            ],
            UIEvaluation,
            check=lambda evaluation: evaluation.ensure_consistent(submitted),
            max_tokens=DEFAULTS["max_tokens"]["evaluation"],
        )
