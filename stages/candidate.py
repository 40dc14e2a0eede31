"""Candidate generator — writes (or rewrites) the full HTML page."""

from core.schemas import RequirementsAnalysis, UIBlueprint, UIEvaluation
from config.defaults import DEFAULTS
from utils.llm import strip_code_fences
from utils.template_engine import render_template


class CandidateGenerator:
    """Generates one or more candidate pages. 1 LLM call (n samples).

    With no artifact and no evaluation it creates a new page; otherwise it
    refines the given artifact against the evaluation's criticism.
    """

    name = "candidate"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, requirements: RequirementsAnalysis, blueprint: UIBlueprint,
                  artifact="", evaluation: UIEvaluation | None = None, reflections="",
                  samples=1) -> list[str]:
        prompt = render_template("candidate.txt", {
            "requirementsAnalysis": requirements,
            "webDSL": blueprint,
            "artifactContent": artifact,
            "evaluationResults": evaluation if evaluation is not None else "",
            "reflections": reflections,
        })
        raw = await self.gateway.complete_text(
            model,
            [{"role": "user", "content": prompt}],
            n=samples,
            max_tokens=DEFAULTS["max_tokens"]["coding"],
        )
        if isinstance(raw, str):
            raw = [raw]
        return [strip_code_fences(text) for text in raw]
