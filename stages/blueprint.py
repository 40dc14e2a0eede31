"""Blueprint synthesizer — turns requirements into a web DSL page blueprint."""

from core.schemas import RequirementsAnalysis, UIBlueprint
from config.defaults import DEFAULTS
from utils.template_engine import render_template


class BlueprintSynthesizer:
    """Produces a UIBlueprint from the requirements. 1 LLM call.

    The blueprint schema is large and deeply nested, so it is only advisory
    for the model; validation happens at the envelope level.
    """

    name = "blueprint"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, requirements: RequirementsAnalysis, artifact_content="",
                  reflections="") -> UIBlueprint:
        system_prompt = render_template("blueprint.txt", {
            "requirementsAnalysis": requirements,
            "artifactContent": artifact_content,
            "reflections": reflections,
        })
        raw = await self.gateway.complete_structured(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": "Produce the web DSL blueprint as JSON."},
            ],
            UIBlueprint,
            adhere_to_schema=False,
            check=UIBlueprint.check_envelope,
            temperature=0.15,
            max_tokens=DEFAULTS["max_tokens"]["blueprint"],
        )
        return UIBlueprint.from_raw(raw)
