"""Artifact validator — final cleanup pass over the winning page."""

from config.defaults import DEFAULTS
from utils.llm import strip_code_fences
from utils.template_engine import render_template


class ArtifactValidator:
    """Re-emits a cleaned version of the artifact. 1 LLM call.

    Falls back to the input when the model returns nothing usable.
    """

    name = "validation"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, artifact, reflections="") -> str:
        system_prompt = render_template("validation.txt", {"reflections": reflections})
        validated = await self.gateway.complete_text(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": artifact},
            ],
            max_tokens=DEFAULTS["max_tokens"]["validation"],
        )
        return strip_code_fences(validated) or artifact
