"""Requirements analyst — distills the user prompt into structured requirements."""

import logging

from core.schemas import RequirementsAnalysis
from config.defaults import DEFAULTS
from utils.template_engine import render_template

logger = logging.getLogger(__name__)


class RequirementsAnalyst:
    """Turns a natural-language request into a RequirementsAnalysis. 1 LLM call."""

    name = "requirements"

    def __init__(self, gateway):
        self.gateway = gateway

    async def run(self, model, prompt, reflections="", recent_artifact="") -> RequirementsAnalysis:
        system_prompt = render_template("requirements.txt", {
            "reflections": reflections,
            "recentArtifact": recent_artifact,
        })
        requirements = await self.gateway.complete_structured(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            RequirementsAnalysis,
            temperature=0.2,
            max_tokens=DEFAULTS["max_tokens"]["requirements"],
        )
        logger.debug("Requirements main goal: %s", requirements.main_goal)
        return requirements
