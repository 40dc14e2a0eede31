"""Generation service — the entry points behind the CLI and the web server."""

import asyncio
import logging

from core.blobs import MemoryBlobStore, artifact_key
from core.config import ConfigStore
from core.orchestrator import Orchestrator
from core.quality import RefinementPolicy
from core.records import GenerationStore, RecordNotFound
from core.scheduler import BackgroundScheduler
from core.state import COMPLETED

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class ArtifactNotReady(RuntimeError):
    """The generation exists but has not completed."""


class GenerationService:
    """Starts background generations and answers status/artifact queries.

    The record store is the only state shared between runs. Each run gets
    the model configuration snapshot that was current when it started.
    """

    def __init__(self, store=None, blobs=None, config_store=None, scheduler=None,
                 policy=None, orchestrator_factory=None):
        self.store = store or GenerationStore()
        self.blobs = blobs or MemoryBlobStore()
        self.config_store = config_store or ConfigStore()
        self.scheduler = scheduler or BackgroundScheduler()
        self.policy = policy or RefinementPolicy()
        self.orchestrator_factory = orchestrator_factory or self._default_orchestrator

    def _default_orchestrator(self, models):
        return Orchestrator(models=models, policy=self.policy)

    # -- background generation ---------------------------------------------

    def start_generation(self, prompt):
        """Accept a prompt, return its generation id, run it in the background."""
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("Prompt is required")

        record_id = self.store.create(prompt)
        orchestrator = self.orchestrator_factory(self.config_store.get())

        def on_progress(stage, score):
            self.store.mark_progress(record_id, stage, score)

        async def job():
            self.store.mark_generating(record_id)
            result = await orchestrator.run(prompt, on_progress=on_progress)
            key = self.blobs.put(artifact_key(record_id), result.artifact, HTML_CONTENT_TYPE)
            return key, result.score

        def on_done(outcome, error):
            if error is not None:
                logger.error("Generation %s failed: %s", record_id, error)
                self.store.mark_failed(record_id, str(error) or type(error).__name__)
                return
            key, score = outcome
            try:
                self.store.mark_completed(record_id, key, score)
            except Exception as e:
                logger.exception("Generation %s finished but could not be recorded", record_id)
                self.store.mark_failed(record_id, f"Could not record completion: {e}")
                return
            logger.info("Generation %s completed (score %.1f)", record_id, score)

        self.scheduler.launch(job, on_done, name=f"generation-{record_id}")
        logger.info("Generation %s started", record_id)
        return record_id

    def get_status(self, record_id):
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    def list_generations(self, status=None):
        return self.store.list_all(status=status)

    def get_artifact(self, record_id):
        """Return the final HTML of a completed generation."""
        record = self.get_status(record_id)
        if record.status != COMPLETED:
            raise ArtifactNotReady(f"Generation {record_id} is {record.status}")
        data = self.blobs.get(record.output_ref)
        if data is None:
            raise RecordNotFound(f"Artifact for {record_id} is missing at {record.output_ref}")
        return data.decode("utf-8")

    # -- synchronous generation --------------------------------------------

    def run_sync(self, prompt, reflections="", on_progress=None):
        """Run the whole pipeline in the caller; bypasses the record store."""
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("Prompt is required")
        orchestrator = self.orchestrator_factory(self.config_store.get())
        return asyncio.run(orchestrator.run(prompt, reflections=reflections, on_progress=on_progress))

    def generate_sync(self, prompt):
        return self.run_sync(prompt).artifact

    # -- configuration -----------------------------------------------------

    def get_config(self):
        return self.config_store.get().to_dict()

    def set_config(self, partial):
        return self.config_store.update(partial).to_dict()

    def reset_config(self):
        return self.config_store.reset().to_dict()
