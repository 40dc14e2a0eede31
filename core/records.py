"""Generation record store: per-request status, timestamps, error and output location."""

import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone

from core.state import (
    COMPLETED,
    FAILED,
    GENERATING,
    PENDING,
    STATUSES,
    TERMINAL_STATUSES,
    GenerationRecord,
)

logger = logging.getLogger(__name__)

TITLE_LENGTH = 60
INTERRUPTED_ERROR = "Interrupted before completion"


class RecordNotFound(KeyError):
    """No generation record exists for the given id."""


class InvalidTransition(RuntimeError):
    """A status change would break pending -> generating -> completed|failed."""


def _now():
    return datetime.now(timezone.utc).isoformat()


def _title(prompt):
    text = " ".join(prompt.split())
    return text if len(text) <= TITLE_LENGTH else text[:TITLE_LENGTH - 3].rstrip() + "..."


class GenerationStore:
    """Thread-safe record store, optionally persisted to a JSON file.

    Every read-modify-write runs under one lock, so concurrent background
    completions never lose updates. The store holds only the artifact's
    blob key, never its body.
    """

    def __init__(self, path=None):
        self.path = path
        self._lock = threading.Lock()
        self._records = {}
        if path and os.path.exists(path):
            self._load()

    def _load(self):
        """Read persisted records; runs left unfinished by a previous process are failed."""
        with open(self.path) as f:
            data = json.load(f)
        interrupted = 0
        for item in data:
            record = GenerationRecord.from_dict(item)
            if record.status not in TERMINAL_STATUSES:
                record.status = FAILED
                record.completed_at = _now()
                record.error = INTERRUPTED_ERROR
                interrupted += 1
            self._records[record.id] = record
        logger.info("Loaded %d generation record(s) from %s", len(self._records), self.path)
        if interrupted:
            logger.warning("Marked %d unfinished generation(s) as failed", interrupted)
            with self._lock:
                self._save()

    def _save(self):
        """Rewrite the JSON file atomically. Called under _lock."""
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".records-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump([r.to_dict() for r in self._records.values()], f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def create(self, prompt):
        """Insert a pending record and return its new id."""
        with self._lock:
            record_id = uuid.uuid4().hex[:8]
            while record_id in self._records:
                record_id = uuid.uuid4().hex[:8]
            self._records[record_id] = GenerationRecord(
                id=record_id,
                prompt=prompt,
                title=_title(prompt),
                status=PENDING,
                created_at=_now(),
            )
            self._save()
        return record_id

    def get(self, record_id):
        """Return a copy of the record, or None if unknown."""
        with self._lock:
            record = self._records.get(record_id)
            return copy.copy(record) if record else None

    def list_all(self, status=None):
        """Return copies of all records, newest first, optionally filtered by status."""
        if status is not None and status not in STATUSES:
            raise ValueError(f"Unknown status {status!r}; expected one of {STATUSES}")
        with self._lock:
            records = [copy.copy(r) for r in reversed(self._records.values())
                       if status is None or r.status == status]
        # Insertion order breaks timestamp ties
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def update(self, record_id, mutator):
        """Apply mutator(record) under the lock and persist the result.

        The mutator works on a copy; if it raises, the stored record is
        left untouched.
        """
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise RecordNotFound(record_id)
            draft = copy.copy(current)
            mutator(draft)
            self._records[record_id] = draft
            self._save()
            return copy.copy(draft)

    # -- lifecycle ---------------------------------------------------------

    def mark_generating(self, record_id):
        def mutate(record):
            _require_status(record, PENDING, GENERATING)
            record.status = GENERATING
        return self.update(record_id, mutate)

    def mark_progress(self, record_id, stage, score=None):
        def mutate(record):
            _require_status(record, GENERATING, f"stage {stage}")
            record.stage = stage
            if score is not None:
                record.score = score
        return self.update(record_id, mutate)

    def mark_completed(self, record_id, output_ref, score=None):
        def mutate(record):
            _require_active(record, COMPLETED)
            record.status = COMPLETED
            record.completed_at = _now()
            record.output_ref = output_ref
            record.error = None
            if score is not None:
                record.score = score
        return self.update(record_id, mutate)

    def mark_failed(self, record_id, error):
        def mutate(record):
            _require_unfinished(record, FAILED)
            record.status = FAILED
            record.completed_at = _now()
            record.error = error or "Unknown error"
        return self.update(record_id, mutate)


def _require_status(record, expected, target):
    if record.status != expected:
        raise InvalidTransition(f"{record.id}: cannot move from {record.status} to {target}")


def _require_unfinished(record, target):
    if record.status in TERMINAL_STATUSES:
        raise InvalidTransition(f"{record.id}: already {record.status}, cannot move to {target}")


def _require_active(record, target):
    _require_unfinished(record, target)
    _require_status(record, GENERATING, target)
