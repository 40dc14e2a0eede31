"""Shared fakes: a scripted stand-in for the Anthropic async client."""

import asyncio
import json
import re
from types import SimpleNamespace

import pytest

from utils.llm import ModelGateway


class FakeMessages:
    """Mimics client.messages.create; `responder(kwargs)` returns text or an exception."""

    def __init__(self, responder):
        self.responder = responder
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        result = self.responder(kwargs)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=result)])


class FakeClient:
    def __init__(self, responder):
        self.messages = FakeMessages(responder)


def scripted(*replies):
    """Responder returning the given replies in order (exceptions are raised)."""
    queue = list(replies)

    def responder(kwargs):
        if not queue:
            raise AssertionError("Fake model called more times than scripted")
        return queue.pop(0)

    return responder


def evaluation_payload(scores, winner=None):
    """UIEvaluation JSON for {candidate_id: total_score}; ties go to the first id."""
    if winner is None:
        winner = max(scores, key=lambda cid: (scores[cid], -list(scores).index(cid)))
    return {
        "articleComparison": [
            {
                "articleId": cid,
                "scores": [{"score": score, "comment": "Reasonable."}],
                "contentPreferences": {"score": score, "comment": "Matches content."},
                "stylePreferences": {"score": score, "comment": "Matches style."},
                "overall": {
                    "totalScore": score,
                    "strengths": [f"{cid} has a clear layout"],
                    "weaknesses": [f"{cid} needs more contrast"],
                },
            }
            for cid, score in scores.items()
        ],
        "bestArticle": {"articleId": winner, "totalScore": scores[winner], "justification": "Best fit."},
    }


REQUIREMENTS = {
    "mainGoal": "A pricing page comparing three plans",
    "keyFeatures": ["Three plan cards", "Monthly/yearly toggle"],
    "uiComponents": ["card", "toggle", "button"],
}

BLUEPRINT = {
    "description": "Pricing page with three plans",
    "metadata": {"title": "Pricing"},
    "states": [{"name": "billingPeriod", "initialValue": "monthly"}],
    "elements": [
        {"id": "page", "elementType": "main"},
        {"id": "plans", "parentId": "page", "elementType": "section",
         "layout": {"display": "grid"}},
        {"id": "toggle", "parentId": "page", "elementType": "button", "content": "Yearly",
         "events": [{"type": "click", "affects": [{"target": "billingPeriod", "action": "toggle"}]}]},
    ],
}

RUBRIC = {
    "metrics": [
        {"name": "Layout", "description": "Structure", "weight": 0.5, "criteria": ["Three cards"]},
        {"name": "Interactivity", "description": "Toggle works", "weight": 0.3, "criteria": ["Toggle"]},
        {"name": "Accessibility", "description": "ARIA", "weight": 0.2, "criteria": ["Labels"]},
    ]
}

_ID_RE = re.compile(r'"id": "([^"]+)"')


class PipelineResponder:
    """Routes each call to a canned answer by its prompt and scripts the scores.

    `scores` is consumed one entry per scoring call: the first is the
    absolute score of the initial candidate, each later one is the score of
    the refined candidate in a head-to-head against the current best. A
    `(prev, new)` pair also re-scores the current best in that comparison;
    a plain number repeats the best score seen so far for it.
    """

    def __init__(self, scores, validated=None, rubric=None):
        self.scores = list(scores)
        self.validated = validated
        self.rubric = rubric or RUBRIC
        self.best = None
        self.drafts = 0
        self.stages = []

    def __call__(self, kwargs):
        system = kwargs.get("system", "")
        user = kwargs["messages"][0]["content"]
        if system.startswith("You are a senior product designer"):
            self.stages.append("requirements")
            return json.dumps(REQUIREMENTS)
        if system.startswith("You are a UI architect"):
            self.stages.append("blueprint")
            return json.dumps(BLUEPRINT)
        if system.startswith("Based on the user's specific requirements"):
            self.stages.append("rubric")
            return json.dumps(self.rubric)
        if system.startswith("You are an expert evaluator"):
            self.stages.append("scoring")
            return json.dumps(self._evaluate(system))
        if system.startswith("You are an HTML formatter"):
            self.stages.append("validation")
            return self.validated if self.validated is not None else f"```html\n{user}\n```"
        if user.startswith("You are a professional UI engineer"):
            self.stages.append("candidate")
            self.drafts += 1
            return f"```html\n<html><body>draft {self.drafts}</body></html>\n```"
        raise AssertionError(f"Unrouted prompt: {(system or user)[:80]}")

    def _evaluate(self, system):
        ids = _ID_RE.findall(system.split("Candidates (JSON list of id, title, html):", 1)[1])
        score = self.scores.pop(0)
        if len(ids) == 1:
            self.best = score
            return evaluation_payload({ids[0]: score})
        prev, new = ids
        prev_score, new_score = score if isinstance(score, tuple) else (self.best, score)
        payload = evaluation_payload({prev: prev_score, new: new_score})
        self.best = max(self.best, prev_score, new_score)
        return payload


def make_gateway(responder, retries=3):
    return ModelGateway(client=FakeClient(responder), retries=retries, timeout=5, retry_delay=0)


@pytest.fixture
def gateway_factory():
    return make_gateway
