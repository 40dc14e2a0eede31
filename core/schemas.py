"""Output shapes for the structured pipeline stages.

Field names are snake_case in Python and camelCase on the wire; both are
accepted when validating.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from utils.llm import InvalidStructuredOutput


def clamp_score(value) -> float:
    """Bound a model-reported score to 0-100."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(100.0, score))


class Shape(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------

class RequirementsAnalysis(Shape):
    """Structured distillation of what the user asked for."""

    main_goal: str = Field(description="The main goal or objective of the page to be created")
    key_features: list[str] = Field(default_factory=list, description="Key features, layout structure, navigation and main content areas")
    technical_requirements: list[str] = Field(default_factory=list, description="HTML structure, styling, scripting and required libraries")
    preferences: list[str] = Field(default_factory=list, description="Color schemes, typography, spacing, animations and overall visual style")
    considerations: list[str] = Field(default_factory=list, description="Accessibility, responsiveness, compatibility and performance considerations")
    ui_components: list[str] = Field(default_factory=list, description="Buttons, forms, cards, modals, navigation and other interactive elements")
    interactions: list[str] = Field(default_factory=list, description="Hover effects, click actions, validations, animations and transitions")
    data_visualization: list[str] = Field(default_factory=list, description="Charts, graphs or tables if needed")
    responsive_layouts: list[str] = Field(default_factory=list, description="Behavior for different screen sizes and devices")
    accessibility_features: list[str] = Field(default_factory=list, description="ARIA attributes, keyboard navigation and contrast requirements")
    problem_solution_approach: list[str] = Field(default_factory=list, description="How the UI solves the user's problem, steps and success criteria")


# ---------------------------------------------------------------------------
# Blueprint (UI DSL)
# ---------------------------------------------------------------------------

class BlueprintMetadata(Shape):
    model_config = ConfigDict(extra="allow")

    title: str | None = Field(default=None, description="Page title shown in the browser tab")


class BlueprintState(Shape):
    model_config = ConfigDict(extra="allow")

    name: str = Field(description="Unique camelCase state variable name")
    initial_value: str = Field(default="", description="Initial value as a string, JSON-encoded for objects")
    description: str | None = None


class BlueprintElement(Shape):
    """One node of the page tree. Children point at their parent by id.

    Anything beyond the envelope (layout, attributes, events, interactions,
    list items...) is kept as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Unique element identifier referenced by events and parentId")
    parent_id: str | None = Field(default=None, description="Id of the parent element; omit for root elements")
    element_type: str = Field(default="div", description="HTML tag or conceptual component name")
    content: str | None = Field(default=None, description="Actual display text for the element")


class UIBlueprint(Shape):
    """Semi-structured description of the target page."""

    model_config = ConfigDict(extra="allow")

    description: str = Field(default="", description="Brief summary of the page's purpose and functionality")
    metadata: BlueprintMetadata | None = None
    states: list[BlueprintState] = Field(default_factory=list)
    elements: list[BlueprintElement] = Field(default_factory=list)
    flows: list[dict] = Field(default_factory=list, description="User flows as ordered steps")

    @classmethod
    def from_raw(cls, raw) -> "UIBlueprint":
        """Validate the envelope of an advisory completion."""
        if not isinstance(raw, dict):
            raise InvalidStructuredOutput(f"Blueprint must be a JSON object, got {type(raw).__name__}")
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise InvalidStructuredOutput(f"Blueprint envelope is invalid: {e}") from e

    @classmethod
    def check_envelope(cls, raw) -> None:
        cls.from_raw(raw)

    def roots(self) -> list[BlueprintElement]:
        ids = {e.id for e in self.elements}
        return [e for e in self.elements if not e.parent_id or e.parent_id not in ids]

    def children(self, element_id: str) -> list[BlueprintElement]:
        return [e for e in self.elements if e.parent_id == element_id]


# ---------------------------------------------------------------------------
# Rubric
# ---------------------------------------------------------------------------

class Metric(Shape):
    name: str = Field(description="Name of the evaluation metric")
    description: str = Field(default="", description="What this metric evaluates")
    weight: float = Field(description="Weight of this metric in the overall score. Min 0. Max 1.")
    criteria: list[str] = Field(default_factory=list, description="Specific criteria to evaluate for this metric")


class EvaluationMetrics(Shape):
    """Task-specific rubric. Weights are relative; they should sum to 1.0."""

    metrics: list[Metric]

    def weight_total(self) -> float:
        return sum(max(0.0, m.weight) for m in self.metrics)

    def normalized_weights(self) -> dict[str, float]:
        total = self.weight_total()
        if not self.metrics:
            return {}
        if total <= 0:
            equal = 1.0 / len(self.metrics)
            return {m.name: equal for m in self.metrics}
        return {m.name: max(0.0, m.weight) / total for m in self.metrics}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class MetricScore(Shape):
    score: float = Field(description="Score for this metric. Min 0. Max 100.")
    comment: str = Field(default="", description="One-sentence evaluation comment for this metric")


class OverallScore(Shape):
    total_score: float = Field(description="Final score for this candidate. Min 0. Max 100.")
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class ArticleEvaluation(Shape):
    article_id: str = Field(description="Identifier of the candidate being scored")
    scores: list[MetricScore] = Field(default_factory=list, description="One entry per rubric metric, in rubric order")
    content_preferences: MetricScore | None = None
    style_preferences: MetricScore | None = None
    overall: OverallScore


class BestArticle(Shape):
    article_id: str = Field(description="Identifier of the best candidate")
    total_score: float = Field(description="Total score of the best candidate. Min 0. Max 100.")
    justification: str = Field(default="", description="One-sentence justification")


class UIEvaluation(Shape):
    """Scores for one or more candidates and the designated winner."""

    article_comparison: list[ArticleEvaluation]
    best_article: BestArticle

    @property
    def winner_id(self) -> str:
        return self.best_article.article_id

    @property
    def total_score(self) -> float:
        return self.score_for(self.winner_id)

    def entry(self, article_id: str) -> ArticleEvaluation | None:
        for item in self.article_comparison:
            if item.article_id == article_id:
                return item
        return None

    def score_for(self, article_id: str) -> float:
        """Overall score for a candidate, bounded to 0-100.

        The winner falls back to bestArticle.totalScore when the breakdown
        has no entry for it; any other missing candidate scores 0.
        """
        item = self.entry(article_id)
        if item is not None:
            return clamp_score(item.overall.total_score)
        if article_id == self.winner_id:
            return clamp_score(self.best_article.total_score)
        return 0.0

    def ensure_consistent(self, submitted_ids) -> None:
        submitted = set(submitted_ids)
        unknown = {item.article_id for item in self.article_comparison} - submitted
        if unknown:
            raise InvalidStructuredOutput(f"Evaluation scored unknown candidates: {sorted(unknown)}")
        if self.winner_id not in submitted:
            raise InvalidStructuredOutput(f"Evaluation picked unknown winner: {self.winner_id!r}")
