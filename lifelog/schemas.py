"""
Response schemas for the text providers.

Model output is free text; the first JSON object in it is validated
against one of these models before anything touches an entry.
"""

import json
import re
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MalformedResponseError
from .models import Sentiment

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

T = TypeVar("T", bound=BaseModel)


class _ProviderModel(BaseModel):
    # Providers answer in camelCase; accept snake_case too.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AnalysisResult(_ProviderModel):
    summary: str
    sentiment: Sentiment
    sentiment_score: float = Field(alias="sentimentScore", ge=0.0, le=1.0)
    topics: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    mood: str


class DailyNarrative(_ProviderModel):
    title: str
    narrative: str
    overall_mood: Optional[str] = Field(default=None, alias="overallMood")
    highlights: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    reflection: Optional[str] = None


class WeeklyNarrative(_ProviderModel):
    title: str
    narrative: str
    overall_mood: Optional[str] = Field(default=None, alias="overallMood")
    top_themes: list[str] = Field(default_factory=list, alias="topThemes")
    wins: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list, alias="actionItems")
    week_ahead: Optional[str] = Field(default=None, alias="weekAhead")


class PatternInsights(_ProviderModel):
    insights: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    areas_for_attention: list[str] = Field(default_factory=list, alias="areasForAttention")
    suggestions: list[str] = Field(default_factory=list)
    summary: str


def extract_json_object(text: str, what: str = "analysis") -> dict:
    """Pull the first {...} block out of model output (handles code fences)."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise MalformedResponseError(f"Invalid {what} response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid {what} response: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Invalid {what} response")
    return data


def parse_response(text: str, model: Type[T], what: str) -> T:
    """Extract and validate a provider response in one step."""
    data = extract_json_object(text, what)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid {what} response: {e.error_count()} field error(s)") from e
