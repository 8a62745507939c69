"""
Lesson Planner - Data Models
LessonPlan, Slide and Source records shared by the pipeline, viewer and exporter
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Audience(str, Enum):
    """The four classes a lesson can be prepared for"""

    PRIMARY = "Primary (Children)"
    YOUTH = "Youth (Teens)"
    GOSPEL_DOCTRINE = "Gospel Doctrine (Adults)"
    GOSPEL_ESSENTIALS = "Gospel Essentials (New Members)"

    @property
    def image_style(self) -> str:
        """Style prefix every image keyword for this audience starts with"""
        if self is Audience.PRIMARY:
            return "cute vector illustration"
        if self is Audience.YOUTH:
            return "digital art style"
        return "cinematic oil painting"


# Setup form cards, in display order
AUDIENCE_OPTIONS = [
    {
        "value": Audience.PRIMARY,
        "label": "Primary",
        "description": "Simple concepts, stories, and engaging visuals for children.",
        "icon": "🎨",
    },
    {
        "value": Audience.YOUTH,
        "label": "Youth",
        "description": "Relevant applications and doctrinal discussions for teenagers.",
        "icon": "🏀",
    },
    {
        "value": Audience.GOSPEL_DOCTRINE,
        "label": "Gospel Doctrine",
        "description": "Deep scriptural analysis and history for adults.",
        "icon": "📖",
    },
    {
        "value": Audience.GOSPEL_ESSENTIALS,
        "label": "Gospel Essentials",
        "description": "Foundational principles and clarity for new members.",
        "icon": "🌱",
    },
]

DEFAULT_AUDIENCE = Audience.GOSPEL_DOCTRINE


class Source(BaseModel):
    """Grounding citation returned with the lesson search"""

    model_config = ConfigDict(frozen=True)

    title: str
    uri: str


class Slide(BaseModel):
    """One slide as produced by the model response"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(..., description="Slide title")
    bullets: List[str] = Field(..., description="Discussion questions")
    scripture_reference: Optional[str] = Field(None, alias="scriptureReference")
    discussion_question: Optional[str] = Field(None, alias="discussionQuestion")
    image_keyword: str = Field(..., alias="imageKeyword")
    speaker_notes: str = Field(..., alias="speakerNotes")


class LessonPlan(BaseModel):
    """A finished lesson: created once per generation, never edited"""

    model_config = ConfigDict(frozen=True)

    topic: str
    date: str
    audience: Audience
    slides: List[Slide]
    sources: List[Source] = Field(default_factory=list)

    @property
    def has_sources(self) -> bool:
        return len(self.sources) > 0
