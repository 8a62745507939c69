import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

from presentation.models import Audience, LessonPlan, Slide, Source


class FakeModels:
    """Stands in for client.aio.models, replaying queued responses"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClient:
    def __init__(self, responses):
        self.models = FakeModels(responses)
        self.aio = SimpleNamespace(models=self.models)


def slide_dict(index, style="cinematic oil painting", **overrides):
    data = {
        "title": f"Slide {index}",
        "bullets": [f"What does verse {index} teach us?", "How can we apply this today?"],
        "scriptureReference": f"Genesis 6:{index}",
        "discussionQuestion": "Why do you think the Lord asked this?",
        "imageKeyword": f"{style} of an ark in the rain",
        "speakerNotes": f"Invite the class to read verse {index} together.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def search_response():
    """Build a grounded search response: search_response(text, [(title, uri), ...])"""

    def build(text="Genesis 6-11: Noah and the flood.", citations=()):
        chunks = [SimpleNamespace(web=SimpleNamespace(title=title, uri=uri)) for title, uri in citations]
        metadata = SimpleNamespace(grounding_chunks=chunks)
        return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=metadata)])

    return build


@pytest.fixture
def slides_response():
    """Build a JSON slides response: slides_response(count=5, style=...)"""

    def build(count=5, style="cinematic oil painting", raw=None):
        text = raw if raw is not None else json.dumps([slide_dict(i + 1, style) for i in range(count)])
        return SimpleNamespace(text=text, candidates=[])

    return build


@pytest.fixture
def make_client():
    return FakeClient


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (16, 9), (30, 58, 138)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def lesson_plan():
    slides = [Slide.model_validate(slide_dict(i + 1)) for i in range(5)]
    slides.append(Slide.model_validate(slide_dict(6, scriptureReference=None, discussionQuestion=None)))
    return LessonPlan(
        topic="Lesson for Sunday, October 25, 2026",
        date="Sunday, October 25, 2026",
        audience=Audience.GOSPEL_DOCTRINE,
        slides=slides,
        sources=[
            Source(title="Come, Follow Me", uri="https://www.churchofjesuschrist.org/study/come-follow-me"),
            Source(title="Genesis 6", uri="https://www.churchofjesuschrist.org/study/scriptures/ot/gen/6"),
        ],
    )


@pytest.fixture
def lesson_plan_without_sources(lesson_plan):
    return lesson_plan.model_copy(update={"sources": []})
