import io

import pytest
import requests
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.oxml.ns import qn
from pptx.util import Inches

from ppt_generator import EXPORT_FAILED_MESSAGE, PPTGenerator
from presentation.errors import ExportError


@pytest.fixture
def fetched(png_bytes):
    keywords = []

    def fetch(keyword):
        keywords.append(keyword)
        return png_bytes

    fetch.keywords = keywords
    return fetch


def _open(data):
    return Presentation(io.BytesIO(data))


def _texts(slide):
    return [shape.text_frame.text for shape in slide.shapes if shape.has_text_frame]


def test_one_slide_per_lesson_slide_plus_sources(lesson_plan, fetched):
    data = PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan)

    prs = _open(data)
    assert len(prs.slides) == len(lesson_plan.slides) + 1
    assert fetched.keywords == [slide.image_keyword for slide in lesson_plan.slides]


def test_no_sources_slide_without_sources(lesson_plan_without_sources, fetched):
    data = PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan_without_sources)

    assert len(_open(data).slides) == len(lesson_plan_without_sources.slides)


def test_widescreen_and_document_properties(lesson_plan, fetched):
    prs = _open(PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan))

    assert prs.slide_width == Inches(13.333)
    assert prs.slide_height == Inches(7.5)
    assert prs.core_properties.title == lesson_plan.topic
    assert prs.core_properties.subject == "Come Follow Me - Gospel Doctrine (Adults)"


def test_lesson_slide_content(lesson_plan, fetched):
    prs = _open(PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan))
    first = prs.slides[0]
    expected = lesson_plan.slides[0]

    texts = _texts(first)
    assert expected.title in texts
    assert any("• " + expected.bullets[0] in text for text in texts)
    assert f"📖 {expected.scripture_reference}" in texts
    assert "KEY QUESTION" in texts
    assert expected.discussion_question in texts
    assert first.notes_slide.notes_text_frame.text == expected.speaker_notes

    # background picture first, then the translucent overlay
    shapes = list(first.shapes)
    assert shapes[0].shape_type == MSO_SHAPE_TYPE.PICTURE
    alpha = shapes[1]._element.spPr.find(qn('a:solidFill')).find(qn('a:srgbClr')).find(qn('a:alpha'))
    assert alpha.get('val') == '60000'


def test_optional_callouts_are_omitted(lesson_plan, fetched):
    prs = _open(PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan))
    plain = prs.slides[5]

    texts = _texts(plain)
    assert "KEY QUESTION" not in texts
    assert not any(text.startswith("📖") for text in texts)


def test_sources_slide_links(lesson_plan, fetched):
    prs = _open(PPTGenerator(image_fetcher=fetched).generate_ppt(lesson_plan))
    sources_slide = prs.slides[len(prs.slides) - 1]

    texts = _texts(sources_slide)
    assert texts[0] == "Sources"
    runs = [p.runs[0] for p in sources_slide.shapes[1].text_frame.paragraphs]
    assert [run.hyperlink.address for run in runs] == [s.uri for s in lesson_plan.sources]
    assert runs[0].text == f"{lesson_plan.sources[0].title}: {lesson_plan.sources[0].uri}"


def test_image_failure_aborts_export(lesson_plan, png_bytes):
    calls = []

    def flaky_fetch(keyword):
        calls.append(keyword)
        if len(calls) == 3:
            raise requests.exceptions.ConnectionError("network down")
        return png_bytes

    with pytest.raises(ExportError) as exc_info:
        PPTGenerator(image_fetcher=flaky_fetch).generate_ppt(lesson_plan)

    assert str(exc_info.value) == EXPORT_FAILED_MESSAGE
    assert isinstance(exc_info.value.__cause__, requests.exceptions.ConnectionError)
    # later slides are never attempted
    assert len(calls) == 3


def test_unreadable_image_aborts_export(lesson_plan):
    with pytest.raises(ExportError):
        PPTGenerator(image_fetcher=lambda keyword: b"<html>rate limited</html>").generate_ppt(lesson_plan)


def test_filename_from_topic(lesson_plan):
    assert PPTGenerator.get_filename(lesson_plan) == "Lesson - Lesson for Sunday, October 25, 2026.pptx"

    odd = lesson_plan.model_copy(update={"topic": 'Moses 1: "I am a son of God"'})
    assert PPTGenerator.get_filename(odd) == "Lesson - Moses 1_ _I am a son of God_.pptx"
