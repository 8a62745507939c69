"""
PPT Generator Module
Exports a lesson plan to a widescreen PowerPoint file using python-pptx
Slide backgrounds come from Pollinations AI via image_service
"""

import io
import logging
from typing import Callable, List

from lxml import etree
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import PP_ALIGN, MSO_ANCHOR
from pptx.oxml.ns import qn
from pptx.util import Inches, Pt, Emu

from image_service import fetch_image
from presentation.errors import ExportError
from presentation.models import LessonPlan, Slide, Source
from utils import sanitize_filename

logger = logging.getLogger(__name__)

EXPORT_FAILED_MESSAGE = (
    "Failed to generate PowerPoint. Please check your internet connection (needed for images)."
)

BLANK_LAYOUT = 6


class PPTGenerator:
    """Builds the downloadable deck for a lesson plan"""

    def __init__(self, image_fetcher: Callable[[str], bytes] = None):
        self.default_font = "Arial"
        self.image_fetcher = image_fetcher or fetch_image

        # 16:9 widescreen
        self.slide_width = Inches(13.333)
        self.slide_height = Inches(7.5)

        self.text_color = RGBColor(0xFF, 0xFF, 0xFF)
        self.scripture_color = RGBColor(0xFF, 0xD7, 0x00)  # Gold
        self.sidebar_fill = RGBColor(0x1E, 0x3A, 0x8A)
        self.sidebar_line = RGBColor(0x60, 0xA5, 0xFA)
        self.sidebar_label_color = RGBColor(0xBF, 0xDB, 0xFE)
        self.link_color = RGBColor(0x60, 0xA5, 0xFA)
        self.sources_background = RGBColor(0x11, 0x18, 0x27)

    @staticmethod
    def get_filename(lesson_plan: LessonPlan) -> str:
        return sanitize_filename(f"Lesson - {lesson_plan.topic}.pptx")

    def generate_ppt(self, lesson_plan: LessonPlan) -> bytes:
        """
        Generate the PowerPoint file in memory

        Args:
            lesson_plan: The finished lesson

        Returns:
            The .pptx file contents

        Raises:
            ExportError: if any slide fails, most often an image download.
                Nothing is returned or written in that case.
        """
        logger.info(f"Exporting '{lesson_plan.topic}' ({len(lesson_plan.slides)} slides)")

        try:
            prs = Presentation()
            prs.slide_width = self.slide_width
            prs.slide_height = self.slide_height
            prs.core_properties.title = lesson_plan.topic
            prs.core_properties.subject = f"Come Follow Me - {lesson_plan.audience.value}"

            for slide_data in lesson_plan.slides:
                self._add_lesson_slide(prs, slide_data)

            if lesson_plan.has_sources:
                self._add_sources_slide(prs, lesson_plan.sources)

            buffer = io.BytesIO()
            prs.save(buffer)
        except Exception as e:
            logger.error(f"Export failed: {e}")
            raise ExportError(EXPORT_FAILED_MESSAGE) from e

        data = buffer.getvalue()
        logger.info(f"PPT built successfully ({len(data):,} bytes, {len(prs.slides)} slides)")
        return data

    # ==================
    # SLIDES
    # ==================

    def _add_lesson_slide(self, prs: Presentation, slide_data: Slide):
        """Background image, dark overlay, title, questions, callouts and notes"""
        # Download first so a failed fetch leaves no half-built slide behind
        image_bytes = self.image_fetcher(slide_data.image_keyword)

        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])

        # Background picture must be the first shape so it sits behind everything
        slide.shapes.add_picture(
            io.BytesIO(image_bytes),
            Emu(0), Emu(0),
            self.slide_width, self.slide_height
        )

        overlay = slide.shapes.add_shape(
            MSO_SHAPE.RECTANGLE,
            Emu(0), Emu(0),
            self.slide_width, self.slide_height
        )
        overlay.fill.solid()
        overlay.fill.fore_color.rgb = RGBColor(0, 0, 0)
        self._set_shape_transparency(overlay, 40)
        overlay.line.fill.background()

        # Title
        title_box = slide.shapes.add_textbox(Inches(0.5), Inches(0.5), Inches(12.0), Inches(1.5))
        title_tf = title_box.text_frame
        title_tf.word_wrap = True
        title_p = title_tf.paragraphs[0]
        title_p.text = slide_data.title
        self._style(title_p, 36, bold=True)

        # Questions - narrower when the sidebar takes the right column
        bullets_width = Inches(8.7) if slide_data.discussion_question else Inches(11.3)
        bullets_box = slide.shapes.add_textbox(Inches(0.5), Inches(2.0), bullets_width, Inches(4.0))
        bullets_tf = bullets_box.text_frame
        bullets_tf.word_wrap = True
        bullets_tf.vertical_anchor = MSO_ANCHOR.TOP
        self._add_bullets(bullets_tf, slide_data.bullets)

        if slide_data.scripture_reference:
            scripture_box = slide.shapes.add_textbox(Inches(0.5), Inches(6.2), Inches(12.0), Inches(0.6))
            scripture_tf = scripture_box.text_frame
            scripture_tf.word_wrap = True
            scripture_p = scripture_tf.paragraphs[0]
            scripture_p.text = f"📖 {slide_data.scripture_reference}"
            self._style(scripture_p, 14, color=self.scripture_color, italic=True)

        if slide_data.discussion_question:
            self._add_key_question(slide, slide_data.discussion_question)

        slide.notes_slide.notes_text_frame.text = slide_data.speaker_notes

    def _add_key_question(self, slide, question: str):
        """Sidebar box holding the slide's main discussion question"""
        box = slide.shapes.add_shape(
            MSO_SHAPE.RECTANGLE,
            Inches(9.5), Inches(2.0), Inches(3.5), Inches(4.0)
        )
        box.fill.solid()
        box.fill.fore_color.rgb = self.sidebar_fill
        self._set_shape_transparency(box, 20)
        box.line.color.rgb = self.sidebar_line
        box.line.width = Pt(1)

        label_box = slide.shapes.add_textbox(Inches(9.7), Inches(2.2), Inches(3.1), Inches(0.3))
        label_p = label_box.text_frame.paragraphs[0]
        label_p.text = "KEY QUESTION"
        self._style(label_p, 10, color=self.sidebar_label_color, bold=True)

        question_box = slide.shapes.add_textbox(Inches(9.7), Inches(2.6), Inches(3.1), Inches(3.0))
        question_tf = question_box.text_frame
        question_tf.word_wrap = True
        question_tf.vertical_anchor = MSO_ANCHOR.TOP
        question_p = question_tf.paragraphs[0]
        question_p.text = question
        self._style(question_p, 16, bold=True)

    def _add_sources_slide(self, prs: Presentation, sources: List[Source]):
        """Trailing slide listing the grounding citations as links"""
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
        slide.background.fill.solid()
        slide.background.fill.fore_color.rgb = self.sources_background

        title_box = slide.shapes.add_textbox(Inches(0.5), Inches(0.5), Inches(12.0), Inches(1.0))
        title_p = title_box.text_frame.paragraphs[0]
        title_p.text = "Sources"
        self._style(title_p, 32, bold=True)

        list_box = slide.shapes.add_textbox(Inches(0.5), Inches(1.5), Inches(12.0), Inches(5.0))
        list_tf = list_box.text_frame
        list_tf.word_wrap = True
        list_tf.vertical_anchor = MSO_ANCHOR.TOP

        for i, source in enumerate(sources):
            para = list_tf.paragraphs[0] if i == 0 else list_tf.add_paragraph()
            para.space_before = Pt(10)
            run = para.add_run()
            run.text = f"{source.title}: {source.uri}"
            run.hyperlink.address = source.uri
            run.font.name = self.default_font
            run.font.size = Pt(14)
            run.font.color.rgb = self.link_color

    # ==================
    # HELPERS
    # ==================

    def _add_bullets(self, text_frame, bullets: List[str]):
        for i, point in enumerate(bullets):
            para = text_frame.paragraphs[0] if i == 0 else text_frame.add_paragraph()
            para.text = f"• {point}"
            para.alignment = PP_ALIGN.LEFT
            para.space_before = Pt(10)
            self._style(para, 20)

    def _style(self, paragraph, size: int, color: RGBColor = None, bold: bool = False, italic: bool = False):
        paragraph.font.name = self.default_font
        paragraph.font.size = Pt(size)
        paragraph.font.bold = bold
        paragraph.font.italic = italic
        paragraph.font.color.rgb = color or self.text_color

    def _set_shape_transparency(self, shape, transparency_percent):
        """Set transparency on a shape's solid fill (0 = opaque, 100 = fully transparent)"""
        spPr = shape._element.spPr
        solidFill = spPr.find(qn('a:solidFill'))
        if solidFill is None:
            return

        color_elem = solidFill.find(qn('a:srgbClr'))
        if color_elem is None:
            color_elem = solidFill.find(qn('a:schemeClr'))
        if color_elem is None:
            return

        existing_alpha = color_elem.find(qn('a:alpha'))
        if existing_alpha is not None:
            color_elem.remove(existing_alpha)

        # Alpha is in 1000ths of a percent: 40% transparency = 60000
        alpha_elem = etree.SubElement(color_elem, qn('a:alpha'))
        alpha_elem.set('val', str(int((100 - transparency_percent) * 1000)))
