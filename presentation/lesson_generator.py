"""
Lesson Planner - Lesson Generator
Finds the Come, Follow Me lesson for a Sunday and turns it into slide content
"""

import os
import json
import logging
from typing import Dict, List, Any

from dotenv import load_dotenv
from google import genai
from google.genai import types
from pydantic import ValidationError

from presentation.errors import ConfigurationError, LessonGenerationError, SlideParseError
from presentation.models import Audience, Slide, Source

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

MISSING_KEY_MESSAGE = (
    "API Key is missing. Please add 'API_KEY' to your environment "
    "(or a .env file) and restart the application."
)
IDENTIFY_FAILED_MESSAGE = "Failed to identify the lesson schedule. Please try again."
GENERATE_FAILED_MESSAGE = "Failed to generate slide content."

MIN_SLIDES = 5
MAX_SLIDES = 8

SLIDES_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": types.Schema(type=types.Type.STRING),
            "bullets": types.Schema(
                type=types.Type.ARRAY,
                items=types.Schema(type=types.Type.STRING),
                description="A list of discussion questions. Do not use statements.",
            ),
            "scriptureReference": types.Schema(
                type=types.Type.STRING,
                description="Relevant verses for this specific slide",
            ),
            "discussionQuestion": types.Schema(
                type=types.Type.STRING,
                description="One main 'big idea' question for the class",
            ),
            "imageKeyword": types.Schema(
                type=types.Type.STRING,
                description="Short visual prompt (max 10 words) describing style and subject",
            ),
            "speakerNotes": types.Schema(
                type=types.Type.STRING,
                description="Tips for the teacher on how to present this slide",
            ),
        },
        required=["title", "bullets", "imageKeyword", "speakerNotes"],
    ),
)


class LessonGenerator:
    """Runs the two Gemini requests behind a lesson plan"""

    def __init__(self, client=None, model: str = None):
        self.api_client = client
        self.model = model or os.getenv("LESSON_MODEL", DEFAULT_MODEL)

    def _get_client(self):
        """Return the Gemini client, creating it from API_KEY on first use"""
        if self.api_client is None:
            api_key = os.getenv("API_KEY")
            if not api_key:
                raise ConfigurationError(MISSING_KEY_MESSAGE)
            self.api_client = genai.Client(api_key=api_key)
        return self.api_client

    # ========================================================================
    # STEP 1 - Identify the lesson with Google Search grounding
    # ========================================================================

    async def identify_lesson(self, date_str: str) -> Dict[str, Any]:
        """
        Resolve a Sunday to its lesson context and supporting citations.

        A response schema cannot be combined with the search tool, so this
        step returns free text.

        Args:
            date_str: Human readable Sunday, e.g. "Sunday, October 25, 2026"

        Returns:
            Dict with 'title', 'context' and 'sources' (list of Source)
        """
        client = self._get_client()

        prompt = f"""Identify the LDS "Come, Follow Me" lesson topic and assigned scripture readings for the week including Sunday, {date_str}.
Please provide a concise summary of the lesson title and the specific scripture blocks assigned."""

        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )

        try:
            response = await self._call_llm(client, prompt, config)
            context = response.text or ""
            sources = self._extract_sources(response)
        except Exception as e:
            logger.error(f"Error identifying lesson: {e}")
            raise LessonGenerationError(IDENTIFY_FAILED_MESSAGE) from e

        logger.info(f"Identified lesson for {date_str} ({len(sources)} sources)")
        return {
            "title": f"Lesson for {date_str}",
            "context": context,
            "sources": sources,
        }

    def _extract_sources(self, response) -> List[Source]:
        """Pull web citations out of the grounding metadata"""
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []

        metadata = getattr(candidates[0], "grounding_metadata", None)
        chunks = getattr(metadata, "grounding_chunks", None) or []

        sources = []
        for chunk in chunks:
            web = getattr(chunk, "web", None)
            if web is None or not web.uri or not web.title:
                continue
            sources.append(Source(title=web.title, uri=web.uri))
        return sources

    # ========================================================================
    # STEP 2 - Generate slides as JSON
    # ========================================================================

    async def generate_slides(self, lesson_context: str, audience: Audience) -> List[Slide]:
        """Generate the slide records for a lesson context and audience"""
        client = self._get_client()

        prompt = f"Here is the lesson context found via search: {lesson_context}. Generate the slides now."

        config = types.GenerateContentConfig(
            system_instruction=self._build_system_instruction(audience),
            response_mime_type="application/json",
            response_schema=SLIDES_SCHEMA,
        )

        try:
            response = await self._call_llm(client, prompt, config)
        except Exception as e:
            logger.error(f"Error generating slides: {e}")
            raise LessonGenerationError(GENERATE_FAILED_MESSAGE) from e

        slides = self._parse_slides(response.text or "[]")
        if not MIN_SLIDES <= len(slides) <= MAX_SLIDES:
            logger.warning(f"Model returned {len(slides)} slides, expected {MIN_SLIDES}-{MAX_SLIDES}")
        return slides

    def _build_system_instruction(self, audience: Audience) -> str:
        return f"""You are an expert Latter-day Saint teacher.
Create a presentation lesson plan based on the provided "Come, Follow Me" lesson details.

Audience Profile: {audience.value}

CRITICAL INSTRUCTIONS FOR CONTENT:
1. QUESTIONS ONLY: Do NOT use standard bullet point statements. Every item in the 'bullets' array must be an engaging, open-ended QUESTION designed to spark discussion among the class members.
2. Tone:
   - PRIMARY: Questions should be simple (e.g., "How do you think Noah felt?").
   - YOUTH: Questions should be about application and feelings (e.g., "When have you stood alone for what is right?").
   - ADULTS: Questions should be doctrinal and reflective.

CRITICAL INSTRUCTIONS FOR IMAGERY ('imageKeyword'):
- Every imageKeyword must start with "{audience.image_style}".
- Keep each description concise (max 10 words).

Generate {MIN_SLIDES}-{MAX_SLIDES} slides.
The 'imageKeyword' will be used by an AI image generator, so keep it short but descriptive of the style."""

    def _parse_slides(self, payload: str) -> List[Slide]:
        """Parse the JSON array returned by the model into Slide records"""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SlideParseError(f"Slide response was not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise SlideParseError("Slide response was not a list of slides.")
        if not data:
            raise SlideParseError("Slide response contained no slides.")

        try:
            return [Slide.model_validate(item) for item in data]
        except ValidationError as e:
            raise SlideParseError(f"Slide response did not match the slide schema: {e}") from e

    async def _call_llm(self, client, contents: str, config: types.GenerateContentConfig):
        """Single Gemini request"""
        return await client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )
