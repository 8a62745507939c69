"""
Lesson Planner - Session State
Generation status machine, slide navigation and the sources overlay
"""

import logging
import threading
from collections import OrderedDict
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from image_service import get_image_url
from presentation.errors import InvalidTransitionError
from presentation.models import Audience, LessonPlan
from utils import format_date

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Something went wrong while creating the lesson."
DEFAULT_MAX_SESSIONS = 200


class GenerationStatus(str, Enum):
    IDLE = "idle"
    IDENTIFYING = "identifying-lesson"
    GENERATING = "generating-slides"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def in_progress(self) -> bool:
        return self in (GenerationStatus.IDENTIFYING, GenerationStatus.GENERATING)


class SlideNavigator:
    """Zero-based slide index, bounded at both ends (no wraparound)"""

    def __init__(self, slide_count: int):
        if slide_count < 1:
            raise ValueError("A deck needs at least one slide")
        self.slide_count = slide_count
        self.current_index = 0

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == self.slide_count - 1

    def next(self) -> bool:
        """Move forward one slide. Returns False on the last slide."""
        if self.is_last:
            return False
        self.current_index += 1
        return True

    def prev(self) -> bool:
        """Move back one slide. Returns False on the first slide."""
        if self.is_first:
            return False
        self.current_index -= 1
        return True

    def go_to(self, index: int) -> None:
        if not 0 <= index < self.slide_count:
            raise IndexError(f"Slide {index} is out of range (0-{self.slide_count - 1})")
        self.current_index = index


class DeckViewer:
    """On-screen presentation of a finished lesson plan"""

    NEXT_KEYS = ("ArrowRight", "Space", " ")
    PREV_KEYS = ("ArrowLeft",)
    CLOSE_KEYS = ("Escape",)

    def __init__(self, lesson_plan: LessonPlan):
        self.lesson_plan = lesson_plan
        self.navigator = SlideNavigator(len(lesson_plan.slides))
        self.sources_open = False

    @property
    def current_slide(self):
        return self.lesson_plan.slides[self.navigator.current_index]

    def open_sources(self) -> bool:
        if not self.lesson_plan.has_sources:
            return False
        self.sources_open = True
        return True

    def close_sources(self) -> None:
        self.sources_open = False

    def handle_key(self, key: str) -> bool:
        """
        Apply a keyboard event from the viewer page.

        While the sources overlay is open only Escape does anything.

        Returns:
            True if the key changed the view
        """
        if self.sources_open:
            if key in self.CLOSE_KEYS:
                self.close_sources()
                return True
            return False

        if key in self.NEXT_KEYS:
            return self.navigator.next()
        if key in self.PREV_KEYS:
            return self.navigator.prev()
        return False

    def to_dict(self) -> Dict[str, Any]:
        slide = self.current_slide
        return {
            "topic": self.lesson_plan.topic,
            "audience": self.lesson_plan.audience.value,
            "index": self.navigator.current_index,
            "count": self.navigator.slide_count,
            "can_prev": not self.navigator.is_first,
            "can_next": not self.navigator.is_last,
            "slide": slide.model_dump(by_alias=True),
            "image_url": get_image_url(slide.image_keyword),
            "sources_open": self.sources_open,
            "sources": [source.model_dump() for source in self.lesson_plan.sources],
        }


class LessonSession:
    """
    State for one browser session.

    idle -> identifying-lesson -> generating-slides -> complete
    Either in-progress status can fall into error. reset() returns
    complete or error to idle and drops the lesson plan.
    """

    def __init__(self):
        self.status = GenerationStatus.IDLE
        self.status_message = ""
        self.error_message: Optional[str] = None
        self.lesson_plan: Optional[LessonPlan] = None
        self.viewer: Optional[DeckViewer] = None
        self._pending = None
        self._lock = threading.Lock()

    def start(self, day: date, audience: Audience) -> str:
        """
        Claim the session for a new generation.

        Returns:
            The formatted lesson date

        Raises:
            InvalidTransitionError: if the session is not idle
        """
        audience = Audience(audience)
        date_str = format_date(day)
        with self._lock:
            if self.status is not GenerationStatus.IDLE:
                raise InvalidTransitionError(f"Cannot start a lesson while {self.status.value}")
            self.error_message = None
            self.status = GenerationStatus.IDENTIFYING
            self.status_message = f"Identifying lesson for {date_str}..."
            self._pending = (date_str, audience)
        return date_str

    async def run(self, generator) -> Optional[LessonPlan]:
        """Run both pipeline steps for the generation claimed by start()"""
        if self.status is not GenerationStatus.IDENTIFYING or self._pending is None:
            raise InvalidTransitionError("No lesson generation has been started")
        date_str, audience = self._pending

        try:
            lesson_info = await generator.identify_lesson(date_str)

            self.status = GenerationStatus.GENERATING
            self.status_message = f'Creating {audience.value} slides for "{lesson_info["title"]}"...'

            slides = await generator.generate_slides(lesson_info["context"], audience)

            lesson_plan = LessonPlan(
                topic=lesson_info["title"],
                date=date_str,
                audience=audience,
                slides=slides,
                sources=lesson_info["sources"],
            )
            viewer = DeckViewer(lesson_plan)
        except Exception as e:
            logger.error(f"Lesson generation failed: {e}")
            self.error_message = str(e) or DEFAULT_ERROR_MESSAGE
            self.status = GenerationStatus.ERROR
            self.status_message = ""
            self._pending = None
            return None

        self.lesson_plan = lesson_plan
        self.viewer = viewer
        self.status = GenerationStatus.COMPLETE
        self.status_message = ""
        self._pending = None
        logger.info(f"Lesson ready: {lesson_plan.topic} ({len(lesson_plan.slides)} slides)")
        return lesson_plan

    async def generate(self, generator, day: date, audience: Audience) -> Optional[LessonPlan]:
        """start() and run() in one call"""
        self.start(day, audience)
        return await self.run(generator)

    def reset(self) -> None:
        """Back to idle. Not allowed while a request is in flight."""
        with self._lock:
            if self.status.in_progress:
                raise InvalidTransitionError("Cannot reset while a lesson is being generated")
            self.status = GenerationStatus.IDLE
            self.status_message = ""
            self.error_message = None
            self.lesson_plan = None
            self.viewer = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.status_message,
            "error": self.error_message,
            "viewer": self.viewer.to_dict() if self.viewer else None,
        }


class SessionStore:
    """
    In-process LessonSession registry keyed by browser session id

    Holds at most max_sessions entries. When full, the least recently used
    sessions are dropped first; a session mid-generation is never dropped.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, LessonSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> LessonSession:
        """Session for this id, created (and the store trimmed) if unknown"""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
                return session

            session = LessonSession()
            self._sessions[session_id] = session
            self._evict()
            return session

    def find(self, session_id: Optional[str]) -> Optional[LessonSession]:
        """Existing session for this id, or None. Never creates one."""
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def _evict(self) -> None:
        for session_id in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                break
            if self._sessions[session_id].status.in_progress:
                continue
            del self._sessions[session_id]
            logger.info(f"Dropped idle session {session_id[:8]}")

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
