"""
Come Follow Me Lesson Planner - Lesson Module

Handles lesson generation and the on-screen presentation state:
- LessonGenerator: identifies the week's lesson and generates slides with Gemini
- LessonSession: generation status machine for one browser session
- DeckViewer / SlideNavigator: slide navigation and the sources overlay

Usage:
    from presentation.lesson_generator import LessonGenerator
    from presentation.deck_state import LessonSession

    lesson_session = LessonSession()
    plan = await lesson_session.generate(LessonGenerator(), sunday, Audience.YOUTH)
"""

from presentation.models import Audience, LessonPlan, Slide, Source
from presentation.lesson_generator import LessonGenerator
from presentation.deck_state import DeckViewer, GenerationStatus, LessonSession, SlideNavigator

__all__ = [
    'Audience',
    'LessonPlan',
    'Slide',
    'Source',
    'LessonGenerator',
    'DeckViewer',
    'GenerationStatus',
    'LessonSession',
    'SlideNavigator',
]

__version__ = '1.0.0'
