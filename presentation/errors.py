"""Exceptions raised by the lesson planner"""


class LessonPlannerError(Exception):
    """Base class for all planner failures"""


class ConfigurationError(LessonPlannerError):
    """Required configuration (the API key) is missing"""


class LessonGenerationError(LessonPlannerError):
    """A remote model call failed"""


class SlideParseError(LessonGenerationError):
    """The slide response could not be read as slide records"""


class ExportError(LessonPlannerError):
    """Building the PowerPoint file failed"""


class InvalidTransitionError(LessonPlannerError):
    """The requested action is not allowed in the current status"""
