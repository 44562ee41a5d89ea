from .admin import Admin
from .identity import IdentitySettings
from .school_class import SchoolClass
from .unit import Unit
from .lesson import Lesson
from .media import Video, Image
from .question import Question

__all__ = [
    "Admin",
    "IdentitySettings",
    "SchoolClass",
    "Unit",
    "Lesson",
    "Video",
    "Image",
    "Question"
]
