# Django discovers models here; they live in the data layer
from .data.models import Flashcard, ReviewEvent  # noqa: F401
