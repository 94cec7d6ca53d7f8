from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """
    Learner account. Owns flashcards and review events; deleting a user
    cascades to both.
    """

    pass
