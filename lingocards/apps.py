from django.apps import AppConfig


class LingocardsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lingocards"
