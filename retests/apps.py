from django.apps import AppConfig


class RetestsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'retests'
    verbose_name = 'Retests'
