from django.apps import AppConfig


class HifzConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'hifz'
    verbose_name = 'Hifz reviews'
