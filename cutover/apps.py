from django.apps import AppConfig


class CutoverConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'cutover'
    verbose_name = 'GoldenGate Fallback Cutover'
