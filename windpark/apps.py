from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class WindparkConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "windpark"
    verbose_name = _("Windpark-Abrechnung")
