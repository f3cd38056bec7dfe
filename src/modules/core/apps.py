from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.core"
    label = "core"

    def ready(self) -> None:
        # registers the OpenAPI auth extension
        from modules.core import schema  # noqa: F401
