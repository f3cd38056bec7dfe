"""OpenAPI description of the identity-token authentication."""

from drf_spectacular.extensions import OpenApiAuthenticationExtension


class ProfileJWTAuthenticationScheme(OpenApiAuthenticationExtension):
    target_class = "modules.core.authentication.ProfileJWTAuthentication"
    name = "BearerAuth"

    def get_security_definition(self, auto_schema):
        return {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
