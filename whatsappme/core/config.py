"""Configuración central basada en variables de entorno."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Faltan valores obligatorios para iniciar el servidor."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        lines = "\n  - ".join(missing)
        super().__init__(f"Missing required configuration:\n  - {lines}")


# Nombre del campo -> descripción mostrada cuando falta el valor.
REQUIRED_FIELDS: dict[str, str] = {
    "phone_number_id": "WHATSAPPME_PHONE_NUMBER_ID (WhatsApp Phone Number ID from Meta dashboard)",
    "access_token": "WHATSAPPME_ACCESS_TOKEN (Access token from Meta app)",
    "app_secret": "WHATSAPPME_APP_SECRET (App secret for webhook verification)",
    "verify_token": "WHATSAPPME_VERIFY_TOKEN (Custom token for webhook verification)",
    "user_phone_number": "WHATSAPPME_USER_PHONE_NUMBER (Your phone number to receive messages)",
    "public_url": "WHATSAPPME_PUBLIC_URL (Public base URL that Meta uses to reach /webhook)",
}


class Settings(BaseSettings):
    """Valores globales leídos desde `.env` o el entorno."""

    environment: str = "development"
    log_level: str | None = Field(
        default=None,
        description="Nivel de logging global (ej. debug, info, warning). Cuando no se define, usa un valor por ambiente.",
    )
    log_file_path: str | None = Field(
        default="whatsappme-debug.log",
        description="Archivo donde se replica el log. Vacío desactiva el espejo en disco.",
    )
    phone_number_id: str | None = None
    access_token: str | None = None
    app_secret: str | None = None
    verify_token: str | None = None
    user_phone_number: str | None = None
    public_url: str | None = None
    host: str = "0.0.0.0"
    port: int = 3333
    graph_api_version: str = "v18.0"
    request_timeout: float = Field(
        default=10.0,
        description="Timeout en segundos para llamadas a la Graph API.",
    )
    model_config = SettingsConfigDict(env_file=".env", env_prefix="WHATSAPPME_", extra="allow")

    def missing_required(self) -> list[str]:
        """Lista todos los valores obligatorios ausentes, en orden estable."""
        return [
            description
            for field_name, description in REQUIRED_FIELDS.items()
            if not getattr(self, field_name)
        ]

    def ensure_required(self) -> None:
        """Lanza `ConfigurationError` con todos los faltantes a la vez."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(missing)

    @property
    def webhook_url(self) -> str | None:
        if not self.public_url:
            return None
        return f"{self.public_url.rstrip('/')}/webhook"


settings = Settings()
