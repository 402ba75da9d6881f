import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ''' Process configuration, read from environment variables or .env.'''

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    pubsub_project_id: str = "loc-pubsub-lemonde-io"
    pubsub_emulator_host: str = "loc-pubsub.lemonde.io:8432"
    host: str = "0.0.0.0"
    port: int = 3001
    max_messages: int = Field(default=500, ge=1)
    emulator_timeout: float = 30.0
    log_level: str = "INFO"

    @property
    def emulator_base_url(self) -> str:
        return f"http://{self.pubsub_emulator_host}/v1/projects/{self.pubsub_project_id}"


settings = Settings()


def configure_logging(level: str = settings.log_level):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
