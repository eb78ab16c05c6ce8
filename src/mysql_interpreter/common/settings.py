from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env into os.environ
load_dotenv()


class Settings(BaseSettings):
    """Process-level configuration backed by environment variables.

    Interpreter properties (URL, credentials, row cap) are passed to each
    interpreter instance; these knobs only affect logging and the CLI.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="MYSQL_INTERPRETER_LOG_LEVEL",
        description="Root logging level."
    )
    log_json: bool = Field(
        default=False,
        validation_alias="MYSQL_INTERPRETER_LOG_JSON",
        description="Emit structured JSON log lines."
    )
    properties_path: Optional[str] = Field(
        default=None,
        validation_alias="MYSQL_INTERPRETER_PROPERTIES",
        description="Path to a YAML file with interpreter properties used by the CLI."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def configure_env(self, env: str) -> None:
        """Loads environment-specific variables and reloads settings."""
        if not env:
            return

        load_dotenv(f".env.{env}", override=True)
        new_settings = Settings()
        self.__dict__.update(new_settings.__dict__)


settings = Settings()
