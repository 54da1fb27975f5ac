from contextvars import ContextVar
import os
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from ticketmark.constants import DEFAULT_CODE_THEME
from ticketmark.files import get_config_file
from ticketmark.models import DeploymentKind


class ApplicationConfiguration(BaseSettings):
    """The configuration for the ticketmark CLI tool and viewer widget."""

    deployment: DeploymentKind = DeploymentKind.CLOUD
    """The kind of ticket store edited Markdown is converted back to. `cloud` stores ADF documents and
    `server` stores wiki markup. Default is `cloud`."""
    base_url: str | None = None
    """The base URL of the ticket instance, e.g. 'https://example.atlassian.net'. When set, mentions are
    converted to absolute profile links in Markdown."""
    code_theme: str = DEFAULT_CODE_THEME
    """The name of the Pygments style used to color highlighted code blocks."""
    log_file: str | None = None
    """The filename of the log file to use. If this is not set the default log file location is used."""
    log_level: str = Field(default='WARNING')
    """The log level to use. Use Python's `logging` names: `CRITICAL`, `FATAL`, `ERROR`, `WARN`, `WARNING`, `INFO`,
    `DEBUG` and `NOTSET`."""

    model_config = SettingsConfigDict(
        extra='ignore',
        validate_assignment=True,
        env_prefix='TICKETMARK_',
        env_nested_delimiter='__',
    )

    @field_validator('deployment', mode='before')
    @classmethod
    def validate_deployment(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        if ticketmark_config_file := os.getenv('TICKETMARK_CONFIG_FILE'):
            conf_file = Path(ticketmark_config_file).resolve()
        else:
            conf_file = get_config_file()

        if conf_file.exists():
            return (
                init_settings,
                env_settings,
                dotenv_settings,
                YamlConfigSettingsSource(settings_cls, yaml_file=conf_file),
            )
        else:
            return (
                init_settings,
                env_settings,
                dotenv_settings,
            )


CONFIGURATION: ContextVar[ApplicationConfiguration] = ContextVar('configuration')
