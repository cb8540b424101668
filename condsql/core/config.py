"""
Library settings, read once from ``CONDSQL_*`` environment variables
(or a local ``.env`` file).

Explicit arguments passed to ``ConditionalTemplateEngine`` always win over
these defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONDSQL_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Log condition evaluation failures at WARNING instead of DEBUG.
    DEBUG: bool = False

    # Drop the character just before `{% if` and a top-level `{% else %}`
    # (templates written with one directive per line rely on this).
    TRIM_DIRECTIVE_PREFIX: bool = True

    # Max parsed conditions kept in the LRU; 0 disables caching.
    EXPRESSION_CACHE_SIZE: int = Field(default=512, ge=0)


settings = Settings()  # type: ignore
