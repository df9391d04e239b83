"""Pydantic base classes shared by definitions, results and settings."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Frozen model that rejects undeclared fields.

    Definition documents are authored by hand, so a misspelled key must
    fail validation instead of being dropped. Each action kind only
    accepts the payload fields it declares.
    """

    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
    )


class DescribedMixin(SchemaModel):
    """Optional title and description shown in reports and artifacts."""

    title: str | None = Field(
        default=None,
        title='Title',
        description='Short label shown in reports.',
    )

    description: str | None = Field(
        default=None,
        title='Description',
        description='Free text explaining what is checked.',
    )


class SettingsModel(BaseSettings):
    """Frozen settings resolved from keyword arguments and the environment.

    Unrelated environment variables are ignored.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
