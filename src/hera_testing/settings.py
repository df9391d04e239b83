"""Run options resolved from arguments and the environment."""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from hera_testing.models import SettingsModel

#: Prefix of environment variables read by `RunOptions`.
ENV_PREFIX = 'HERA_TESTING_'


class RunOptions(SettingsModel):
    """Options controlling a single run of a definition.

    Values passed explicitly take precedence over environment variables
    such as `HERA_TESTING_DRY_RUN=1`.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        frozen=True,
        extra='ignore',
    )

    verbose: bool = Field(
        default=False,
        description='Emit progress at INFO level instead of DEBUG.',
    )

    dry_run: bool = Field(
        default=False,
        description=(
            'Skip every backend call. Payloads are still resolved and the '
            'runner records zero-duration synthetic successes.'
        ),
    )

    continue_on_error: bool = Field(
        default=False,
        description='Keep executing steps after a step fails.',
    )

    timeout: int | None = Field(
        default=None,
        gt=0,
        description='Global ceiling for the whole run, in milliseconds.',
    )
