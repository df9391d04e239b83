"""Command-line utilities for business process definitions.

Definitions can be validated, translated into the artifact of another
execution engine, or executed directly against a backend.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from click import Choice, ClickException, IntRange, argument, echo, group, option, pass_context
from click import Path as PathParam

from hera_testing.backends import InMemoryBackend, load_backend
from hera_testing.core import DefinitionParser
from hera_testing.errors import DSLError, DSLSchemaError
from hera_testing.generators import default_registry
from hera_testing.jsonschema import SchemaGenerator
from hera_testing.runtime import run
from hera_testing.settings import RunOptions

if TYPE_CHECKING:
    from click import Context

    from hera_testing.runtime import RunResult
    from hera_testing.schema import BusinessProcessTest

InputFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)

OutputFilepath = PathParam(
    dir_okay=False,
    writable=True,
    path_type=Path,
)


def _load(path: Path) -> 'BusinessProcessTest':
    """Parse a definition file, reporting schema errors as CLI errors."""
    try:
        return DefinitionParser().parse_file(path)

    except DSLSchemaError as error:
        raise ClickException(str(error)) from error


def _report(result: 'RunResult') -> None:
    """Print a summary of a run."""
    for step in result.steps:
        status = 'ok' if step.success else 'FAILED'
        echo(f'{step.id}: {status} ({step.attempts} attempt(s), {step.duration:.0f} ms)')

    for outcome in result.assertions:
        status = {True: 'ok', False: 'FAILED', None: 'skipped'}[outcome.passed]
        echo(f'{outcome.type} {outcome.name}: {status}')

    for error in result.errors:
        echo(f'{error}', err=True)

    echo(f'{result.definition_id}: {"passed" if result.success else "failed"} in {result.duration:.0f} ms')


@group(help='Command-line utilities for HERA business process tests.')
@option('-v', '--verbose', is_flag=True, help='Log progress messages.')
@pass_context
def cli(ctx: 'Context', verbose: bool) -> None:
    """Root CLI group for hera-testing tools."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )


@cli.command(
    name='schema',
    help='Print the definition JSON Schema to standard output.',
)
def print_schema() -> None:
    """Generate and print the JSON Schema."""
    echo(SchemaGenerator.make_schema())


@cli.command(
    name='validate',
    help='Validate definition files and print every schema issue.',
)
@argument('files', nargs=-1, required=True, type=InputFilepath)
def validate_files(files: tuple[Path, ...]) -> None:
    """Validate definition files.

    Args:
        files: Definition files to check.

    Raises:
        SystemExit: With status 1 if any file is invalid.
    """
    failed = False
    for path in files:
        try:
            definition = DefinitionParser().parse_file(path)

        except DSLSchemaError as error:
            failed = True
            echo(f'{error}', err=True)
            continue

        echo(f'{path}: {definition.id} is valid ({len(definition.steps)} step(s))')

    if failed:
        raise SystemExit(1)


@cli.command(
    name='generate',
    help='Generate the test artifact of a definition for another execution engine.',
)
@option(
    '-t', '--target',
    type=Choice(default_registry().targets),
    required=True,
    help='Artifact format.',
)
@option(
    '-o', '--output',
    type=OutputFilepath,
    default=None,
    help='Output file; standard output by default.',
)
@argument('file', type=InputFilepath)
def generate_artifact(file: Path, target: str, output: Path | None) -> None:
    """Generate an artifact.

    Args:
        file: Definition file.
        target: Artifact format.
        output: Output path, if any.
    """
    definition = _load(file)

    try:
        artifact = default_registry().generate(definition, target)

    except DSLError as error:
        raise ClickException(str(error)) from error

    if output is None:
        echo(artifact, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(artifact, encoding='utf-8')


@cli.command(
    name='run',
    help='Execute a definition against a backend and report the outcome.',
)
@option('--dry-run', is_flag=True, help='Resolve payloads without calling the backend.')
@option('--continue-on-error', is_flag=True, help='Keep executing steps after a failure.')
@option('--timeout', type=IntRange(min=1), default=None, help='Global time limit of the run, in milliseconds.')
@option(
    '--backend',
    default=None,
    metavar='MODULE:FACTORY',
    help='Backend factory reference; the in-memory backend by default.',
)
@option('--json', 'as_json', is_flag=True, help='Print the full result as JSON.')
@argument('file', type=InputFilepath)
@pass_context
def run_definition(ctx: 'Context', file: Path, dry_run: bool,  # noqa: PLR0913
                   continue_on_error: bool, timeout: int | None,
                   backend: str | None, as_json: bool) -> None:
    """Execute a definition.

    Options not given on the command line are read from the
    `HERA_TESTING_*` environment variables.

    Raises:
        SystemExit: With status 1 if the run failed.
    """
    definition = _load(file)

    overrides = {
        'verbose': ctx.obj.get('verbose') or None,
        'dry_run': dry_run or None,
        'continue_on_error': continue_on_error or None,
        'timeout': timeout,
    }
    options = RunOptions(**{key: value for key, value in overrides.items() if value is not None})

    try:
        instance = load_backend(backend) if backend else InMemoryBackend()

    except DSLError as error:
        raise ClickException(str(error)) from error

    result = run(definition, options, backend=instance)

    if as_json:
        echo(result.model_dump_json(indent=2))
    else:
        _report(result)

    if not result.success:
        raise SystemExit(1)


if __name__ == '__main__':
    cli()
