"""Pytest plugin for collecting and executing business process definitions.

This module integrates hera-testing with pytest by:
- registering custom command-line options;
- configuring a shared `DefinitionParser` and the run options;
- collecting YAML definition files as executable test items.

YAML files matching the pattern `bpt_*.yml` or `bpt_*.yaml` are
automatically collected, and each definition runs as one pytest item.
"""

from re import match
from typing import TYPE_CHECKING

from .collector import DefinitionFile

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.nodes import Node


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for hera-testing.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('hera-testing')
    group.addoption(
        '--hera-dry-run',
        action='store_true',
        dest='hera_dry_run',
        default=False,
        help=(
            'Resolve every payload without calling the backend. '
            'Assertions are skipped and steps succeed with synthetic output.'
        ),
    )
    group.addoption(
        '--hera-continue-on-error',
        action='store_true',
        dest='hera_continue_on_error',
        default=False,
        help='Keep executing steps after a step fails.',
    )
    group.addoption(
        '--hera-timeout',
        action='store',
        dest='hera_timeout',
        type=int,
        default=None,
        help='Global time limit of each definition run, in milliseconds.',
    )
    group.addoption(
        '--hera-backend',
        action='store',
        dest='hera_backend',
        default=None,
        metavar='MODULE:FACTORY',
        help=(
            'Backend factory used to execute definitions. '
            'The in-memory backend is used by default.'
        ),
    )


def pytest_configure(config: 'Config') -> None:
    """Configure hera-testing integration.

    This hook attaches a shared `DefinitionParser` as `config.hera_parser`
    and the run options as `config.hera_options`. Options not given on the
    command line are read from the `HERA_TESTING_*` environment variables.

    Args:
        config: Pytest configuration object.
    """
    from hera_testing.core import DefinitionParser  # noqa: PLC0415
    from hera_testing.settings import RunOptions  # noqa: PLC0415

    overrides = {
        'dry_run': config.getoption('--hera-dry-run', default=False) or None,
        'continue_on_error': config.getoption('--hera-continue-on-error', default=False) or None,
        'timeout': config.getoption('--hera-timeout', default=None),
    }

    config.hera_parser = DefinitionParser()  # type: ignore[attr-defined]
    config.hera_options = RunOptions(**{  # type: ignore[attr-defined]
        key: value
        for key, value in overrides.items()
        if value is not None
    })


def pytest_collect_file(parent: 'Node', file_path: 'Path') -> DefinitionFile | None:
    """Collect YAML definition files.

    Args:
        parent: Parent pytest collection node.
        file_path: Path to the file being considered.

    Returns:
        A `DefinitionFile` collector if the file matches the definition
            pattern, otherwise ``None``.
    """
    if match(r'^bpt_.+\.ya?ml$', file_path.name):
        return DefinitionFile.from_parent(
            parent,
            path=file_path,
        )

    return None
