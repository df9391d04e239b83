"""Generator discovery and registration.

Built-in generators are registered on creation. Third-party generators
are exposed as `BaseGenerator` subclasses through the
`hera_testing_generators` entry point group. When loading fails,
the plugin is reported as a warning unless strict mode is enabled.
"""

from functools import cache
from typing import TYPE_CHECKING
from warnings import warn

from hera_testing.errors import GeneratorError, PluginError, PluginWarning

from .agent import AgentGenerator
from .base import BaseGenerator
from .playwright import PlaywrightGenerator
from .pytest_suite import PytestGenerator
from .sql import SQLGenerator

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint

if TYPE_CHECKING:
    from hera_testing.schema import BusinessProcessTest

#: Entry point group of third-party generators.
ENTRYPOINT_GROUP = 'hera_testing_generators'

#: Generators shipped with the package.
BUILTIN_GENERATORS: tuple[type[BaseGenerator], ...] = (
    PlaywrightGenerator,
    PytestGenerator,
    SQLGenerator,
    AgentGenerator,
)


class GeneratorRegistry:
    """Registry of artifact generators by target name.

    Attributes:
        strict_mode: If True, any plugin loading issue raises an error.
            If False, issues are emitted as warnings and loading continues.
        generators: Registered generator instances by target name.
    """

    def __init__(self, strict: bool = False, load_plugins: bool = True) -> None:
        """Initialize the registry with the built-in generators.

        Args:
            strict: Whether to raise errors on plugin loading failures
                instead of emitting warnings.
            load_plugins: Whether to discover entry point generators.

        Raises:
            PluginError: If a plugin can not be loaded on strict mode.
        """
        self.strict_mode = strict
        self.generators: dict[str, BaseGenerator] = {}

        for generator in BUILTIN_GENERATORS:
            self.add_generator(generator)

        if load_plugins:
            self.load_plugins()

    @property
    def targets(self) -> tuple[str, ...]:
        """Names of the registered targets, sorted."""
        return tuple(sorted(self.generators))

    def add_generator(self, generator: type[BaseGenerator],
                      entrypoint: 'EntryPoint | None' = None) -> None:
        """Register a generator class.

        Args:
            generator: Generator class to instantiate and register.
            entrypoint: Entry point from which the generator was loaded,
                if applicable. Used for diagnostics and warnings.

        Raises:
            PluginError: If the generator shadows an existing target on
                strict mode.
        """
        module = entrypoint.value if entrypoint else generator.__module__

        if generator.name in self.generators and (error := self.emit_plugin_issue(
            f'Generator {generator.name!r} from {module!r} is shadowing an existing',
            entrypoint,
        )):
            raise error

        self.generators[generator.name] = generator()

    def emit_plugin_issue(self, message: str,
                          entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a plugin warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point of the offending plugin, if applicable.

        Returns:
            PluginError on strict mode, otherwise `None`
                with producing a PluginWarning.
        """
        if self.strict_mode:
            return PluginError(message, entrypoint=entrypoint)

        warn(message, category=PluginWarning, stacklevel=2)

        return None

    def _load_plugin(self, entrypoint: 'EntryPoint') -> None:
        """Load and register a single generator entry point.

        Raises:
            PluginError: If the entry point is broken on strict mode.
        """
        try:
            generator = entrypoint.load()

        except Exception as base:  # noqa: BLE001
            if error := self.emit_plugin_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        if not isinstance(generator, type) or not issubclass(generator, BaseGenerator):
            if error := self.emit_plugin_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a generator',
                entrypoint,
            ):
                raise error
            return None

        self.add_generator(generator, entrypoint)

        return None

    def load_plugins(self) -> None:
        """Load generators exposed through entry points.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=ENTRYPOINT_GROUP):
            self._load_plugin(entrypoint)

    def get(self, target: str) -> BaseGenerator:
        """Return the generator of a target.

        Raises:
            GeneratorError: If the target is unknown.
        """
        try:
            return self.generators[target]

        except KeyError:
            known = ', '.join(self.targets)
            raise GeneratorError(f'Unknown target {target!r}, expected one of: {known}') from None

    def generate(self, definition: 'BusinessProcessTest', target: str) -> str:
        """Render the artifact of a definition for a target.

        Raises:
            GeneratorError: If the target is unknown or rendering fails.
        """
        return self.get(target).render(definition)


@cache
def default_registry() -> GeneratorRegistry:
    """Return the shared non-strict registry."""
    return GeneratorRegistry()


def generate(definition: 'BusinessProcessTest', target: str) -> str:
    """Render the artifact of a definition with the default registry.

    Args:
        definition: Validated definition.
        target: One of `playwright`, `pytest`, `sql`, `agent`, or the
            name of a plugin generator.

    Returns:
        The artifact text. Identical definitions yield identical text.

    Raises:
        GeneratorError: If the target is unknown or rendering fails.
    """
    return default_registry().generate(definition, target)
