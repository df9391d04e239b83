"""Artifact generators.

Each generator is an independent transform from a validated definition
to the test artifact of another execution engine.
"""

from .agent import AgentGenerator
from .base import BaseGenerator, static_context
from .playwright import PlaywrightGenerator
from .pytest_suite import PytestGenerator
from .registry import (
    BUILTIN_GENERATORS,
    ENTRYPOINT_GROUP,
    GeneratorRegistry,
    default_registry,
    generate,
)
from .sql import SQLGenerator

__all__ = (
    'BUILTIN_GENERATORS',
    'ENTRYPOINT_GROUP',
    'AgentGenerator',
    'BaseGenerator',
    'GeneratorRegistry',
    'PlaywrightGenerator',
    'PytestGenerator',
    'SQLGenerator',
    'default_registry',
    'generate',
    'static_context',
)
