"""Test suite for the hera-testing package.

This package contains unit and integration tests validating definition
parsing, schema validation, execution, business oracles, artifact
generation, and the pytest and command line integrations.
"""
