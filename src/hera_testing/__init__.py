"""Declarative business process tests for the HERA universal data model.

The `hera_testing` package validates YAML definitions of multi-step
business processes, executes them against a pluggable backend, checks
business rules with a library of pure oracles, and translates the same
definitions into Playwright, pytest, pgTAP and natural-language
artifacts.

Key features:
- schema validation reporting every issue with its field path;
- `{{placeholder}}` resolution against an append-only run context;
- per-step timeouts, retries and continue-on-error execution;
- a pytest plugin collecting `bpt_*.yaml` files as test items.
"""
