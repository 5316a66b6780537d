"""Typer CLI for pushing panel telemetry and pulling daily summaries and exports.

The application object lives in ``cli.app``; it is not re-exported here so
that ``cli.app`` keeps resolving to the module, which tests patch.
"""
