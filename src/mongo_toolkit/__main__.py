"""Entry point for running mongo-toolkit as a module.

This allows the CLI to be invoked with ``python -m mongo_toolkit``.
"""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
