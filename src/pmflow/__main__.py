"""
PM-Flow CLI entry point for module execution.

Allows running PM-Flow CLI as: python -m pmflow
"""

from pmflow.cli.main import cli_main

if __name__ == "__main__":
    cli_main()
