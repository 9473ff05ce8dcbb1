"""
PM-Flow CLI Commands.

One module per command group. Handlers are imported lazily by
pmflow.cli.main so that startup stays cheap.
"""
