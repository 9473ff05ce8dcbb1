"""
PM-Flow CLI Package.

Typer app in pmflow.cli.main, theme in pmflow.cli.theme. Nothing is imported
here: the theme is needed by the console, which the exceptions module loads.
"""
