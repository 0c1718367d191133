"""Cyclopts application and command routing for the catalogdq CLI.

The CLI provides the following commands:
- import: Import a file's rows as catalog entities
- validate: Validate a file's rows without importing
- duplicates: Find likely duplicates between two files
- list-rules: List built-in validation rules
- list-readers: List available reader types
- check-config: Validate configuration files
"""

from cyclopts import App

from catalogdq.cli import commands

app = App(
    name="catalogdq",
    help="Data-quality tooling for engineering catalogs",
    version="0.1.0",
)

app.command(commands.import_file, name="import")
app.command(commands.validate)
app.command(commands.duplicates)
app.command(commands.list_rules, name="list-rules")
app.command(commands.list_readers, name="list-readers")
app.command(commands.check_config, name="check-config")


def main() -> None:
    """Console script entry point."""
    raise SystemExit(app() or 0)
