"""Main CLI application using Cyclopts."""

import cyclopts

from fnrun.cli.commands import describe, serve

app = cyclopts.App(
    name="fnrun",
    help="fnrun - function invocation runtime",
)

app.command(serve.app, name="serve")
app.command(describe.app, name="describe")


def main() -> None:
    app()
