"""Options shared by several commands."""

from typing import Annotated

import typer

BumpOption = Annotated[
    str,
    typer.Option(
        "--bump",
        "-b",
        envvar="VERSION_BUMP",
        help="Version component to increment: major, minor or patch",
    ),
]

BuildNumberOption = Annotated[
    str | None,
    typer.Option(
        "--build-number",
        envvar="BUILD_NUMBER",
        help="CI build number appended as -build.<n>",
    ),
]

TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", help="Seconds allowed for each HTTP request"),
]
