"""Entry point when the package is executed as a module."""

import os
import sys
from pathlib import Path

import click
import uvicorn
from pydantic import ValidationError

from .platform.settings import Settings

# Read by the app factory, which builds its own Settings (in the reloader child too)
WORKSPACE_ROOT_ENV = "WORKSPACE__ROOT"


def load_settings() -> Settings:
    """Load settings, turning validation failures into a CLI error without echoing values."""
    try:
        return Settings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise click.ClickException(f"Invalid configuration: {problems}") from e


@click.command()
@click.option("--host", help="Bind address. Defaults to APP_HTTP__HOST.")
@click.option("--port", type=int, help="Bind port. Defaults to APP_HTTP__PORT.")
@click.option(
    "--workspace-root",
    type=click.Path(exists=True, file_okay=False, resolve_path=True, path_type=Path),
    help="Directory the tools are confined to. Defaults to WORKSPACE__ROOT.",
)
@click.option("--reload", is_flag=True)
def main(host=None, port=None, workspace_root=None, reload=False):
    if workspace_root is not None:
        os.environ[WORKSPACE_ROOT_ENV] = str(workspace_root)

    settings = load_settings()

    uvicorn.run(
        "chat_bridge:app",
        factory=True,
        host=host or settings.app_http.host,
        port=port or settings.app_http.port,
        log_level=settings.app_http.log_level.lower(),
        reload=reload,
    )


if __name__ == "__main__":
    sys.exit(main())
