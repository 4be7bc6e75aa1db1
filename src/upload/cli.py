from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from coloredlogs import install as coloredlogs_install

from rmcloud.errors import RemarkableError, describe_error
from .handler import ENV_LOG_LEVEL, upload_file


PAIRING_PROMPT = "Enter 8 letter code from my.remarkable.com (leave empty to abort)"

logger = logging.getLogger(__name__)


def prompt_pairing_code() -> Optional[str]:
    code = click.prompt(PAIRING_PROMPT, default="", show_default=False)
    return code.strip() or None


@click.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--name", "-n", default=None, help="Display name (defaults to the file name).")
def cli(file: Path, name: Optional[str]) -> None:
    """Upload a PDF to the reMarkable cloud."""
    try:
        result = upload_file(file, name, prompt_code=prompt_pairing_code)
    except RemarkableError as e:
        logger.critical(describe_error(e))
        sys.exit(1)
    click.echo(f"Uploaded {result.display_name!r} ({result.document_id})")


def main() -> None:
    coloredlogs_install(
        level=os.environ.get(ENV_LOG_LEVEL) or "INFO",
        fmt="%(asctime)s %(name)s %(message)s",
        datefmt="%H:%M:%S",
    )
    cli()
