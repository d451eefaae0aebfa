"""Enumeration of installed models via the ``ollama ls`` command.

Output format of ``ollama ls``:
    NAME               ID              SIZE      MODIFIED
    llama3:latest      365c0bd3c000    4.7 GB    2 days ago
    nomic-embed-text:latest  0a109f422b47  274 MB  3 weeks ago
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from typing import Any

from ollama_export.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_LIST_COMMAND: tuple[str, ...] = ("ollama", "ls")


class ModelListingError(Exception):
    """Raised when installed models cannot be enumerated."""


def parse_model_listing(output: str) -> list[str]:
    """Parse ``ollama ls`` output.

    Args:
        output: Command stdout, header line first.

    Returns:
        ``name:tag`` strings in listing order. Names without a tag get
        ``:latest``.
    """
    lines = output.splitlines()
    models: list[str] = []
    for line in lines[1:]:
        line = line.strip()
        if not line:
            continue
        name = line.split()[0]
        if ":" not in name:
            name = f"{name}:latest"
        models.append(name)
    return models


def list_installed_models(
    command: Sequence[str] = DEFAULT_LIST_COMMAND,
    runner: Callable[..., Any] = subprocess.run,
) -> list[str]:
    """List installed models by running the listing command.

    Args:
        command: Command and arguments.
        runner: ``subprocess.run`` compatible callable.

    Returns:
        Non-empty list of ``name:tag`` strings.

    Raises:
        ModelListingError: If the command is missing, fails, or lists nothing.
    """
    try:
        result = runner(
            list(command),
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        msg = f"Listing command not found: {command[0]}"
        raise ModelListingError(msg) from e
    except subprocess.CalledProcessError as e:
        output = (e.stdout or "") + (e.stderr or "")
        msg = f"Error executing {' '.join(command)}: exit code {e.returncode}\nOutput: {output}"
        raise ModelListingError(msg) from e

    models = parse_model_listing(result.stdout)
    if not models:
        msg = f"No models found with '{' '.join(command)}'"
        raise ModelListingError(msg)

    logger.debug("Installed models: %s", " ".join(models))
    return models
