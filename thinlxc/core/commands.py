"""Thin wrapper around subprocess for the external tools we drive."""
import subprocess
from typing import Sequence, Type

from thinlxc.core.errors import ExternalToolError
from thinlxc.core.logger import get_logger

logger = get_logger(__name__)


def run_command(
    cmd: Sequence[str],
    error_class: Type[ExternalToolError] = ExternalToolError,
) -> str:
    """Run an external command and return its combined output.

    Args:
        cmd: Command and arguments
        error_class: ExternalToolError subclass raised on non-zero exit

    Returns:
        Combined stdout+stderr of the command

    Raises:
        error_class: If the command exits non-zero or cannot be executed
    """
    logger.debug(f"Command: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            list(cmd),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            check=False,
        )
    except FileNotFoundError as e:
        raise error_class(cmd, 127, str(e)) from e
    except OSError as e:
        raise error_class(cmd, 126, str(e)) from e

    output = result.stdout or ""
    if result.returncode != 0:
        raise error_class(cmd, result.returncode, output)
    return output
