"""Shell hooks run before and after a package build."""

import logging
import shutil
import subprocess

from debpack.errors import HookError

logger = logging.getLogger(__name__)


class HookRunner:
    """Runs hook commands through a POSIX shell."""

    def __init__(self, shell: str = "sh"):
        self.shell = shell

    def run(self, command: str) -> None:
        """Run a hook command; blank commands do nothing.

        Raises:
            HookError: If no shell is available or the command exits non-zero
        """
        if not command.strip():
            return

        shell_path = shutil.which(self.shell)
        if shell_path is None:
            raise HookError(f"No shell interpreter found to run hook: {command}")

        logger.info(f"Running hook: {command}")
        try:
            result = subprocess.run(
                [shell_path, "-c", command],
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise HookError(f"Failed to start hook {command!r}: {e}") from e

        # Hooks may print any bytes; decode only for logging
        stdout = result.stdout.decode("utf-8", errors="replace")
        if stdout:
            logger.debug(f"Hook output: {stdout.rstrip()}")

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            message = f"Hook {command!r} exited with status {result.returncode}"
            raise HookError(f"{message}: {stderr}" if stderr else message)
