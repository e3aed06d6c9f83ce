"""Shell commands as retryable operations"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Iterable, List, Optional, Sequence

from stubborn.domain.errors import StubbornError, Unrecoverable

logger = logging.getLogger(__name__)


class CommandFailed(StubbornError):
    """Command exited with a non-zero status"""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "no output on stderr"
        super().__init__(f"'{' '.join(self.args_list)}' exited with status {returncode}: {detail}")


class CommandOperation:
    """Run a command; a zero exit status is a success.

    Exit codes listed in ``fatal_exit_codes`` are marked unrecoverable, as is
    a command that cannot be found.
    """

    def __init__(
        self,
        args: Sequence[str],
        fatal_exit_codes: Iterable[int] = (),
        timeout: Optional[float] = None,
    ):
        if not args:
            raise ValueError("Command must not be empty")
        self.args: List[str] = list(args)
        self.fatal_exit_codes = frozenset(fatal_exit_codes)
        self.timeout = timeout

    @property
    def name(self) -> str:
        """Program name, used as the default log label"""
        return os.path.basename(self.args[0])

    def __call__(self) -> str:
        logger.debug(f"Running command: {' '.join(self.args)}")
        try:
            completed = subprocess.run(
                self.args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise Unrecoverable(e) from e

        if completed.returncode == 0:
            return completed.stdout

        error = CommandFailed(self.args, completed.returncode, completed.stderr or "")
        if completed.returncode in self.fatal_exit_codes:
            raise Unrecoverable(error)
        raise error
