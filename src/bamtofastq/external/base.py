"""Base class for external tool execution."""

from __future__ import annotations

import gzip
import logging
import re
import shutil
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Sequence, Optional

from packaging import version

from bamtofastq.exceptions import ExternalToolError
from bamtofastq.utils.logging import LogTemplates, get_logger


class ExternalTool:
    """Base class for external tool wrappers.

    A wrapper is the capability the pipeline stages are given to run a tool:
    every invocation goes through :meth:`run` (or :meth:`stream_to_gzip`), which
    raises :class:`ExternalToolError` carrying the command, exit code and
    captured stderr when the process fails.
    """

    tool_name: str = ""
    required_version: Optional[str] = None
    version_command: Optional[str] = "--version"
    version_regex: Optional[str] = r"(\d+\.\d+(?:\.\d+)*)"

    # Default timeout for external tool execution (None = no timeout)
    DEFAULT_TIMEOUT: Optional[int] = None

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        threads: int = 1,
        timeout: Optional[int] = None,
    ):
        self.threads = threads
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        # Use centralized logger; namespace under bamtofastq.external.<tool>
        self.logger = logger or get_logger(f"external.{self.tool_name}")
        self._check_installation()

    def check_tool_availability(self, tool_name: str) -> bool:
        """Check if a tool is available in PATH."""
        return shutil.which(tool_name) is not None

    def _check_installation(self) -> None:
        """Check if the tool is installed and meets version requirements."""
        if not self.check_tool_availability(self.tool_name):
            raise ExternalToolError(
                f"{self.tool_name} not found in PATH. "
                f"Please install it via: conda install -c bioconda {self.tool_name}"
            )

        if self.required_version:
            current_version = self.get_tool_version(self.tool_name)
            if current_version and not self.check_minimum_version(
                current_version, self.required_version
            ):
                raise ExternalToolError(
                    f"{self.tool_name} version {current_version} is below "
                    f"required version {self.required_version}"
                )
            self.logger.debug(f"{self.tool_name} version: {current_version}")

    def get_tool_version(self, tool_name: str) -> Optional[str]:
        """Get tool version string."""
        if not self.version_command:
            return None

        version_commands = [
            [tool_name, self.version_command],
            [tool_name, "-v"],
            [tool_name, "version"],
        ]

        for cmd in version_commands:
            try:
                result = subprocess.run(
                    cmd, capture_output=True, text=True, check=False, timeout=10
                )
            except (subprocess.TimeoutExpired, OSError):
                continue

            output = result.stdout + result.stderr
            if self.version_regex:
                match = re.search(self.version_regex, output)
                if match:
                    return match.group(1)

        self.logger.debug(f"Could not get version for {tool_name}")
        return None

    def check_minimum_version(self, current_version: str, required_version: str) -> bool:
        """Check if current version meets minimum requirement.

        Returns:
            True if version check passes, False if version is insufficient.
            On parse errors, logs a warning and returns True (assumes OK) to avoid
            blocking tool usage due to non-standard version formats.
        """
        current_match = re.search(r"(\d+\.\d+(?:\.\d+)*)", current_version)
        required_match = re.search(r"(\d+\.\d+(?:\.\d+)*)", required_version)

        if not current_match:
            self.logger.warning(
                f"Could not parse current version string: '{current_version}'. "
                "Proceeding with caution - please verify tool version manually."
            )
            return True

        if not required_match:
            self.logger.warning(
                f"Could not parse required version string: '{required_version}'. "
                "This is a configuration issue - please check required_version setting."
            )
            return True

        current_ver = version.parse(current_match.group(1))
        required_ver = version.parse(required_match.group(1))

        if current_ver < required_ver:
            self.logger.warning(
                f"Version {current_version} is below minimum required {required_version}"
            )
            return False

        return True

    def run(
        self,
        cmd: Sequence[str],
        cwd: Optional[Path] = None,
        check: bool = True,
        capture_output: bool = True,
        timeout: Optional[int] = None,
        input_text: Optional[str] = None,
    ) -> tuple[str, str]:
        """Execute command with enhanced error handling.

        Args:
            cmd: Command and arguments to execute
            cwd: Working directory for the command
            check: Whether to raise on non-zero exit code
            capture_output: Whether to capture stdout/stderr
            timeout: Timeout in seconds (defaults to the wrapper's timeout if None)
            input_text: Text passed to the process on stdin

        Returns:
            Tuple of (stdout, stderr) if capture_output is True, else ("", "")
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        cmd_str = " ".join(str(c) for c in cmd)
        self.logger.info(LogTemplates.TOOL_START.format(tool_name=self.tool_name, description=cmd_str))

        try:
            result = subprocess.run(
                [str(c) for c in cmd],
                cwd=cwd,
                capture_output=capture_output,
                text=True,
                check=check,
                timeout=effective_timeout,
                input=input_text,
            )

            if result.stderr and not result.returncode:
                self.logger.debug(f"Command stderr: {result.stderr[:500]}")

            if capture_output:
                return result.stdout, result.stderr
            return "", ""

        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out after {effective_timeout}s: {cmd_str}")
            raise ExternalToolError(
                f"{self.tool_name} timed out",
                command=list(cmd),
                returncode=-1,
                stderr=f"Process timed out after {effective_timeout} seconds",
            )
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Command failed: {cmd_str}")
            self.logger.error(
                LogTemplates.TOOL_FAILURE.format(tool_name=self.tool_name, exit_code=e.returncode)
            )
            self.logger.error(f"Error: {e.stderr[:1000] if e.stderr else 'No error output'}")
            raise ExternalToolError(
                f"{self.tool_name} failed",
                command=list(cmd),
                returncode=e.returncode,
                stderr=e.stderr,
            )
        except OSError as e:
            self.logger.error(f"OS error running command: {cmd_str}")
            self.logger.error(f"Error: {e}")
            raise ExternalToolError(
                f"Failed to execute {self.tool_name}",
                command=list(cmd),
                returncode=-1,
                stderr=str(e),
            )

    def stream_to_gzip(
        self,
        cmd: Sequence[str],
        output: Path,
        timeout: Optional[int] = None,
    ) -> None:
        """Execute command and write its stdout to a gzip-compressed file.

        Used for tools that emit records on stdout only. The timeout covers the
        whole stream: a process still running when it expires is killed. The
        output file is removed again if the command fails or times out.
        """
        effective_timeout = timeout if timeout is not None else self.timeout
        cmd_str = " ".join(str(c) for c in cmd)
        self.logger.info(
            LogTemplates.TOOL_START.format(tool_name=self.tool_name, description=f"{cmd_str} > {output}")
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        timed_out = threading.Event()

        def _kill(proc: subprocess.Popen) -> None:
            timed_out.set()
            proc.kill()

        try:
            with tempfile.TemporaryFile() as err_handle:
                with subprocess.Popen(
                    [str(c) for c in cmd],
                    stdout=subprocess.PIPE,
                    stderr=err_handle,
                ) as proc:
                    if proc.stdout is None:
                        proc.kill()
                        raise ExternalToolError(
                            f"Failed to execute {self.tool_name}",
                            command=list(cmd),
                            returncode=-1,
                            stderr="No stdout pipe opened for the process",
                        )
                    timer = None
                    if effective_timeout is not None:
                        timer = threading.Timer(effective_timeout, _kill, args=(proc,))
                        timer.daemon = True
                        timer.start()
                    try:
                        with gzip.open(output, "wb") as out_handle:
                            shutil.copyfileobj(proc.stdout, out_handle)
                        proc.wait()
                    finally:
                        if timer is not None:
                            timer.cancel()
                err_handle.seek(0)
                stderr = err_handle.read().decode(errors="replace")
        except OSError as e:
            output.unlink(missing_ok=True)
            self.logger.error(f"OS error running command: {cmd_str}")
            raise ExternalToolError(
                f"Failed to execute {self.tool_name}",
                command=list(cmd),
                returncode=-1,
                stderr=str(e),
            )

        if timed_out.is_set():
            output.unlink(missing_ok=True)
            self.logger.error(f"Command timed out after {effective_timeout}s: {cmd_str}")
            raise ExternalToolError(
                f"{self.tool_name} timed out",
                command=list(cmd),
                returncode=-1,
                stderr=f"Process timed out after {effective_timeout} seconds",
            )
        if proc.returncode != 0:
            output.unlink(missing_ok=True)
            self.logger.error(f"Command failed: {cmd_str}")
            self.logger.error(
                LogTemplates.TOOL_FAILURE.format(tool_name=self.tool_name, exit_code=proc.returncode)
            )
            self.logger.error(f"Error: {stderr[:1000] if stderr else 'No error output'}")
            raise ExternalToolError(
                f"{self.tool_name} failed",
                command=list(cmd),
                returncode=proc.returncode,
                stderr=stderr,
            )
        if stderr:
            self.logger.debug(f"Command stderr: {stderr[:500]}")
