"""Dependency checker for bamtofastq.

Performs pre-flight checks for the external tools a run needs.
"""

import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Iterable, List, Optional

from packaging import version

from bamtofastq.exceptions import DependencyError
from bamtofastq.utils.logging import get_logger


@dataclass
class Tool:
    """Tool dependency definition."""

    name: str
    required: bool
    purpose: str
    install_hint: str
    min_version: Optional[str] = None
    version_arg: str = "--version"


def find_tool(name: str) -> Optional[str]:
    """Return the resolved path of `name`, or None if it is not on PATH."""
    return shutil.which(name)


def get_tool_version(tool_name: str, version_arg: str = "--version") -> Optional[str]:
    """Get version string from a tool.

    Args:
        tool_name: Name of the tool executable
        version_arg: Argument to get version (default: --version)

    Returns:
        Version string if found, None otherwise
    """
    try:
        result = subprocess.run(
            [tool_name, version_arg],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    match = re.search(r"(\d+\.\d+(?:\.\d+)?)", result.stdout + result.stderr)
    return match.group(1) if match else None


def compare_versions(current: str, minimum: str) -> bool:
    """Return True if `current` >= `minimum`; unparsable versions pass."""
    try:
        return version.parse(current) >= version.parse(minimum)
    except version.InvalidVersion:
        return True


# Tool dependency definitions
TOOLS = [
    Tool(
        name="samtools",
        required=True,
        purpose="BAM filtering, collation and FASTQ conversion",
        install_hint="conda install -c bioconda samtools",
        min_version="1.10",
    ),
    Tool(
        name="fastqc",
        required=True,
        purpose="Read quality reports (skip with --skip-read-qc)",
        install_hint="conda install -c bioconda fastqc",
    ),
    Tool(
        name="multiqc",
        required=True,
        purpose="Report aggregation (skip with --skip-all-stats)",
        install_hint="conda install -c bioconda multiqc",
    ),
    Tool(
        name="sendmail",
        required=False,
        purpose="Completion e-mail (only with --email/--email-on-fail)",
        install_hint="Install a local MTA providing 'sendmail' (e.g. postfix, msmtp-mta)",
    ),
]


class DependencyChecker:
    """Check and report on tool dependencies."""

    def __init__(self, logger=None, tools: Optional[List[Tool]] = None):
        self.logger = logger or get_logger("dependency_checker")
        self.tools = list(tools) if tools is not None else list(TOOLS)
        self.missing_required: List[Tool] = []
        self.missing_optional: List[Tool] = []
        self.found_tools: List[str] = []
        self.version_warnings: List[str] = []

    def check_all(
        self,
        skip_tools: Optional[Iterable[str]] = None,
        require_tools: Optional[Iterable[str]] = None,
    ) -> bool:
        """Check all dependencies.

        Args:
            skip_tools: Tools not needed for this run (not checked at all)
            require_tools: Optional tools that this run does need

        Returns:
            True if all required tools are available
        """
        skip = set(skip_tools or ())
        extra_required = set(require_tools or ())
        self.logger.info("Checking dependencies...")

        for tool in self.tools:
            if tool.name in skip:
                self.logger.debug(f"- {tool.name} not needed for this run")
                continue
            required = tool.required or tool.name in extra_required

            if find_tool(tool.name) is None:
                if required:
                    self.missing_required.append(tool)
                    self.logger.error(f"✗ {tool.name} not found (REQUIRED)")
                else:
                    self.missing_optional.append(tool)
                    self.logger.warning(f"⚠ {tool.name} not found (optional)")
                continue

            self.found_tools.append(tool.name)
            if not tool.min_version:
                self.logger.debug(f"✓ {tool.name} found")
                continue

            current_version = get_tool_version(tool.name, tool.version_arg)
            if current_version is None:
                self.logger.debug(f"✓ {tool.name} found (version unknown)")
            elif not compare_versions(current_version, tool.min_version):
                warning = (
                    f"{tool.name}: version {current_version} < "
                    f"recommended {tool.min_version}"
                )
                self.version_warnings.append(warning)
                self.logger.warning(f"⚠ {warning}")
            else:
                self.logger.debug(f"✓ {tool.name} v{current_version}")

        return not self.missing_required

    def format_report(self) -> str:
        """Render a human-readable dependency report."""
        lines = ["", "=" * 70, "bamtofastq Dependency Check", "=" * 70]

        if self.found_tools:
            lines.append("\n✓ Found tools:")
            lines.extend(f"  - {tool}" for tool in sorted(self.found_tools))

        if self.version_warnings:
            lines.append("\n⚠ Version warnings:")
            lines.extend(f"  - {warning}" for warning in self.version_warnings)

        for title, tools in (
            ("\n⚠ Missing optional tools:", self.missing_optional),
            ("\n✗ Missing REQUIRED tools:", self.missing_required),
        ):
            if not tools:
                continue
            lines.append(title)
            for tool in tools:
                lines.append(f"  - {tool.name}")
                lines.append(f"    Purpose: {tool.purpose}")
                lines.append(f"    Install: {tool.install_hint}")

        lines.append("\n" + "=" * 70)
        if self.missing_required:
            lines.append("ERROR: Cannot proceed without required dependencies.")
            lines.append("Please install missing tools and try again.")
        else:
            lines.append("✓ All required dependencies satisfied!")
        lines.append("=" * 70)
        return "\n".join(lines)

    def raise_if_missing_required(self) -> None:
        """Raise DependencyError if required dependencies are missing."""
        if self.missing_required:
            names = ", ".join(tool.name for tool in self.missing_required)
            raise DependencyError(f"Missing required dependencies: {names}")
