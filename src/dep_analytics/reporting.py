"""
Console and JSON output for collected dependencies and diagnostics.

Provides color-coded console output using Rich library.
"""

from typing import Any, Dict, List, Optional, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .analysis import AnalysisResponse
from .dependency import Dependency, Image
from .diagnostics import Diagnostic, DiagnosticSeverity
from .position import PositionedString

SEVERITY_STYLES = {
    DiagnosticSeverity.ERROR: ("🚨 ERROR", "bold red"),
    DiagnosticSeverity.WARNING: ("⚠️  WARNING", "bold yellow"),
    DiagnosticSeverity.INFORMATION: ("ℹ️  INFO", "blue"),
    DiagnosticSeverity.HINT: ("💡 HINT", "dim"),
}


def _location(value: Optional[PositionedString]) -> str:
    if value is None or not value.position.is_anchor:
        return "-"
    return f"{value.position.line}:{value.position.column}"


def collect_results_to_dict(
    file_path: str, ecosystem: str, records: List[Union[Dependency, Image]]
) -> Dict[str, Any]:
    return {
        "file_path": file_path,
        "ecosystem": ecosystem,
        "total": len(records),
        "records": [record.to_dict() for record in records],
    }


def diagnostics_to_dict(
    file_path: str, diagnostics: List[Diagnostic], response: AnalysisResponse
) -> Dict[str, Any]:
    return {
        "file_path": file_path,
        "diagnostics": [diagnostic.to_dict() for diagnostic in diagnostics],
        "vulnerable_dependencies": response.vulnerable_count,
        "failed_providers": response.failed_providers,
    }


class ManifestReporter:
    """Formats and displays parse and analysis results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_collect_results(
        self, file_path: str, ecosystem: str, records: List[Union[Dependency, Image]]
    ) -> None:
        """
        Print collected dependencies with their source locations.

        Args:
            file_path: Path to the parsed manifest
            ecosystem: Ecosystem of the manifest's parser
            records: Dependencies, or images for Dockerfiles
        """
        self.console.print(
            Panel(
                f"📄 {file_path} ({ecosystem})",
                title="[bold blue]Dependency Analytics[/bold blue]",
                border_style="blue",
            )
        )

        if not records:
            self.console.print("No dependencies found.", style="yellow")
            return

        if isinstance(records[0], Image):
            self._print_images(records)
        else:
            self._print_dependencies(records)

    def _print_dependencies(self, dependencies: List[Dependency]) -> None:
        table = Table(
            title=f"📦 Dependencies ({len(dependencies)})",
            box=box.ROUNDED,
            title_style="bold cyan",
        )
        table.add_column("Name", style="bold")
        table.add_column("At", justify="right")
        table.add_column("Version")
        table.add_column("At", justify="right")
        table.add_column("Context", style="dim")

        for dependency in dependencies:
            version = dependency.version
            table.add_row(
                dependency.name.value,
                _location(dependency.name),
                version.value if version else "",
                _location(version),
                "yes" if dependency.context else "",
            )

        self.console.print(table)

    def _print_images(self, images: List[Image]) -> None:
        table = Table(
            title=f"🐳 Images ({len(images)})", box=box.ROUNDED, title_style="bold cyan"
        )
        table.add_column("Image", style="bold")
        table.add_column("Line", justify="right")
        table.add_column("Platform")

        for image in images:
            table.add_row(
                image.name.value, str(image.name.position.line), image.platform or ""
            )

        self.console.print(table)

    def print_diagnostics(
        self, file_path: str, diagnostics: List[Diagnostic], response: AnalysisResponse
    ) -> None:
        """Print diagnostics as a table, followed by provider failures."""
        self.console.print(
            Panel(
                f"🔍 Analysis Results: {file_path}",
                title="[bold blue]Dependency Analytics[/bold blue]",
                border_style="blue",
            )
        )

        if response.failed_providers:
            self.console.print(
                f"⚠️  Providers without data: {', '.join(response.failed_providers)}",
                style="yellow",
            )

        if not diagnostics:
            self.console.print("✅ No diagnostics reported.", style="green")
            return

        table = Table(title="📊 Diagnostics", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Severity", style="bold")
        table.add_column("Location", justify="right")
        table.add_column("Details")

        for diagnostic in diagnostics:
            label, style = SEVERITY_STYLES[diagnostic.severity]
            start = diagnostic.range.start
            table.add_row(
                f"[{style}]{label}[/{style}]",
                f"{start.line + 1}:{start.character + 1}",
                diagnostic.message,
            )

        self.console.print(table)
        self.console.print(
            f"Vulnerable dependencies: {response.vulnerable_count}", style="bold"
        )
