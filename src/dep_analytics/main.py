import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

import click
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .analysis import AnalysisError, create_backend
from .config import (
    SECTIONS,
    AnalyticsConfig,
    apply_config_section,
    create_sample_config,
    get_config,
    load_config_file,
    validate_config_values,
)
from .constants import DEFAULT_NPM_CLASSES
from .dependency import Dependency, Image
from .diagnostics import Diagnostic, DiagnosticSeverity, perform_diagnostics
from .error_handling import ErrorCategory, ErrorContext, setup_error_handling
from .golang_imports import GoToolchainError
from .parsers import (
    get_provider,
    get_supported_file_types,
    parse_contents,
    read_manifest,
)
from .reporting import ManifestReporter, collect_results_to_dict, diagnostics_to_dict
from .structured_logging import (
    clear_manifest_context,
    configure_logging,
    set_manifest_context,
)

console = Console()
err_console = Console(stderr=True)

DEV_DEPENDENCY_CLASS = "devDependencies"


def _with_overrides(
    config: AnalyticsConfig,
    dev: Optional[bool] = None,
    backend_url: Optional[str] = None,
) -> AnalyticsConfig:
    """Copy the configuration with command line overrides applied."""
    if dev is not None:
        classes = [
            name
            for name in config.providers.npm_dependency_classes
            if name != DEV_DEPENDENCY_CLASS
        ] or list(DEFAULT_NPM_CLASSES)
        if dev:
            classes.append(DEV_DEPENDENCY_CLASS)
        config = replace(
            config, providers=replace(config.providers, npm_dependency_classes=classes)
        )
    if backend_url:
        config = replace(config, analysis=replace(config.analysis, backend_url=backend_url))
    return config


def collect_dependencies(
    file_path: str, config: AnalyticsConfig, resolve_go_imports: Optional[bool]
) -> List[Union[Dependency, Image]]:
    """Read and parse a manifest, turning parse failures into click errors."""
    try:
        contents = read_manifest(file_path, config)
        return parse_contents(file_path, contents, config, resolve_go_imports)
    except ValueError as e:
        raise click.ClickException(f"Failed to parse manifest: {e}")
    except GoToolchainError as e:
        raise click.ClickException(str(e))


async def async_analyze_manifest(file_path: str, config: AnalyticsConfig):
    """Run the analysis backend and the diagnostics pipeline for one manifest."""
    provider = get_provider(file_path, config)
    contents = read_manifest(file_path, config)
    async with create_backend(config) as backend:
        return await perform_diagnostics(file_path, contents, provider, backend, config)


def print_suggestions(context: ErrorContext) -> None:
    """Show the suggested fixes attached to a reported error."""
    for suggestion in context.suggestions:
        err_console.print(f"💡 {suggestion}", style="yellow")


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    Dependency Analytics: positioned dependency extraction and vulnerability
    diagnostics for software manifests.
    """
    if version:
        console.print(f"Dependency Analytics version {__version__}", style="bold blue")
        ctx.exit()

    logging_config = get_config().logging
    configure_logging(logging_config.log_level, logging_config.enable_json)
    handler = setup_error_handling(
        getattr(logging, logging_config.log_level.upper(), logging.WARNING)
    )
    handler.register_callback(print_suggestions, ErrorCategory.PARSING)
    handler.register_callback(print_suggestions, ErrorCategory.NETWORK)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "file_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format for results",
    show_default=True,
)
@click.option(
    "--dev/--no-dev",
    default=None,
    help="Include npm devDependencies (default from config)",
)
@click.option(
    "--go-imports/--no-go-imports",
    default=None,
    help="Resolve go.mod modules to the packages imported by the code",
)
def collect(
    file_path: str, output_format: str, dev: Optional[bool], go_imports: Optional[bool]
) -> None:
    """
    List the dependencies declared in a manifest with their positions.

    Examples:

      dep-analytics collect package.json

      dep-analytics collect pom.xml --format json

      dep-analytics collect go.mod --go-imports
    """
    config = _with_overrides(get_config(), dev=dev)
    try:
        provider = get_provider(file_path, config)
    except ValueError as e:
        raise click.ClickException(str(e))

    set_manifest_context(Path(file_path).name, provider.ecosystem)
    try:
        records = collect_dependencies(file_path, config, go_imports)
    finally:
        clear_manifest_context()

    if output_format == "json":
        click.echo(
            json.dumps(
                collect_results_to_dict(file_path, provider.ecosystem, records),
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        ManifestReporter(console).print_collect_results(
            file_path, provider.ecosystem, records
        )


@cli.command()
@click.argument(
    "file_path", type=click.Path(exists=True, readable=True, dir_okay=False)
)
@click.option("--backend-url", help="Analysis backend URL (default from config)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Output format for results",
    show_default=True,
)
def analyze(file_path: str, backend_url: Optional[str], output_format: str) -> None:
    """
    Analyse a manifest and report vulnerability diagnostics.

    Exits with code 1 when a diagnostic reaches error severity.

    Examples:

      dep-analytics analyze requirements.txt

      dep-analytics analyze pom.xml --backend-url https://analytics.example.com
    """
    config = _with_overrides(get_config(), backend_url=backend_url)

    try:
        diagnostics, response = asyncio.run(async_analyze_manifest(file_path, config))
    except (ValueError, AnalysisError) as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        err_console.print("\n⚠️  Analysis interrupted by user", style="yellow")
        sys.exit(130)

    if output_format == "json":
        click.echo(
            json.dumps(
                diagnostics_to_dict(file_path, diagnostics, response),
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        ManifestReporter(console).print_diagnostics(file_path, diagnostics, response)

    if _has_errors(diagnostics):
        sys.exit(1)


def _has_errors(diagnostics: List[Diagnostic]) -> bool:
    return any(d.severity == DiagnosticSeverity.ERROR for d in diagnostics)


@cli.command()
def info():
    """Show supported manifests and configuration sources."""
    manifests = "\n".join(
        f"• [green]{name}[/green] - {get_provider(name).ecosystem}"
        for name in get_supported_file_types()
    )
    info_text = f"""
[bold blue]📋 Supported Manifests:[/bold blue]

{manifests}

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]DEP_ANALYTICS_BACKEND_URL[/cyan] - Analysis backend URL
• [cyan]DEP_ANALYTICS_API_TOKEN[/cyan] - Analysis backend token
• [cyan]DEP_ANALYTICS_NPM_CLASSES[/cyan] - Comma separated package.json sections
• [cyan]DEP_ANALYTICS_RESOLVE_GO_IMPORTS[/cyan] - Resolve go.mod imports
• [cyan]GOLANG_EXECUTABLE[/cyan] - Go executable used for import listing

[bold blue]📄 Configuration Files:[/bold blue]

• [green].dep-analytics.json|yaml|yml|toml[/green] - Project-level config
• [green]~/.config/dep-analytics/[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  dep-analytics collect package.json --dev
  dep-analytics analyze pom.xml --format json
  dep-analytics config init
"""
    console.print(
        Panel(
            info_text,
            title="[bold]Dependency Analytics Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-analytics.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show the effective configuration with tokens redacted."""
    current = get_config().to_dict()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))
    for section in SECTIONS:
        console.print(f"\n[bold cyan]{section}:[/bold cyan]")
        for key, value in current[section].items():
            console.print(f"  {key}: {value}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))
    if not isinstance(config_data, dict):
        console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    candidate = AnalyticsConfig()
    for section in SECTIONS:
        if isinstance(config_data.get(section), dict):
            apply_config_section(getattr(candidate, section), config_data[section], section)

    errors = validate_config_values(candidate)
    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(f"✅ Configuration file {config_file} is valid", style="green")


if __name__ == "__main__":
    cli()
