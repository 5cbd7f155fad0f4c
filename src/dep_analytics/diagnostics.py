"""
Diagnostics pipeline: places analysis results onto manifest text.

Each analysed reference is looked up in the manifest's ``DependencyMap``;
matches become a diagnostic over the dependency's version (or over its
context block when it has no anchored version) plus "switch to version"
code actions for recommended or remediated versions.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from .analysis import (
    AnalysisBackend,
    AnalysisResponse,
    DependencyData,
    Resolver,
    execute_component_analysis,
)
from .code_actions import (
    CodeActionRegistry,
    generate_switch_to_recommended_version_action,
    get_code_action_registry,
    location_key,
)
from .config import AnalyticsConfig, get_config
from .constants import SEVERITY_ORDER, VERSION_PLACEHOLDER
from .dependency import (
    Dependency,
    DependencyMap,
    ImageMap,
    get_image_range,
    get_range,
    split_reference,
)
from .position import Range
from .structured_logging import get_diagnostics_logger


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass
class Diagnostic:
    range: Range
    severity: DiagnosticSeverity
    message: str
    source: str
    code: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "severity": int(self.severity),
            "message": self.message,
            "source": self.source,
            "code": self.code,
        }


def severity_rank(severity: str) -> int:
    upper = (severity or "NONE").upper()
    return SEVERITY_ORDER.index(upper) if upper in SEVERITY_ORDER else 0


def edit_target(dependency: Dependency) -> Tuple[Range, Optional[str]]:
    """
    Range a version fix should replace, and the template to fill if any.

    Anchored versions are replaced directly; otherwise the context block is
    replaced with its template.
    """
    version = dependency.version
    if (version is None or not version.position.is_anchor) and dependency.context:
        return dependency.context.range, dependency.context.value
    return get_range(dependency), None


class Vulnerability:
    """Diagnostic content for one analysed dependency."""

    def __init__(
        self,
        range_: Range,
        ref: str,
        dependency_data: List[DependencyData],
        source: str,
        error_threshold: str = "HIGH",
    ):
        self.range = range_
        self.ref = ref
        self.dependency_data = dependency_data
        self.source = source
        self.error_threshold = error_threshold

    @property
    def issues_count(self) -> int:
        return sum(dd.issues_count for dd in self.dependency_data)

    @property
    def highest_severity(self) -> str:
        severities = [dd.highest_vulnerability_severity for dd in self.dependency_data]
        return max(severities, key=severity_rank, default="NONE")

    def severity(self) -> DiagnosticSeverity:
        if not self.issues_count:
            return DiagnosticSeverity.INFORMATION
        if severity_rank(self.highest_severity) >= severity_rank(self.error_threshold):
            return DiagnosticSeverity.ERROR
        return DiagnosticSeverity.WARNING

    def message(self) -> str:
        lines = [self.ref]
        for dd in self.dependency_data:
            if dd.issues_count:
                lines.append(f"{dd.source_id} vulnerability count: {dd.issues_count}")
                lines.append(
                    f"{dd.source_id} highest severity: {dd.highest_vulnerability_severity}"
                )
                if dd.remediation_ref:
                    lines.append(f"{dd.source_id} remediation: {dd.remediation_ref}")
            elif dd.recommendation_ref:
                lines.append(f"{dd.source_id} recommendation: {dd.recommendation_ref}")
        return "\n".join(lines)

    def get_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            range=self.range,
            severity=self.severity(),
            message=self.message(),
            source=self.source,
            code=self.ref,
        )


class DiagnosticsPipeline:
    """Turns analysis results for one manifest into diagnostics."""

    def __init__(
        self,
        dependency_map: Union[DependencyMap, ImageMap],
        diagnostic_file_path: str,
        config: Optional[AnalyticsConfig] = None,
        registry: Optional[CodeActionRegistry] = None,
    ):
        self.dependency_map = dependency_map
        self.diagnostic_file_path = diagnostic_file_path
        self.config = config or get_config()
        self.registry = registry or get_code_action_registry()
        self.diagnostics: List[Diagnostic] = []
        self.vuln_count: Dict[str, int] = {}

    def clear_diagnostics(self) -> None:
        self.diagnostics = []
        self.vuln_count = {}
        self.registry.clear(self.diagnostic_file_path)

    def run_diagnostics(self, dependencies: Dict[str, List[DependencyData]]) -> List[Diagnostic]:
        """
        Create diagnostics and code actions for every matching reference.

        Args:
            dependencies: Analysis entries keyed by resolved reference

        Returns:
            List[Diagnostic]: Diagnostics created by this run
        """
        if isinstance(self.dependency_map, ImageMap):
            return self.run_image_diagnostics(dependencies)

        for ref, dependency_data in dependencies.items():
            dependency = self.dependency_map.lookup(ref)
            if dependency is None:
                get_diagnostics_logger().debug("reference_not_in_manifest", ref=ref)
                continue

            vulnerability = Vulnerability(
                get_range(dependency),
                ref,
                dependency_data,
                self.config.diagnostics.diagnostic_source,
                self.config.diagnostics.error_severity_threshold,
            )
            diagnostic = vulnerability.get_diagnostic()
            self.diagnostics.append(diagnostic)

            for dd in dependency_data:
                action_ref = (
                    dd.remediation_ref
                    if diagnostic.severity < DiagnosticSeverity.INFORMATION
                    else dd.recommendation_ref
                )
                if action_ref:
                    self.create_code_action(action_ref, dependency, dd.source_id, diagnostic)

            self._count_vulnerabilities(dependency_data)

        return self.diagnostics

    def run_image_diagnostics(
        self, dependencies: Dict[str, List[DependencyData]]
    ) -> List[Diagnostic]:
        """Create diagnostics over the ``FROM`` lines of analysed images."""
        for ref, dependency_data in dependencies.items():
            for image in self.dependency_map.get(ref):
                vulnerability = Vulnerability(
                    get_image_range(image),
                    ref,
                    dependency_data,
                    self.config.diagnostics.diagnostic_source,
                    self.config.diagnostics.error_severity_threshold,
                )
                self.diagnostics.append(vulnerability.get_diagnostic())
                self._count_vulnerabilities(dependency_data)

        return self.diagnostics

    def _count_vulnerabilities(self, dependency_data: List[DependencyData]) -> None:
        for dd in dependency_data:
            vuln_provider = dd.source_id.split("(")[0]
            self.vuln_count[vuln_provider] = (
                self.vuln_count.get(vuln_provider, 0) + dd.issues_count
            )

    def create_code_action(
        self, ref: str, dependency: Dependency, source_id: str, diagnostic: Diagnostic
    ) -> None:
        _, switch_to_version = split_reference(ref)
        if not switch_to_version:
            return

        edit_range, template = edit_target(dependency)
        replacement = (
            template.replace(VERSION_PLACEHOLDER, switch_to_version)
            if template
            else switch_to_version
        )
        action = generate_switch_to_recommended_version_action(
            f"Switch to version {switch_to_version} for {source_id}",
            ref,
            replacement,
            diagnostic,
            self.diagnostic_file_path,
            edit_range,
        )
        self.registry.register(
            self.diagnostic_file_path, location_key(diagnostic.range), action
        )


async def perform_diagnostics(
    diagnostic_file_path: str,
    contents: str,
    provider: Resolver,
    backend: AnalysisBackend,
    config: Optional[AnalyticsConfig] = None,
) -> Tuple[List[Diagnostic], AnalysisResponse]:
    """
    Collect, analyse and diagnose one manifest.

    Args:
        diagnostic_file_path: Manifest path or URI the diagnostics belong to
        contents: Manifest text
        provider: Parser for the manifest
        backend: Analysis backend
        config: Configuration, the global one when omitted

    Returns:
        Tuple of diagnostics and the parsed analysis response
    """
    dependencies = await provider.collect_async(contents)
    pipeline = DiagnosticsPipeline(
        provider.build_map(dependencies), diagnostic_file_path, config
    )
    pipeline.clear_diagnostics()

    response = await execute_component_analysis(
        diagnostic_file_path, contents, provider, backend
    )
    diagnostics = pipeline.run_diagnostics(response.dependencies)
    get_diagnostics_logger().info(
        "diagnostics_reported",
        manifest=diagnostic_file_path,
        diagnostic_count=len(diagnostics),
        vulnerabilities=pipeline.vuln_count,
    )
    return diagnostics, response
