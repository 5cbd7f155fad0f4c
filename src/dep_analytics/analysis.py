"""
Client for the vulnerability analysis backend and parsing of its reports.

The backend receives the raw manifest and answers with a report grouped by
provider and source. Dockerfiles are sent as their image references instead,
one `name` or `name^^platform` per line. Each dependency entry is keyed by a package URL, which
the manifest's parser maps back onto its own dependency keys.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
from httpx import HTTPStatusError, RequestError

from . import __version__
from .config import AnalysisConfig, AnalyticsConfig, get_config
from .dependency import Image
from .error_handling import ErrorCategory, get_error_handler, log_network_error
from .providers import DependencyProvider, DockerfileParser
from .structured_logging import get_analysis_logger, log_analysis_complete

ANALYSIS_PATH = "/api/v4/analysis"

# Anything exposing resolve_dependency_from_reference
Resolver = Union[DependencyProvider, DockerfileParser]


class AnalysisError(Exception):
    """The analysis backend could not produce a report."""


@dataclass
class DependencyData:
    """One source's verdict on one dependency."""

    source_id: str
    issues_count: int
    recommendation_ref: str
    remediation_ref: str
    highest_vulnerability_severity: str


@dataclass
class AnalysisResponse:
    """Report entries grouped by resolved dependency reference."""

    dependencies: Dict[str, List[DependencyData]] = field(default_factory=dict)
    failed_providers: List[str] = field(default_factory=list)

    @property
    def vulnerable_count(self) -> int:
        return sum(
            1
            for entries in self.dependencies.values()
            if any(entry.issues_count for entry in entries)
        )

    @classmethod
    def from_report(cls, report: Dict[str, Any], provider: Resolver) -> "AnalysisResponse":
        return parse_analysis_report(report, provider)


def parse_analysis_report(report: Dict[str, Any], resolver: Resolver) -> AnalysisResponse:
    """
    Build a response from a backend report.

    Providers whose status is not ok are recorded in ``failed_providers``
    and contribute no entries.

    Args:
        report: Decoded JSON report
        resolver: Parser of the analysed manifest, used to resolve refs

    Returns:
        AnalysisResponse: Parsed response
    """
    response = AnalysisResponse()
    providers = report.get("providers") or {}

    for provider_name, provider_data in providers.items():
        status = (provider_data or {}).get("status") or {}
        if not status.get("ok"):
            response.failed_providers.append(provider_name)
            continue

        for source_name, source_data in (provider_data.get("sources") or {}).items():
            source_id = f"{provider_name}({source_name})"
            for entry in (source_data or {}).get("dependencies") or []:
                if "ref" not in entry:
                    continue
                resolved = resolver.resolve_dependency_from_reference(entry["ref"])
                response.dependencies.setdefault(resolved, []).append(
                    _dependency_data(entry, source_id, resolver)
                )

    return response


def _dependency_data(
    entry: Dict[str, Any], source_id: str, resolver: Resolver
) -> DependencyData:
    issues = entry.get("issues") or []
    severity = (entry.get("highestVulnerability") or {}).get("severity") or "NONE"

    if issues:
        trusted_ref = (
            ((issues[0].get("remediation") or {}).get("trustedContent") or {}).get("ref")
        )
        remediation = resolver.resolve_dependency_from_reference(trusted_ref) if trusted_ref else ""
        return DependencyData(source_id, len(issues), "", remediation, severity)

    recommendation = entry.get("recommendation")
    recommendation_ref = (
        resolver.resolve_dependency_from_reference(recommendation) if recommendation else ""
    )
    return DependencyData(source_id, 0, recommendation_ref, "", severity)


class AnalysisBackend(ABC):
    """A service that analyses manifest contents for vulnerabilities."""

    @abstractmethod
    async def analyze(
        self, manifest_name: str, contents: str, ecosystem: str
    ) -> Dict[str, Any]:
        """Return the raw report for one manifest."""


class HttpAnalysisBackend(AnalysisBackend):
    """
    HTTP client for the analysis backend.

    Use as an async context manager so the underlying ``httpx.AsyncClient``
    is opened and closed with the session.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or get_config().analysis
        self.client: Optional[httpx.AsyncClient] = None
        self._headers = {
            "User-Agent": f"dep-analytics/{__version__}",
            "Accept": "application/json",
        }
        if self.config.api_token:
            self._headers["Authorization"] = f"Bearer {self.config.api_token}"
        for provider_name, token in self.config.provider_tokens.items():
            self._headers[f"ex-{provider_name}-token"] = token
        if self.config.utm_source:
            self._headers["X-Source"] = self.config.utm_source
        if self.config.telemetry_id:
            self._headers["X-Telemetry-Id"] = self.config.telemetry_id

    @property
    def url(self) -> str:
        return self.config.backend_url.rstrip("/") + ANALYSIS_PATH

    async def __aenter__(self):
        timeout = httpx.Timeout(
            self.config.read_timeout, connect=self.config.connect_timeout
        )
        self.client = httpx.AsyncClient(timeout=timeout, headers=self._headers)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def analyze(
        self, manifest_name: str, contents: str, ecosystem: str
    ) -> Dict[str, Any]:
        """
        Post a manifest for analysis.

        Raises:
            AnalysisError: On HTTP errors, network errors or a malformed body
        """
        if self.client is None:
            raise AnalysisError("HTTP client not initialized - use within async context manager")

        payload = {"manifest": manifest_name, "ecosystem": ecosystem, "content": contents}
        try:
            response = await self.client.post(self.url, json=payload)
            response.raise_for_status()
            return response.json()
        except HTTPStatusError as e:
            log_network_error(
                "Analysis request rejected",
                "analysis",
                "analyze",
                url=self.url,
                status_code=e.response.status_code,
                exception=e,
            )
            raise AnalysisError(
                f"HTTP {e.response.status_code}: {e.response.text[:100]}"
            ) from e
        except RequestError as e:
            log_network_error(
                "Analysis request failed", "analysis", "analyze", url=self.url, exception=e
            )
            raise AnalysisError(f"Network error: {e}") from e
        except ValueError as e:
            raise AnalysisError(f"Malformed analysis report: {e}") from e


def image_references(images: List[Image]) -> str:
    """Image references for analysis, with the platform appended after `^^`."""
    references = []
    for image in images:
        reference = image.name.value
        if image.platform:
            reference = f"{reference}^^{image.platform}"
        references.append(reference)
    return "\n".join(references)


async def execute_component_analysis(
    file_path: str,
    contents: str,
    provider: Resolver,
    backend: AnalysisBackend,
) -> AnalysisResponse:
    """
    Analyse one manifest and parse the report.

    Args:
        file_path: Manifest path; only its name is sent
        contents: Manifest text; Dockerfiles are reduced to image references
        provider: Parser matching the manifest
        backend: Analysis backend

    Returns:
        AnalysisResponse: Entries keyed by resolved reference
    """
    manifest_name = Path(file_path).name
    if isinstance(provider, DockerfileParser):
        contents = image_references(provider.collect(contents))
    report = await backend.analyze(manifest_name, contents, provider.ecosystem)
    response = AnalysisResponse.from_report(report, provider)

    if response.failed_providers:
        message = (
            "The component analysis couldn't fetch data from the following "
            f"providers: [{', '.join(response.failed_providers)}]"
        )
        get_error_handler().warning(
            ErrorCategory.ANALYSIS,
            message,
            "analysis",
            "execute_component_analysis",
            details={"manifest": manifest_name},
        )
        get_analysis_logger().warning(
            "providers_failed", manifest=manifest_name, providers=response.failed_providers
        )

    log_analysis_complete(
        manifest_name,
        len(response.dependencies),
        response.vulnerable_count,
        response.failed_providers,
    )
    return response


def create_backend(config: Optional[AnalyticsConfig] = None) -> HttpAnalysisBackend:
    """Create the HTTP backend from configuration."""
    config = config or get_config()
    return HttpAnalysisBackend(config.analysis)
