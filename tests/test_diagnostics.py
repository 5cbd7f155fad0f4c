"""
Tests for the diagnostics pipeline and code actions.
"""

from unittest.mock import AsyncMock

import pytest

from dep_analytics.analysis import DependencyData
from dep_analytics.code_actions import (
    CodeActionRegistry,
    TextEdit,
    generate_switch_to_recommended_version_action,
    get_code_action_registry,
)
from dep_analytics.diagnostics import (
    DiagnosticSeverity,
    DiagnosticsPipeline,
    Vulnerability,
    edit_target,
    perform_diagnostics,
)
from dep_analytics.position import Range
from dep_analytics.providers import (
    DockerfileParser,
    GradleParser,
    PackageJsonParser,
    PomXmlParser,
)

URI = "file:///work/app/package.json"

EXPRESS_DATA = DependencyData("osv(osv)", 1, "", "express@4.17.3", "HIGH")
NODE_DATA = DependencyData("osv(osv)", 0, "@types/node@18.0.1", "", "NONE")


def pipeline_for(parser, contents, registry, uri=URI):
    dependencies = parser.collect(contents)
    return DiagnosticsPipeline(parser.build_map(dependencies), uri, registry=registry)


class TestVulnerability:
    RANGE = Range.from_coordinates(0, 0, 0, 5)

    def test_no_issues_is_information(self):
        vulnerability = Vulnerability(self.RANGE, "a@1", [NODE_DATA], "src")
        assert vulnerability.severity() == DiagnosticSeverity.INFORMATION

    def test_threshold(self):
        medium = DependencyData("osv(osv)", 2, "", "", "MEDIUM")
        assert Vulnerability(self.RANGE, "a@1", [medium], "src").severity() == (
            DiagnosticSeverity.WARNING
        )
        assert Vulnerability(self.RANGE, "a@1", [medium], "src", "LOW").severity() == (
            DiagnosticSeverity.ERROR
        )

    def test_highest_severity_across_sources(self):
        data = [
            DependencyData("osv(osv)", 1, "", "", "LOW"),
            DependencyData("snyk(snyk)", 3, "", "", "CRITICAL"),
        ]
        vulnerability = Vulnerability(self.RANGE, "a@1", data, "src")
        assert vulnerability.issues_count == 4
        assert vulnerability.highest_severity == "CRITICAL"
        assert vulnerability.severity() == DiagnosticSeverity.ERROR

    def test_message(self):
        vulnerability = Vulnerability(
            self.RANGE, "express@4.17.1", [EXPRESS_DATA], "Dependency Analytics"
        )
        assert vulnerability.message() == (
            "express@4.17.1\n"
            "osv(osv) vulnerability count: 1\n"
            "osv(osv) highest severity: HIGH\n"
            "osv(osv) remediation: express@4.17.3"
        )

    def test_diagnostic_dict(self):
        diagnostic = Vulnerability(self.RANGE, "a@1", [NODE_DATA], "src").get_diagnostic()
        assert diagnostic.to_dict() == {
            "range": {
                "start": {"line": 0, "character": 0},
                "end": {"line": 0, "character": 5},
            },
            "severity": 3,
            "message": "a@1\nosv(osv) recommendation: @types/node@18.0.1",
            "source": "src",
            "code": "a@1",
        }


class TestDiagnosticsPipeline:
    def test_package_json(self, sample_package_json, registry):
        pipeline = pipeline_for(
            PackageJsonParser(), sample_package_json.read_text(), registry
        )
        diagnostics = pipeline.run_diagnostics(
            {
                "express@4.17.1": [EXPRESS_DATA],
                "@types/node@18.0.0": [NODE_DATA],
                "left-pad@1.0.0": [EXPRESS_DATA],
            }
        )

        assert len(diagnostics) == 2
        express, node = diagnostics
        assert express.range == Range.from_coordinates(3, 16, 3, 22)
        assert express.severity == DiagnosticSeverity.ERROR
        assert express.source == "Dependency Analytics"
        assert node.range == Range.from_coordinates(4, 20, 4, 26)
        assert node.severity == DiagnosticSeverity.INFORMATION
        assert pipeline.vuln_count == {"osv": 1}

    def test_remediation_action(self, sample_package_json, registry):
        pipeline = pipeline_for(
            PackageJsonParser(), sample_package_json.read_text(), registry
        )
        diagnostic = pipeline.run_diagnostics({"express@4.17.1": [EXPRESS_DATA]})[0]

        actions = registry.get_actions(URI, [diagnostic])
        assert len(actions) == 1
        action = actions[0]
        assert action.title == "Switch to version 4.17.3 for osv(osv)"
        assert action.data == "express@4.17.3"
        assert action.edits == {URI: [TextEdit(diagnostic.range, "4.17.3")]}
        assert registry.get_all(URI) == actions
        assert "3|16" in registry._actions[URI]

    def test_recommendation_action(self, sample_package_json, registry):
        pipeline = pipeline_for(
            PackageJsonParser(), sample_package_json.read_text(), registry
        )
        pipeline.run_diagnostics({"@types/node@18.0.0": [NODE_DATA]})

        (action,) = registry.get_all(URI)
        assert action.title == "Switch to version 18.0.1 for osv(osv)"

    def test_vulnerable_dependency_ignores_recommendation(
        self, sample_package_json, registry
    ):
        data = DependencyData("osv(osv)", 1, "express@5.0.0", "", "LOW")
        pipeline = pipeline_for(
            PackageJsonParser(), sample_package_json.read_text(), registry
        )
        diagnostic = pipeline.run_diagnostics({"express@4.17.1": [data]})[0]

        assert diagnostic.severity == DiagnosticSeverity.WARNING
        assert registry.get_all(URI) == []

    def test_clear_diagnostics(self, sample_package_json, registry):
        pipeline = pipeline_for(
            PackageJsonParser(), sample_package_json.read_text(), registry
        )
        pipeline.run_diagnostics({"express@4.17.1": [EXPRESS_DATA]})
        pipeline.clear_diagnostics()

        assert pipeline.diagnostics == []
        assert pipeline.vuln_count == {}
        assert registry.get_all(URI) == []

    def test_gradle_context_template(self, registry):
        contents = "dependencies {\n    testImplementation 'junit:junit'\n}\n"
        uri = "file:///work/app/build.gradle"
        pipeline = pipeline_for(GradleParser(), contents, registry, uri)
        data = DependencyData("osv(osv)", 1, "", "junit/junit@4.13.2", "MEDIUM")

        diagnostic = pipeline.run_diagnostics({"junit/junit@4.12": [data]})[0]

        assert diagnostic.range == Range.from_coordinates(1, 24, 1, 35)
        (action,) = registry.get_all(uri)
        assert action.edits[uri][0].new_text == "junit:junit:4.13.2"
        assert action.edits[uri][0].range == diagnostic.range

    def test_maven_managed_version_is_edited_in_place(self, sample_pom_xml, registry):
        uri = "file:///work/app/pom.xml"
        pipeline = pipeline_for(PomXmlParser(), sample_pom_xml.read_text(), registry, uri)
        data = DependencyData("osv(osv)", 1, "", "foo/bar@2.4", "CRITICAL")

        diagnostic = pipeline.run_diagnostics({"foo/bar@2.3": [data]})[0]

        assert diagnostic.range == Range.from_coordinates(14, 17, 14, 20)
        (action,) = registry.get_all(uri)
        assert action.edits[uri][0].new_text == "2.4"

    def test_dockerfile_images(self, registry):
        parser = DockerfileParser()
        contents = "FROM alpine:3.18\nRUN apk add curl\nFROM alpine:3.18 AS final\n"
        uri = "file:///work/app/Dockerfile"
        pipeline = DiagnosticsPipeline(
            parser.build_map(parser.collect(contents)), uri, registry=registry
        )
        data = DependencyData("osv(osv)", 2, "", "", "CRITICAL")

        diagnostics = pipeline.run_diagnostics({"alpine:3.18": [data]})

        assert [d.range for d in diagnostics] == [
            Range.from_coordinates(0, 0, 0, 16),
            Range.from_coordinates(2, 0, 2, 25),
        ]
        assert all(d.severity == DiagnosticSeverity.ERROR for d in diagnostics)
        assert pipeline.vuln_count == {"osv": 4}
        assert registry.get_all(uri) == []


class TestEditTarget:
    def test_anchored_version(self, sample_package_json):
        dependency = PackageJsonParser().collect(sample_package_json.read_text())[0]
        assert edit_target(dependency) == (Range.from_coordinates(3, 16, 3, 22), None)

    def test_context_without_version(self):
        dependency = GradleParser().collect(
            "dependencies {\n    testImplementation 'junit:junit'\n}\n"
        )[0]
        edit_range, template = edit_target(dependency)
        assert edit_range == dependency.context.range
        assert template == "junit:junit:__VERSION__"


class TestCodeActions:
    def test_action_dict(self):
        diagnostic = Vulnerability(
            Range.from_coordinates(1, 2, 1, 5), "a@1", [NODE_DATA], "src"
        ).get_diagnostic()
        action = generate_switch_to_recommended_version_action(
            "Switch to version 2 for osv(osv)", "a@2", "2", diagnostic, "file:///m"
        )

        data = action.to_dict()
        assert data["kind"] == "quickfix"
        assert data["data"] == "a@2"
        assert data["diagnostics"] == [diagnostic.to_dict()]
        assert data["edit"]["changes"]["file:///m"] == [
            {
                "range": {
                    "start": {"line": 1, "character": 2},
                    "end": {"line": 1, "character": 5},
                },
                "newText": "2",
            }
        ]

    def test_registry_is_per_document(self):
        registry = CodeActionRegistry()
        diagnostic = Vulnerability(
            Range.from_coordinates(1, 2, 1, 5), "a@1", [NODE_DATA], "src"
        ).get_diagnostic()
        action = generate_switch_to_recommended_version_action(
            "t", "a@2", "2", diagnostic, "file:///m"
        )
        registry.register("file:///m", "1|2", action)

        assert registry.get_actions("file:///m", [diagnostic]) == [action]
        assert registry.get_actions("file:///other", [diagnostic]) == []

    def test_global_registry(self):
        assert get_code_action_registry() is get_code_action_registry()


@pytest.mark.asyncio
async def test_perform_diagnostics(sample_package_json, analysis_report):
    backend = AsyncMock()
    backend.analyze.return_value = analysis_report
    uri = sample_package_json.as_uri()

    diagnostics, response = await perform_diagnostics(
        uri, sample_package_json.read_text(), PackageJsonParser(), backend
    )

    assert [d.code for d in diagnostics] == ["express@4.17.1", "@types/node@18.0.0"]
    assert response.failed_providers == ["snyk"]
    titles = sorted(a.title for a in get_code_action_registry().get_all(uri))
    assert titles == [
        "Switch to version 18.0.1 for osv(osv)",
        "Switch to version 4.17.3 for osv(osv)",
    ]
