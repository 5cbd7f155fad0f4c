"""
Tests for manifest detection and parser dispatch.
"""

from unittest.mock import patch

import pytest

from dep_analytics.config import AnalyticsConfig
from dep_analytics.dependency import Image
from dep_analytics.error_handling import get_error_handler
from dep_analytics.parsers import (
    detect_file_type,
    get_provider,
    get_supported_file_types,
    parse_contents,
    parse_dependency_file,
    read_manifest,
)
from dep_analytics.providers import (
    DockerfileParser,
    GoModParser,
    GradleParser,
    PackageJsonParser,
    PomXmlParser,
    RequirementsTxtParser,
)


class TestFileDetection:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("package.json", "package_json"),
            ("/work/app/pom.xml", "pom_xml"),
            ("go.mod", "go_mod"),
            ("requirements.txt", "requirements"),
            ("dev-requirements.txt", "requirements"),
            ("build.gradle", "gradle_build"),
            ("Dockerfile", "dockerfile"),
            ("Containerfile", "dockerfile"),
            ("api.Dockerfile", "dockerfile"),
            ("Dockerfile.dev", "dockerfile"),
        ],
    )
    def test_supported(self, path, expected):
        assert detect_file_type(path) == expected

    @pytest.mark.parametrize("path", ["Cargo.toml", "package-lock.json", "go.sum"])
    def test_unsupported(self, path):
        with pytest.raises(ValueError, match="Unsupported file type"):
            detect_file_type(path)

    def test_every_supported_name_has_a_provider(self):
        for name in get_supported_file_types():
            assert get_provider(name) is not None


class TestGetProvider:
    @pytest.mark.parametrize(
        "path,provider_class",
        [
            ("package.json", PackageJsonParser),
            ("pom.xml", PomXmlParser),
            ("go.mod", GoModParser),
            ("requirements.txt", RequirementsTxtParser),
            ("build.gradle", GradleParser),
            ("Dockerfile", DockerfileParser),
        ],
    )
    def test_provider_class(self, path, provider_class):
        assert isinstance(get_provider(path), provider_class)

    def test_npm_classes_come_from_config(self):
        config = AnalyticsConfig()
        config.providers.npm_dependency_classes = ["dependencies", "devDependencies"]
        assert get_provider("package.json", config).classes == [
            "dependencies",
            "devDependencies",
        ]


class TestReadManifest:
    def test_reads_text(self, sample_requirements_txt):
        assert read_manifest(str(sample_requirements_txt)).startswith("# runtime")

    def test_missing_file(self, temp_dir):
        with pytest.raises(ValueError, match="File does not exist"):
            read_manifest(str(temp_dir / "package.json"))

    def test_size_limit(self, sample_requirements_txt):
        config = AnalyticsConfig()
        config.security.max_file_size_mb = 0
        with pytest.raises(ValueError, match="File too large"):
            read_manifest(str(sample_requirements_txt), config)

    def test_invalid_utf8(self, temp_dir):
        path = temp_dir / "requirements.txt"
        path.write_bytes(b"requests==\xff\xfe\n")

        with pytest.raises(ValueError, match="invalid UTF-8"):
            read_manifest(str(path))
        assert get_error_handler().get_error_stats() == {"PARSING_WARNING": 1}


class TestParseDependencyFile:
    def test_requirements(self, sample_requirements_txt):
        dependencies = parse_dependency_file(str(sample_requirements_txt))
        assert [d.name.value for d in dependencies] == ["requests", "click"]

    def test_dockerfile_yields_images(self, sample_dockerfile):
        images = parse_dependency_file(str(sample_dockerfile))
        assert all(isinstance(image, Image) for image in images)
        assert [image.name.value for image in images] == ["python:3.11"]

    def test_unsupported_file(self, temp_dir):
        path = temp_dir / "Gemfile"
        path.write_text("gem 'rails'\n")
        with pytest.raises(ValueError):
            parse_dependency_file(str(path))

    def test_go_imports_are_opt_in(self, sample_go_mod):
        with patch("dep_analytics.parsers.list_go_imports") as list_imports:
            dependencies = parse_dependency_file(str(sample_go_mod))

        list_imports.assert_not_called()
        assert len(dependencies) == 2

    def test_go_imports(self, sample_go_mod):
        with patch("dep_analytics.parsers.list_go_imports") as list_imports:
            list_imports.return_value = {"fmt", "golang.org/x/text/language"}
            dependencies = parse_dependency_file(
                str(sample_go_mod), resolve_go_imports=True
            )

        list_imports.assert_called_once_with(str(sample_go_mod), "go")
        assert [d.name.value for d in dependencies][2:] == [
            "golang.org/x/text/language@golang.org/x/text"
        ]

    def test_go_imports_from_config(self, sample_go_mod):
        config = AnalyticsConfig()
        config.providers.resolve_go_imports = True
        config.providers.golang_executable = "/usr/local/go/bin/go"

        with patch("dep_analytics.parsers.list_go_imports") as list_imports:
            list_imports.return_value = set()
            parse_contents(str(sample_go_mod), sample_go_mod.read_text(), config)

        list_imports.assert_called_once_with(str(sample_go_mod), "/usr/local/go/bin/go")
