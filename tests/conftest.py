"""
Shared fixtures for dep-analytics tests.
"""

import pytest

from dep_analytics.code_actions import CodeActionRegistry
from dep_analytics.config import reset_config
from dep_analytics.error_handling import setup_error_handling

SAMPLE_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.acme</groupId>
  <artifactId>app</artifactId>
  <version>1.0.0</version>
  <properties>
    <junit.version>4.13.2</junit.version>
  </properties>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>foo</groupId>
        <artifactId>bar</artifactId>
        <version>2.3</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>foo</groupId>
      <artifactId>bar</artifactId>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>${junit.version}</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>com.google.guava</groupId>
      <artifactId>guava</artifactId>
      <version>31.1-jre</version>
    </dependency>
  </dependencies>
</project>
"""

SAMPLE_GO_MOD = """module github.com/acme/app

go 1.21.0

require (
\tgithub.com/gorilla/mux v1.8.0
\tgolang.org/x/text v0.3.7 // indirect
)

replace golang.org/x/text => golang.org/x/text v0.3.8
"""


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Isolate every test from user configuration and global handlers."""
    for name in [
        "DEP_ANALYTICS_BACKEND_URL",
        "DEP_ANALYTICS_API_TOKEN",
        "DEP_ANALYTICS_SNYK_TOKEN",
        "DEP_ANALYTICS_NPM_CLASSES",
        "DEP_ANALYTICS_RESOLVE_GO_IMPORTS",
        "DEP_ANALYTICS_ERROR_SEVERITY",
        "DEP_ANALYTICS_MAX_FILE_SIZE_MB",
        "GOLANG_EXECUTABLE",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("dep_analytics.config.find_config_file", lambda: None)
    reset_config()
    setup_error_handling()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory for manifest files."""
    return tmp_path


@pytest.fixture
def registry():
    return CodeActionRegistry()


@pytest.fixture
def sample_package_json(temp_dir):
    path = temp_dir / "package.json"
    path.write_text(
        '{\n'
        '  "name": "app",\n'
        '  "dependencies": {\n'
        '    "express": "4.17.1",\n'
        '    "@types/node": "18.0.0"\n'
        '  },\n'
        '  "devDependencies": {\n'
        '    "jest": "29.0.0"\n'
        '  }\n'
        '}\n',
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sample_requirements_txt(temp_dir):
    path = temp_dir / "requirements.txt"
    path.write_text(
        "# runtime\nrequests==2.28.1\nClick>=8.0\n\nrich # unpinned\n", encoding="utf-8"
    )
    return path


@pytest.fixture
def sample_pom_xml(temp_dir):
    path = temp_dir / "pom.xml"
    path.write_text(SAMPLE_POM, encoding="utf-8")
    return path


@pytest.fixture
def sample_go_mod(temp_dir):
    path = temp_dir / "go.mod"
    path.write_text(SAMPLE_GO_MOD, encoding="utf-8")
    return path


@pytest.fixture
def sample_dockerfile(temp_dir):
    path = temp_dir / "Dockerfile"
    path.write_text(
        "ARG BASE=python:3.11\n"
        "FROM --platform=linux/amd64 $BASE AS build\n"
        "RUN pip install .\n"
        "FROM scratch\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def analysis_report():
    """Backend report for the sample package.json with one failed provider."""
    return {
        "providers": {
            "osv": {
                "status": {"ok": True, "message": "OK"},
                "sources": {
                    "osv": {
                        "dependencies": [
                            {
                                "ref": "pkg:npm/express@4.17.1",
                                "issues": [
                                    {
                                        "id": "CVE-2022-24999",
                                        "remediation": {
                                            "trustedContent": {
                                                "ref": "pkg:npm/express@4.17.3?repository_url=x"
                                            }
                                        },
                                    }
                                ],
                                "highestVulnerability": {"severity": "HIGH"},
                            },
                            {
                                "ref": "pkg:npm/%40types/node@18.0.0",
                                "issues": [],
                                "recommendation": "pkg:npm/%40types/node@18.0.1",
                            },
                            {"issues": []},
                        ]
                    }
                },
            },
            "snyk": {"status": {"ok": False, "message": "Unauthorized"}},
        }
    }
