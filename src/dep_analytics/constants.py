"""Shared constants."""

VERSION_PLACEHOLDER = "__VERSION__"

DEFAULT_DIAGNOSTIC_SOURCE = "Dependency Analytics"

DEFAULT_NPM_CLASSES = ["dependencies"]

SEVERITY_ORDER = ["NONE", "LOW", "MEDIUM", "HIGH", "CRITICAL"]

GRADLE = "gradle"
MAVEN = "maven"
GOLANG = "golang"
NPM = "npm"
PYPI = "pypi"
DOCKER = "docker"

# Package URL type used by the analysis backend for each ecosystem
ECOSYSTEM_NAME_MAPPINGS = {
    GRADLE: MAVEN,
    MAVEN: MAVEN,
    GOLANG: GOLANG,
    NPM: NPM,
    PYPI: PYPI,
}
