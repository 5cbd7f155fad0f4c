"""
dep-analytics: manifest dependency extraction with exact source positions.

Parses package.json, pom.xml, go.mod, requirements.txt, build.gradle and
Dockerfile manifests into positioned dependency records that vulnerability
diagnostics can be anchored on.
"""

__version__ = "1.0.0"
