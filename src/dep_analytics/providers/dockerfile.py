"""Dockerfile base image parser."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import parse_qs, unquote

from ..constants import DOCKER
from ..dependency import Image, ImageMap
from ..position import Position, PositionedString

FROM_REGEX = re.compile(r"^\s*FROM\s+(.*)", re.IGNORECASE)
ARG_REGEX = re.compile(r"^\s*ARG\s+(.*)", re.IGNORECASE)
PLATFORM_REGEX = re.compile(r"--platform=(\S*)")
AS_REGEX = re.compile(r"\s+AS\s+\S+", re.IGNORECASE)
ARG_REFERENCE_REGEX = re.compile(r"\$\{([^{}]+)\}|\$(\w+)")

SCRATCH = "scratch"
OCI_PURL_PREFIX = "pkg:oci/"
DEFAULT_REGISTRY_PREFIXES = ("docker.io/library/", "docker.io/")


@dataclass
class _DockerfileContext:
    args: Dict[str, str] = field(default_factory=dict)

    def substitute(self, text: str) -> str:
        return ARG_REFERENCE_REGEX.sub(
            lambda match: self.args.get(match.group(1) or match.group(2), ""), text
        )


class DockerfileParser:
    """Collects the images named by ``FROM`` instructions."""

    ecosystem = DOCKER
    manifest_names = ["Dockerfile", "Containerfile"]

    def collect(self, contents: str) -> List[Image]:
        context = _DockerfileContext()
        images = []
        for index, line in enumerate(contents.split("\n")):
            image = self.parse_line(line, index + 1, context)
            if image is not None:
                images.append(image)
        return images

    async def collect_async(self, contents: str) -> List[Image]:
        return self.collect(contents)

    def build_map(self, images: List[Image]) -> ImageMap:
        return ImageMap(images)

    def resolve_dependency_from_reference(self, ref: str) -> str:
        """
        Map an ``oci`` package URL onto the image reference written in ``FROM``.

        ``pkg:oci/alpine@sha256%3A...?repository_url=docker.io/library/alpine&tag=3.18``
        becomes ``alpine:3.18``. Other references are returned unchanged.
        """
        if not ref.startswith(OCI_PURL_PREFIX):
            return ref

        path, _, query = ref[len(OCI_PURL_PREFIX) :].partition("?")
        qualifiers = parse_qs(query.split("#", 1)[0])
        name = unquote(path.split("@", 1)[0])
        repository = qualifiers.get("repository_url", [name])[0]
        for registry_prefix in DEFAULT_REGISTRY_PREFIXES:
            if repository.startswith(registry_prefix):
                repository = repository[len(registry_prefix) :]
                break

        tag = qualifiers.get("tag", [None])[0]
        return f"{repository}:{tag}" if tag else repository

    @staticmethod
    def parse_line(line: str, line_number: int, context: _DockerfileContext) -> Optional[Image]:
        arg_match = ARG_REGEX.match(line)
        if arg_match:
            key, _, value = arg_match.group(1).strip().partition("=")
            context.args[key.strip()] = value.strip().strip("\"'")
            return None

        from_match = FROM_REGEX.match(line)
        if not from_match:
            return None

        # The flag is removed before substitution; an ARG may expand to nothing.
        instruction = from_match.group(1)
        reference = context.substitute(PLATFORM_REGEX.sub("", instruction))
        reference = AS_REGEX.sub("", reference).strip()
        if not reference or reference == SCRATCH:
            return None

        platform_match = PLATFORM_REGEX.search(instruction)
        platform = None
        if platform_match:
            platform = context.substitute(platform_match.group(1)) or None

        return Image(
            name=PositionedString(reference, Position(line_number, 0)),
            line=line,
            platform=platform,
        )
