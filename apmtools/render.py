"""Dockerfile template that runs ``go get`` for each external import."""

from __future__ import annotations

from string import Template
from typing import Iterable

DEFAULT_IMAGE = "golang:latest"
DEFAULT_WORKDIR = "/go/src/go.elastic.co/apm"

DOCKERFILE_TEMPLATE = Template(
    "# Code generated by gendockerfile. DO NOT EDIT.\n"
    "FROM ${image}\n"
    "WORKDIR ${workdir}\n"
    "${get_lines}"
    "ADD . ${workdir}\n"
)


def go_get_line(import_path: str) -> str:
    return f"RUN go get -v {import_path}\n"


def render_dockerfile(
    imports: Iterable[str],
    image: str = DEFAULT_IMAGE,
    workdir: str = DEFAULT_WORKDIR,
) -> str:
    """Render the Dockerfile text; ``imports`` are emitted in the given order."""
    return DOCKERFILE_TEMPLATE.substitute(
        image=image,
        workdir=workdir,
        get_lines="".join(go_get_line(path) for path in imports),
    )


__all__ = ["DEFAULT_IMAGE", "DEFAULT_WORKDIR", "DOCKERFILE_TEMPLATE", "go_get_line", "render_dockerfile"]
