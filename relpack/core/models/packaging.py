"""
Packaging configuration: loaded from packaging.yml.

Describes *what* is being packaged (name, maintainer, licensing) and
the default source location. Everything here can be overridden from
the CLI; nothing here is version- or platform-dependent (that is the
policy table's job).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class BindingConfig(BaseModel):
    """The optional secondary language-binding package."""

    name: str = ""                      # default: "<product>-python"
    install_dir: str = "usr/share/{name}/python"
    description: str = "Python bindings"


class PackagingConfig(BaseModel):
    """Root configuration: the product being packaged."""

    version: int = 1

    name: str = "mesos"
    description: str = "Cluster resource manager with efficient resource isolation"
    maintainer: str = ""
    vendor: str = ""
    url: str = ""
    license: str = "Apache-2.0"

    repo: str = "https://github.com/apache/mesos.git"
    ref: str | None = None

    binding: BindingConfig = Field(default_factory=BindingConfig)

    @property
    def binding_name(self) -> str:
        return self.binding.name or f"{self.name}-python"

    @property
    def binding_install_dir(self) -> str:
        return self.binding.install_dir.format(name=self.name)
