# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Image reference parsing.
Parses references like 'nginx:latest' or 'docker.io/library/postgres:16-alpine'.
"""

from typing import Optional
from dataclasses import dataclass


@dataclass
class ImageReference:
    """
    Parsed image reference.

    Examples:
        - nginx -> docker.io/library/nginx:latest (tag implied)
        - nginx:1.25 -> docker.io/library/nginx:1.25
        - myuser/api:v1 -> docker.io/myuser/api:v1
        - localhost:5000/api -> localhost:5000/api:latest (tag implied)
        - gcr.io/project/image@sha256:abc123... -> pinned by digest
    """

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None
    explicit_tag: bool = False

    DEFAULT_REGISTRY = "docker.io"
    DEFAULT_TAG = "latest"

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Parse an image reference string.

        Args:
            reference: Image reference string (e.g., 'nginx:latest', 'myuser/api:v1')

        Returns:
            Parsed ImageReference object.
        """
        if not reference:
            raise ValueError("Empty image reference")

        # Handle digest format (image@sha256:...)
        digest = None
        if "@" in reference:
            reference, digest = reference.rsplit("@", 1)

        # Handle tag format (image:tag)
        tag = None
        if ":" in reference:
            # Check if the colon is for a port (e.g., localhost:5000/image)
            # or for a tag
            last_colon = reference.rfind(":")
            after_colon = reference[last_colon + 1 :]

            # If there's a slash after the colon, it's a port, not a tag
            if "/" not in after_colon:
                tag = after_colon
                reference = reference[:last_colon]

        parts = reference.split("/")

        if len(parts) == 1:
            # Just image name: nginx -> docker.io/library/nginx
            registry = cls.DEFAULT_REGISTRY
            repository = f"library/{parts[0]}"
        elif "." in parts[0] or ":" in parts[0] or parts[0] == "localhost":
            # It's a registry
            registry = parts[0]
            repository = "/".join(parts[1:])
        else:
            # It's a user/image format
            registry = cls.DEFAULT_REGISTRY
            repository = reference

        explicit_tag = tag is not None
        # Use default tag if none specified and no digest
        if not tag and not digest:
            tag = cls.DEFAULT_TAG

        return cls(registry=registry, repository=repository, tag=tag, digest=digest, explicit_tag=explicit_tag)

    @property
    def name(self) -> str:
        """Last path component of the repository, e.g. 'postgres'."""
        return self.repository.rsplit("/", 1)[-1]

    @property
    def is_pinned(self) -> bool:
        """True for a digest or an explicit tag other than 'latest'."""
        if self.digest:
            return True
        return self.explicit_tag and self.tag != self.DEFAULT_TAG

    @property
    def full_name(self) -> str:
        """Get full image name with registry."""
        name = f"{self.registry}/{self.repository}"
        if self.digest:
            return f"{name}@{self.digest}"
        if self.tag:
            return f"{name}:{self.tag}"
        return name

    def __str__(self) -> str:
        return self.full_name
