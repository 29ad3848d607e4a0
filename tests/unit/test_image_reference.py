import pytest
from tierstack.MODELS.image_reference import ImageReference


class TestImageReference:
    """Tests for image reference parsing."""

    def test_official_image(self):
        ref = ImageReference.parse("postgres:16-alpine")
        assert ref.registry == "docker.io"
        assert ref.repository == "library/postgres"
        assert ref.name == "postgres"
        assert ref.tag == "16-alpine"
        assert ref.is_pinned

    def test_implied_latest(self):
        ref = ImageReference.parse("nginx")
        assert ref.tag == "latest"
        assert not ref.explicit_tag
        assert not ref.is_pinned
        assert not ImageReference.parse("nginx:latest").is_pinned

    def test_registry_with_port(self):
        ref = ImageReference.parse("localhost:5000/team/api")
        assert ref.registry == "localhost:5000"
        assert ref.repository == "team/api"
        assert ref.name == "api"
        assert not ref.is_pinned

    def test_user_image(self):
        ref = ImageReference.parse("myuser/api:v1")
        assert ref.registry == "docker.io"
        assert ref.repository == "myuser/api"
        assert ref.full_name == "docker.io/myuser/api:v1"

    def test_digest(self):
        ref = ImageReference.parse("gcr.io/project/db@sha256:abc123")
        assert ref.registry == "gcr.io"
        assert ref.digest == "sha256:abc123"
        assert ref.is_pinned
        assert str(ref) == "gcr.io/project/db@sha256:abc123"

    def test_empty(self):
        with pytest.raises(ValueError):
            ImageReference.parse("")
