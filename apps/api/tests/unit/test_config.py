"""
Unit tests for application settings
"""
import pytest
from pydantic import ValidationError

from compliance_api.core.config import Settings
from compliance_api.main import app


class TestSettings:
    """Test cases for Settings"""

    def test_debug_off_by_default(self):
        settings = Settings(_env_file=None)

        assert settings.DEBUG is False
        assert app.debug is False

    def test_environment_flags(self):
        assert Settings(_env_file=None, NODE_ENV="production").is_production is True
        assert Settings(_env_file=None, NODE_ENV="production").is_development is False
        assert Settings(_env_file=None, NODE_ENV="development").is_production is False

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, NODE_ENV="qa")

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, CHUNK_SIZE=0)

    def test_cors_origins_from_comma_separated_string(self):
        settings = Settings(_env_file=None, CORS_ORIGINS="http://a.example, http://b.example")

        assert settings.cors_origins_list == ["http://a.example", "http://b.example"]

    def test_storage_paths(self):
        settings = Settings(_env_file=None, DATA_DIR="/srv/kb", UPLOAD_DIR="/srv/uploads")

        assert str(settings.embeddings_path) == "/srv/kb/embeddings-database.json"
        assert str(settings.item_to_hs_path) == "/srv/kb/item-to-hs-mapping.json"
        assert str(settings.upload_path) == "/srv/uploads"

    def test_docs_served_outside_production(self):
        assert app.docs_url == "/api/docs"
        assert app.redoc_url == "/api/redoc"
