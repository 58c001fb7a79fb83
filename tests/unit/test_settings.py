"""
Unit tests for configuration checks.
"""

from chomp.config.settings import Settings


class TestValidateRequiredFields:

    def test_defaults_are_valid(self, tmp_path):
        settings = Settings(temp_dir=str(tmp_path))
        assert settings.validate_required_fields() == []

    def test_blank_format_filter(self, tmp_path):
        settings = Settings(temp_dir=str(tmp_path), format_filter="  ")
        assert settings.validate_required_fields() == ["FORMAT_FILTER must not be empty"]

    def test_missing_temp_dir(self, tmp_path):
        missing = tmp_path / "missing"
        settings = Settings(temp_dir=str(missing))
        assert settings.validate_required_fields() == [f"TEMP_DIR is not a directory: {missing}"]

    def test_unset_temp_dir_uses_system_temp(self):
        settings = Settings(temp_dir=None)
        assert settings.validate_required_fields() == []
        assert settings.scratch_base_dir
