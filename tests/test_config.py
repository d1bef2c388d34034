"""
test_config.py — Settings validation.

Run:
    pytest tests/test_config.py -v
"""

import pytest
from pydantic import ValidationError

from vidguard.core.config import Settings
from vidguard.models.detection import DetectionResult


class TestSettings:

    def test_defaults(self):
        s = Settings()
        assert s.deepfake_probability == 0.4
        assert s.max_sessions >= 1

    @pytest.mark.parametrize("p", [-0.1, 1.5])
    def test_probability_outside_unit_interval_is_refused(self, p):
        with pytest.raises(ValidationError):
            Settings(deepfake_probability=p)

    @pytest.mark.parametrize("p", [0.0, 1.0])
    def test_probability_bounds_are_allowed(self, p):
        assert Settings(deepfake_probability=p).deepfake_probability == p

    def test_probability_read_from_env(self, monkeypatch):
        monkeypatch.setenv("DEEPFAKE_PROBABILITY", "2")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_max_sessions_is_refused(self):
        with pytest.raises(ValidationError):
            Settings(max_sessions=0)


class TestModelFieldNames:
    """model_label / model_used must not trip pydantic's protected namespace."""

    def test_settings_namespace_is_open(self):
        assert Settings.model_config["protected_namespaces"] == ()

    def test_result_namespace_is_open(self):
        assert DetectionResult.model_config["protected_namespaces"] == ()

