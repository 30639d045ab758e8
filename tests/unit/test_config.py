"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from thelook.config.settings import (
    AnalyticsSettings,
    DataLakeSettings,
    Settings,
    get_settings,
)


class TestSettings:
    """Tests for the settings sections"""

    def test_defaults(self, test_settings):
        """Test analytical thresholds default values"""
        analytics = test_settings.analytics

        assert analytics.order_value_high_threshold == 870.0
        assert analytics.order_value_mid_threshold == 440.0
        assert analytics.churn_threshold_days == 180
        assert analytics.rfm_buckets == 4
        assert test_settings.app_env == "testing"

    def test_env_override(self, monkeypatch):
        """Test section values come from prefixed environment variables"""
        monkeypatch.setenv("ANALYTICS_CHURN_THRESHOLD_DAYS", "90")
        monkeypatch.setenv("DATA_DEFAULT_FORMAT", "PARQUET")

        assert AnalyticsSettings().churn_threshold_days == 90
        assert DataLakeSettings().default_format == "parquet"

    def test_thresholds_order(self):
        """Test mid threshold must stay below high threshold"""
        with pytest.raises(ValidationError):
            AnalyticsSettings(order_value_high_threshold=400, order_value_mid_threshold=400)

    def test_rfm_buckets_bounds(self):
        """Test bucket count validation"""
        with pytest.raises(ValidationError):
            AnalyticsSettings(rfm_buckets=0)

    def test_invalid_environment(self):
        """Test unknown environments are rejected"""
        with pytest.raises(ValidationError):
            Settings(app_env="qa")

    def test_invalid_report_format(self):
        """Test unknown report formats are rejected"""
        with pytest.raises(ValidationError):
            DataLakeSettings(default_format="xlsx")

    def test_cached(self):
        """Test settings are loaded once"""
        assert get_settings() is get_settings()
