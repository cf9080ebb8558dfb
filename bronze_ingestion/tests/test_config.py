"""
Unit tests for bronze load configuration.
"""

import importlib
import json
import os
from unittest.mock import MagicMock, patch

import pytest

import bronze_ingestion.config as config_module
from bronze_ingestion.registry import DEFAULT_CATALOG_PATH

VALID_ENV = {
    "DB_HOST": "warehouse.internal",
    "DB_USER": "loader",
    "DB_PASSWORD": "secret",
}


def _reload_config():
    """
    Reload the config module to ensure environment changes are picked up.
    """
    importlib.reload(config_module)
    return config_module.Config


class TestConfig:
    """Test configuration validation, connection details and registry loading."""

    @patch.dict(os.environ, VALID_ENV, clear=True)
    def test_validate_config_success(self):
        """Test successful config validation."""
        Config = _reload_config()
        Config.validate()

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_config_missing_required(self):
        """Test config validation with missing required variables."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        error_msg = str(exc_info.value)
        assert "DB_HOST" in error_msg
        assert "DB_USER" in error_msg
        assert "DB_PASSWORD or DB_SECRET_ARN" in error_msg

    @patch.dict(os.environ, {"DB_HOST": "h", "DB_SECRET_ARN": "arn:secret"}, clear=True)
    def test_validate_accepts_secret_instead_of_credentials(self):
        """Test a secret ARN stands in for user and password."""
        Config = _reload_config()
        Config.validate()

    @patch.dict(os.environ, {**VALID_ENV, "LOAD_BATCH_SIZE": "0"}, clear=True)
    def test_validate_config_invalid_batch_size(self):
        """Test config validation with a non-positive batch size."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        assert "LOAD_BATCH_SIZE must be a positive integer" in str(exc_info.value)

    @patch.dict(os.environ, {**VALID_ENV, "DATASETS_CONFIG_PATH": "/nonexistent/catalog.json"}, clear=True)
    def test_validate_config_missing_catalog(self):
        """Test config validation when the catalog file does not exist."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        assert "Dataset catalog not found" in str(exc_info.value)

    @patch.dict(os.environ, {**VALID_ENV, "DB_PORT": "6543", "DB_NAME": "dwh"}, clear=True)
    def test_get_db_connection_details_from_environment(self):
        """Test connection details built from environment variables."""
        Config = _reload_config()
        details = Config.get_db_connection_details()

        assert details == {
            "host": "warehouse.internal",
            "port": 6543,
            "dbname": "dwh",
            "user": "loader",
            "password": "secret",
            "connect_timeout": 10,
        }

    @patch.dict(os.environ, {"DB_HOST": "h", "DB_SECRET_ARN": "arn:secret"}, clear=True)
    def test_get_db_connection_details_from_secret(self):
        """Test credentials are fetched from Secrets Manager when no password is set."""
        Config = _reload_config()
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {
            "SecretString": json.dumps({"username": "svc", "password": "pw"})
        }

        with patch("boto3.client", return_value=mock_client) as mock_boto:
            details = Config.get_db_connection_details()
            Config.get_db_connection_details()

        assert details["user"] == "svc"
        assert details["password"] == "pw"
        # Secret is cached after the first lookup
        mock_boto.assert_called_once_with("secretsmanager")
        mock_client.get_secret_value.assert_called_once_with(SecretId="arn:secret")

    @patch.dict(os.environ, {"DB_HOST": "h", "DB_SECRET_ARN": "arn:secret"}, clear=True)
    def test_secret_missing_keys(self):
        """Test a secret without username/password is rejected."""
        Config = _reload_config()
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": json.dumps({"username": "svc"})}

        with patch("boto3.client", return_value=mock_client):
            with pytest.raises(ValueError) as exc_info:
                Config.get_db_connection_details()

        assert "password" in str(exc_info.value)

    @patch.dict(os.environ, {"SOURCE_DATA_ROOT": "/data/extracts"}, clear=True)
    def test_build_registry_from_default_catalog(self):
        """Test the packaged catalog yields the six CRM/ERP datasets."""
        Config = _reload_config()
        assert Config.DATASETS_CONFIG_PATH == str(DEFAULT_CATALOG_PATH)

        registry = Config.build_registry()

        assert registry.groups == ["crm", "erp"]
        assert [d.name for d in registry.list("crm")] == [
            "crm_cust_info",
            "crm_prd_info",
            "crm_sales_details",
        ]
        assert [d.name for d in registry.list("erp")] == [
            "erp_cust_az12",
            "erp_loc_a101",
            "erp_px_cat_g1v2",
        ]
        cust_info = registry.get("crm_cust_info")
        assert cust_info.sink == "bronze.crm_cust_info"
        assert cust_info.source == os.path.join("/data/extracts", "source_crm", "cust_info.csv")
        assert cust_info.format.header_rows == 1
