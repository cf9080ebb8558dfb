"""
Configuration module for the bronze load.

Reads environment variables and provides configuration values for the
dataset catalog, source locations, and the warehouse database connection.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from bronze_ingestion.registry import DEFAULT_CATALOG_PATH, DatasetRegistry

# Local development: pick up a .env in the project root without overriding the shell
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=False)


class Config:
    """
    Configuration class that reads environment variables for the bronze load.
    """

    # Dataset catalog
    DATASETS_CONFIG_PATH: str = os.getenv("DATASETS_CONFIG_PATH", str(DEFAULT_CATALOG_PATH))
    SOURCE_DATA_ROOT: str = os.getenv("SOURCE_DATA_ROOT", "datasets")
    BRONZE_SCHEMA: str = os.getenv("BRONZE_SCHEMA", "bronze")

    # Warehouse database
    DB_HOST: str = os.getenv("DB_HOST", "")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    DB_NAME: str = os.getenv("DB_NAME", "datawarehouse")
    DB_USER: str = os.getenv("DB_USER", "")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_SECRET_ARN: str = os.getenv("DB_SECRET_ARN", "")
    DB_CONNECT_TIMEOUT: str = os.getenv("DB_CONNECT_TIMEOUT", "10")
    DB_STATEMENT_TIMEOUT: str = os.getenv("DB_STATEMENT_TIMEOUT", "600s")

    # Records per COPY batch
    LOAD_BATCH_SIZE: str = os.getenv("LOAD_BATCH_SIZE", "10000")

    # Lazy-loaded secret cache
    _db_secret_cache: Dict[str, Any] = {}

    @classmethod
    def get_batch_size(cls) -> int:
        return int(cls.LOAD_BATCH_SIZE)

    @classmethod
    def _load_db_secret(cls) -> Dict[str, Any]:
        """
        Retrieve and cache the database secret from AWS Secrets Manager.

        Returns:
            Dict containing the secret payload.
        """
        if not cls._db_secret_cache:
            if not cls.DB_SECRET_ARN:
                raise ValueError("DB_SECRET_ARN environment variable is required")

            import boto3

            secrets_client = boto3.client("secretsmanager")
            try:
                response = secrets_client.get_secret_value(SecretId=cls.DB_SECRET_ARN)
                cls._db_secret_cache = json.loads(response["SecretString"])
            except Exception as e:
                raise ValueError(
                    f"Failed to retrieve database secret from Secrets Manager: {e}"
                )
        return cls._db_secret_cache

    @classmethod
    def get_db_connection_details(cls) -> Dict[str, Any]:
        """
        Provide psycopg2 connection keyword arguments.

        User and password come from the environment; when no password is set,
        they are read from the Secrets Manager secret instead.

        Returns:
            Dict containing host, port, dbname, user, password and connect_timeout.
        """
        user = cls.DB_USER
        password = cls.DB_PASSWORD
        if not password and cls.DB_SECRET_ARN:
            secret = cls._load_db_secret()
            missing_keys = [key for key in ("username", "password") if key not in secret]
            if missing_keys:
                raise ValueError(
                    f"Database secret missing required keys: {', '.join(missing_keys)}"
                )
            user = secret["username"]
            password = secret["password"]

        return {
            "host": cls.DB_HOST,
            "port": int(cls.DB_PORT),
            "dbname": cls.DB_NAME,
            "user": user,
            "password": password,
            "connect_timeout": int(cls.DB_CONNECT_TIMEOUT),
        }

    @classmethod
    def validate(cls) -> None:
        """
        Validate that required configuration values are present.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        required_vars = [
            ("DB_HOST", cls.DB_HOST),
            ("DB_USER", cls.DB_USER or cls.DB_SECRET_ARN),
            ("DB_PASSWORD or DB_SECRET_ARN", cls.DB_PASSWORD or cls.DB_SECRET_ARN),
        ]

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        if not cls.LOAD_BATCH_SIZE.isdigit() or int(cls.LOAD_BATCH_SIZE) <= 0:
            raise ValueError("LOAD_BATCH_SIZE must be a positive integer")

        if not Path(cls.DATASETS_CONFIG_PATH).is_file():
            raise ValueError(f"Dataset catalog not found: {cls.DATASETS_CONFIG_PATH}")

    @classmethod
    def build_registry(cls) -> DatasetRegistry:
        """
        Build the dataset registry from the configured catalog.

        Returns:
            DatasetRegistry: Catalog with source locators resolved against
            SOURCE_DATA_ROOT and sinks qualified with BRONZE_SCHEMA
        """
        return DatasetRegistry.from_file(
            Path(cls.DATASETS_CONFIG_PATH),
            source_root=cls.SOURCE_DATA_ROOT,
            default_schema=cls.BRONZE_SCHEMA,
        )
