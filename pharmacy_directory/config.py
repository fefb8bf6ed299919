"""
Pharmacy Module Configuration
=============================
Supports standalone and integrated modes.
In integrated mode, the parent app injects config via init_pharmacy_module().
"""
import os
from dotenv import load_dotenv

load_dotenv()


class PharmacyConfig:
    """Pharmacy module configuration."""

    # Database configuration
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = os.getenv('DB_PORT', '5432')
    DB_NAME = os.getenv('DB_NAME', 'pharmacy_db')
    DB_USER = os.getenv('DB_USER', 'postgres')
    DB_PASSWORD = os.getenv('DB_PASSWORD', 'postgres')

    # Schema for table isolation (parent app can set to 'pharmacy' or custom)
    DB_SCHEMA = os.getenv('DB_SCHEMA', 'public')

    # 'postgres' or 'memory'
    STORE_BACKEND = os.getenv('STORE_BACKEND', 'postgres')

    # API configuration
    PROXIMITY_RADIUS_M = int(os.getenv('PROXIMITY_RADIUS_M', 1000))
    DEFAULT_PAGE_LIMIT = int(os.getenv('DEFAULT_PAGE_LIMIT', 10))
    SEARCH_RESULT_LIMIT = int(os.getenv('SEARCH_RESULT_LIMIT', 20))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    def get_db_uri(self):
        """Get database connection URI."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def get_db_config(self):
        """Get database configuration as dict."""
        return {
            'host': self.DB_HOST,
            'port': self.DB_PORT,
            'database': self.DB_NAME,
            'user': self.DB_USER,
            'password': self.DB_PASSWORD
        }
