"""
Pharmacy Directory - Flask Blueprint Package
============================================
This module can be used standalone OR integrated into a parent Flask app.

Standalone usage:
    from pharmacy_directory import create_app
    app = create_app()
    app.run()

Integration into a parent app:
    from pharmacy_directory import create_pharmacy_blueprint, init_pharmacy_store, ensure_tables_exist

    ensure_tables_exist(db_config={...}, schema='pharmacy')
    bp = create_pharmacy_blueprint(db_config={...}, schema='pharmacy')
    parent_app.register_blueprint(bp, url_prefix='/pharmacy/api')

    # Optional: supply your own PharmacyStore instead of the configured one
    init_pharmacy_store(parent_app, store=my_store)
"""
import logging

from flask import Flask, current_app
from werkzeug.exceptions import HTTPException

from .config import PharmacyConfig

logger = logging.getLogger(__name__)

STORE_EXTENSION = 'pharmacy_store'

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# ─── Module-level state (set during init) ───
_module_config = None


def get_module_config():
    """Get the current module configuration. Falls back to defaults (standalone mode)."""
    global _module_config
    if _module_config is None:
        _module_config = PharmacyConfig()
    return _module_config


def init_pharmacy_module(config=None, db_config=None, schema='public'):
    """
    Initialize the pharmacy module with external configuration.
    Call this BEFORE registering the blueprint when integrating into a parent app.

    Args:
        config: A PharmacyConfig instance, or None to use defaults.
        db_config: Database connection dict with keys: host, port, database, user, password.
                   If provided, overrides config's DB settings.
        schema: PostgreSQL schema name for pharmacy tables (default: 'public').

    Returns:
        PharmacyConfig: The resolved configuration object.
    """
    global _module_config

    _module_config = config if config is not None else PharmacyConfig()

    if db_config:
        _module_config.DB_HOST = db_config.get('host', _module_config.DB_HOST)
        _module_config.DB_PORT = db_config.get('port', _module_config.DB_PORT)
        _module_config.DB_NAME = db_config.get('database', _module_config.DB_NAME)
        _module_config.DB_USER = db_config.get('user', _module_config.DB_USER)
        _module_config.DB_PASSWORD = db_config.get('password', _module_config.DB_PASSWORD)

    _module_config.DB_SCHEMA = schema

    return _module_config


def build_store(config):
    """Create the PharmacyStore selected by config.STORE_BACKEND."""
    backend = config.STORE_BACKEND.lower()
    if backend == 'memory':
        from .memory_store import InMemoryPharmacyStore
        return InMemoryPharmacyStore()
    if backend == 'postgres':
        from .postgres_store import PostgresPharmacyStore
        return PostgresPharmacyStore()
    raise ValueError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND}")


def init_pharmacy_store(app, store=None):
    """Attach a PharmacyStore to a Flask app (built from module config if None)."""
    if store is None:
        store = build_store(get_module_config())
    app.extensions[STORE_EXTENSION] = store
    logger.info("Pharmacy store: %s", type(store).__name__)
    return store


def get_pharmacy_store():
    """Return the store for the current app, creating the configured one on first use."""
    store = current_app.extensions.get(STORE_EXTENSION)
    if store is None:
        store = init_pharmacy_store(current_app._get_current_object())
    return store


def create_pharmacy_blueprint(db_config=None, schema='public'):
    """
    Create and return the pharmacy Flask Blueprint, ready to register on any Flask app.

    Args:
        db_config: Optional dict with DB connection params (host, port, database, user, password).
        schema: PostgreSQL schema for pharmacy tables (default: 'public').

    Returns:
        flask.Blueprint: The configured pharmacy API blueprint.
    """
    init_pharmacy_module(db_config=db_config, schema=schema)

    from .routes import api_bp
    return api_bp


def ensure_tables_exist(db_config=None, schema='pharmacy'):
    """
    Create the pharmacy table and indexes if they don't exist.
    Safe to call multiple times (uses IF NOT EXISTS).

    Args:
        db_config: Optional dict with DB connection params. Uses module config if not provided.
        schema: PostgreSQL schema name (default: 'pharmacy').
    """
    from .database import get_db_connection

    if db_config:
        init_pharmacy_module(db_config=db_config, schema=schema)

    s = get_module_config().DB_SCHEMA

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute(f"CREATE SCHEMA IF NOT EXISTS {s}")
        cursor.execute("CREATE EXTENSION IF NOT EXISTS postgis")

        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {s}.pharmacies (
                id UUID PRIMARY KEY,
                doc JSONB NOT NULL,
                geom GEOMETRY(Point, 4326) NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)

        # Unique keys; postgres_store.UNIQUE_INDEXES relies on these names
        cursor.execute(f"CREATE UNIQUE INDEX IF NOT EXISTS pharmacies_name_key ON {s}.pharmacies ((doc->>'name'))")
        cursor.execute(f"CREATE UNIQUE INDEX IF NOT EXISTS pharmacies_contact_number_key ON {s}.pharmacies ((doc->>'contactNumber'))")
        cursor.execute(f"CREATE UNIQUE INDEX IF NOT EXISTS pharmacies_email_key ON {s}.pharmacies ((doc->>'email'))")

        cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_pharm_geom ON {s}.pharmacies USING GIST (geom)")
        cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_pharm_doc ON {s}.pharmacies USING GIN (doc jsonb_path_ops)")
        cursor.execute(f"CREATE INDEX IF NOT EXISTS idx_pharm_created ON {s}.pharmacies (created_at)")

        conn.commit()
        cursor.close()

    logger.info("Pharmacy tables ensured in schema '%s'", s)


def configure_logging(level='INFO'):
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_app(config=None, store=None):
    """
    Create a standalone Flask application (for running the module independently).

    Args:
        config: Optional PharmacyConfig instance.
        store: Optional PharmacyStore; defaults to the one selected by config.

    Returns:
        Flask: Configured Flask application.
    """
    app = Flask(__name__)

    resolved_config = init_pharmacy_module(config=config, schema=(config or PharmacyConfig).DB_SCHEMA)
    app.config.from_object(resolved_config)
    configure_logging(resolved_config.LOG_LEVEL)

    init_pharmacy_store(app, store)

    from .routes import api_bp, handle_http_error
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_error_handler(HTTPException, handle_http_error)

    @app.route('/')
    def health():
        return {
            'status': 'ok',
            'service': 'Pharmacy Directory API',
            'version': '1.0.0',
            'mode': 'standalone'
        }

    return app
