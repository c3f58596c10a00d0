# demo_dashboard/app.py
import logging

from flask import Flask
from flask_cors import CORS

from .config import Config
from .services.cache import Cache
from .services.dropbox import DropboxClient
from .services.email import GmailMailer
from .services.identity import IdentityClient
from .utils.extensions import init_clients

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

# Import blueprints
from .routes.artists import artists_bp
from .routes.auth import auth_bp
from .routes.cron import cron_bp
from .routes.demos import demos_bp
from .routes.events import events_bp
from .routes.settings import settings_bp


def create_app(config=None, dropbox=None, cache=None, mailer=None, identity=None):
    """Build the dashboard API.

    Clients not passed in are built from ``config``; tests pass fakes.
    """
    config = config or Config()

    app = Flask(__name__)
    app.config.from_object(config)

    # Setup CORS
    CORS(app, origins=config.CORS_ORIGINS.split(","), supports_credentials=True)

    if cache is None:
        cache = Cache.from_url(config.REDIS_URL)
    init_clients(
        app,
        cache=cache,
        dropbox=dropbox or DropboxClient.from_config(config, cache),
        mailer=mailer or GmailMailer.from_config(config),
        identity=identity or IdentityClient(config.IDENTITY_USERINFO_URL, cache),
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(artists_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(demos_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(cron_bp)

    logger.info("Demo dashboard started")
    return app
