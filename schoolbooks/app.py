import logging
import os

import click
import redis
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from schoolbooks.config import Config
from schoolbooks.db import db
from schoolbooks.errors import ConflictError
from schoolbooks.routes import register_blueprints
from schoolbooks.services.pwned_service import PwnedPasswordService
from schoolbooks.utils.broadcast import LogBroadcaster, RedisBroadcaster
from schoolbooks.utils.cache import DatabaseCache, RedisCache
from schoolbooks.utils.http_client import HttpClient
from schoolbooks.utils.text_message import TextMessage


def _init_extensions(app: Flask):
    cfg = app.config
    timeout = cfg["HTTP_TIMEOUT"]

    # one client per external service
    app.extensions["http_client"] = HttpClient(timeout=timeout)
    app.extensions["text_message"] = TextMessage(
        HttpClient(timeout=timeout), cfg["SMS_BASE_URL"], cfg["SMS_API_KEY"]
    )
    app.extensions["pwned"] = PwnedPasswordService(
        HttpClient(timeout=timeout), cfg["PWNED_BASE_URL"]
    )

    if cfg.get("REDIS_URL"):
        r = redis.Redis.from_url(cfg["REDIS_URL"])
        app.extensions["broadcaster"] = RedisBroadcaster(r)
        app.extensions["cache"] = RedisCache(r)
    else:
        app.extensions["broadcaster"] = LogBroadcaster()
        app.extensions["cache"] = DatabaseCache()


def _register_error_handlers(app: Flask):
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(ConflictError)
    def conflict(e):
        return jsonify({"error": "The record was modified by another request, retry."}), 409


def _register_commands(app: Flask):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo(f"[init_db] SQLALCHEMY_DATABASE_URI = {app.config['SQLALCHEMY_DATABASE_URI']}")

    @app.cli.command("seed")
    def seed():
        """Insert tiers, book states, categories and cities."""
        from schoolbooks.services.seed import seed_all

        db.create_all()
        counts = seed_all()
        click.echo(", ".join(f"{k}: +{v}" for k, v in counts.items()))

    @app.cli.command("refresh-tlds")
    def refresh_tlds_cmd():
        """Refresh the cached TLD list (run weekly from cron)."""
        from schoolbooks.services.tld_service import refresh_tlds

        tlds = refresh_tlds()
        if tlds is None:
            click.echo("Failed to update TLD array.", err=True)
            raise SystemExit(1)
        click.echo("TLD array updated successfully.")


def create_app(config_overrides: dict | None = None) -> Flask:
    logging.basicConfig(level=logging.INFO)

    app = Flask(__name__)
    app.config.from_object(Config)
    app.json.ensure_ascii = False
    if config_overrides:
        app.config.update(config_overrides)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    _init_extensions(app)
    register_blueprints(app)
    _register_error_handlers(app)
    _register_commands(app)

    @app.get("/")
    def index():
        return {"service": "schoolbooks", "status": "ok"}

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True)
