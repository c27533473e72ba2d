# featherweight_functions/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json

import click
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import text



db = SQLAlchemy()
migrate = Migrate()

def init_extensions(app):
    # DB/Migrate
    db.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Create the tables (DEV/MVP). In production use: flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tables created.")

    @app.cli.command("quota-show")
    @click.argument("family")
    @click.argument("user_id")
    def quota_show_cmd(family, user_id):
        """Print the stored quota record of USER_ID for FAMILY (parse, voice, analysis)."""
        from .services.families import get_family

        try:
            fam = get_family(family)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="FAMILY")
        with app.app_context():
            record = db.session.execute(
                db.select(fam.model).filter_by(user_id=user_id)
            ).scalar_one_or_none()
            if record is None:
                print(f"No {fam.name} quota for {user_id}.")
                return
            print(json.dumps(record.to_dict(), indent=2, default=str))

    @app.cli.command("issue-token")
    @click.argument("user_id")
    @click.option("--provider", default="password", help="sign_in_provider claim")
    @click.option("--test-user", is_flag=True, help="mark the token as a test user")
    def issue_token_cmd(user_id, provider, test_user):
        """Issue a development ID token for USER_ID."""
        from .services.tokens import create_id_token

        with app.app_context():
            print(create_id_token(user_id, provider=provider, test_user=test_user))
