from flask import Flask
from flask_migrate import Migrate
from configflow.config import Config
from configflow.database import db, init_db


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Database
    db.init_app(app)
    migrate = Migrate(app, db)
    init_db(app)

    # Flow engine settings (validators, OAuth redirect, dynamic options)
    from configflow.flow_engine import configure_flow_engine
    configure_flow_engine(app)

    return app
