# Overview: Flask extension instances for database, migrations and deferred bookkeeping.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .deferred import DeferredTaskRunner

db = SQLAlchemy()
migrate = Migrate()
deferred = DeferredTaskRunner()
