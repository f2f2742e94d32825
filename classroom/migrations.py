from alembic.config import Config
from alembic import command
import os


def _config():
    cfg = Config(os.path.join(os.path.dirname(__file__), '..', 'alembic.ini'))
    cfg.set_main_option('script_location', os.path.join(os.path.dirname(__file__), '..', 'alembic'))
    # Ensure SQLAlchemy URL uses env DATABASE_URL if set
    if os.getenv('DATABASE_URL'):
        cfg.set_main_option('sqlalchemy.url', os.getenv('DATABASE_URL'))
    return cfg


def upgrade_head():
    # programmatically run `alembic upgrade head`
    command.upgrade(_config(), 'head')


def downgrade_base():
    command.downgrade(_config(), 'base')
