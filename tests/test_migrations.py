"""
Schema migration tests: the Alembic head matches the mapped tables.
"""
from alembic import command
from sqlalchemy import inspect, text

from hvac_pricing.store.db import Base, alembic_config, build_engine, init_db
from hvac_pricing.store import tables  # noqa: F401


def test_init_db_stamps_head_revision(session_factory):
    engine = session_factory.kw['bind']
    with engine.connect() as conn:
        versions = conn.execute(text("SELECT version_num FROM alembic_version")).scalars().all()
    assert versions == ['001_initial']


def test_migrated_schema_covers_every_mapped_table(session_factory):
    inspector = inspect(session_factory.kw['bind'])
    assert set(Base.metadata.tables) <= set(inspector.get_table_names())

    for name, table in Base.metadata.tables.items():
        migrated = {c['name'] for c in inspector.get_columns(name)}
        assert migrated == {c.name for c in table.columns}, name


def test_pending_triple_index_is_partial_and_unique(session_factory):
    indexes = {i['name']: i for i in inspect(session_factory.kw['bind']).get_indexes('inquiry_logs')}
    pending = indexes['uq_inquiry_logs_pending_triple']
    assert pending['unique']
    assert pending['column_names'] == ['user_id', 'device_id', 'project_id']


def test_init_db_is_idempotent(session_factory):
    engine = session_factory.kw['bind']
    init_db(engine)
    with engine.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM alembic_version")).scalar() == 1


def test_downgrade_drops_every_table(settings):
    engine = build_engine(settings)
    init_db(engine)

    config = alembic_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.downgrade(config, "base")

    assert set(inspect(engine).get_table_names()) <= {'alembic_version'}
    engine.dispose()
