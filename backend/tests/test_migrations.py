import sqlalchemy as sa
from flask_migrate import downgrade, upgrade

from conftest import TestConfig
from quizroom import create_app, db
from quizroom.services.chat import recent_history, save_message


def test_upgrade_builds_chat_history_schema(tmp_path):
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'chat.db'}"

    application = create_app(FileConfig)
    with application.app_context():
        # The factory leaves schema to migrations
        assert 'chat_message' not in sa.inspect(db.engine).get_table_names()

        upgrade()
        inspector = sa.inspect(db.engine)
        assert 'chat_message' in inspector.get_table_names()
        indexed = {col for ix in inspector.get_indexes('chat_message') for col in ix['column_names']}
        assert {'topic', 'timestamp'} <= indexed

        save_message('general', 'u1', 'Ana', 'hi')
        assert [m.message for m in recent_history('general')] == ['hi']

        db.session.remove()
        downgrade(revision='base')
        assert 'chat_message' not in sa.inspect(db.engine).get_table_names()
        db.engine.dispose()
