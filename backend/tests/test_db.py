from sqlmodel import Session, select

from varnamala.core.db import engine, get_session, init_db
from varnamala.models.card import Card


def test_get_session_yields_session_on_configured_engine():
    init_db()
    sessions = get_session()
    session = next(sessions)
    assert isinstance(session, Session)
    assert session.get_bind() is engine
    assert isinstance(session.exec(select(Card)).all(), list)
    sessions.close()
