import unittest

from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from luckydraw.models import Base, DrawState


class DrawStateModelTests(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_defaults_and_lookup(self):
        with self.Session() as session:
            session.add(DrawState(user_key="KH001"))
            session.commit()

            found = DrawState.get_by_user_key(session, "KH001")
            self.assertIsNotNone(found)
            assert found is not None
            self.assertEqual(found.draw_count, 0)
            self.assertIsNone(found.last_draw_at_ms)
            self.assertIsNone(found.result_payload)
            self.assertIsNotNone(found.updated_at)
            self.assertIsNone(DrawState.get_by_user_key(session, "missing"))

    def test_user_key_is_unique(self):
        with self.Session() as session:
            session.add_all([DrawState(user_key="dup"), DrawState(user_key="dup")])
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_result_payload_round_trip(self):
        payload = {"id": "7", "name": "Giảm 20%", "display_value": 20.0}
        with self.Session() as session:
            state = DrawState(user_key="KH002", last_draw_at_ms=1_792_324_800_000)
            state.result_payload = payload
            session.add(state)
            session.commit()

        with self.Session() as session:
            stored = session.scalar(select(DrawState).where(DrawState.user_key == "KH002"))
            assert stored is not None
            self.assertEqual(stored.result_payload, payload)
            self.assertIn("Giảm", stored.last_result_payload)
            self.assertEqual(stored.last_draw_at_ms, 1_792_324_800_000)

            stored.result_payload = None
            self.assertIsNone(stored.last_result_payload)


if __name__ == "__main__":
    unittest.main()
