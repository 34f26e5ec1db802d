import tempfile
import unittest
from pathlib import Path

from spotguide.catalog import SpotCatalog
from spotguide.models import SessionState, Spot
from spotguide.store import StateStore

from tests.support import RecordingLogger, make_spot


class TestStateStore(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.tmp.name) / "state.db")
        self.logger = RecordingLogger()
        self.store = StateStore(self.db_path, logger=self.logger)

    def tearDown(self) -> None:
        self.store.close()
        self.tmp.cleanup()

    def catalog(self, spots):
        return SpotCatalog(spots, logger=self.logger)

    def test_roundtrip(self) -> None:
        spots = [
            make_spot(1, unlocked=True),
            make_spot(2, north_m=120, radius="35"),
            Spot(id=3, latitude="not a number", longitude="132.3", radius="",
                 name_primary="宮島.mp4", name_secondary="Miyajima",
                 description_primary="", description_secondary="", unlocked=False),
        ]
        catalog = self.catalog(spots)
        session = SessionState(updates_enabled=False, fake_mode=True, language="en")
        self.store.persist(catalog, session)

        restored, restored_session = self.store.restore()
        self.assertEqual(self.catalog(restored), catalog)
        self.assertEqual(restored_session, session)
        # Raw strings survive untouched
        self.assertEqual(restored[2].latitude, "not a number")
        self.assertEqual(restored[1].radius, "35")

    def test_restore_survives_reopen(self) -> None:
        self.store.persist(self.catalog([make_spot(1, unlocked=True)]), SessionState())
        self.store.close()
        self.store = StateStore(self.db_path, logger=self.logger)
        restored, _ = self.store.restore()
        self.assertEqual([(s.id, s.unlocked) for s in restored], [(1, True)])

    def test_persist_replaces_previous_state(self) -> None:
        self.store.persist(self.catalog([make_spot(1), make_spot(2)]))
        self.store.persist(self.catalog([make_spot(5)]))
        restored, _ = self.store.restore()
        self.assertEqual([s.id for s in restored], [5])

    def test_persist_uses_a_snapshot(self) -> None:
        catalog = self.catalog([make_spot(1)])
        self.store.persist(catalog)
        catalog.mark_unlocked(1)
        restored, _ = self.store.restore()
        self.assertFalse(restored[0].unlocked)

    def test_record_missing_radius_is_dropped(self) -> None:
        self.store.persist(self.catalog([make_spot(1), make_spot(2), make_spot(3)]))
        self.store.conn.execute("UPDATE spots SET radius = NULL WHERE id = 2")
        self.store.conn.commit()

        restored, _ = self.store.restore()
        self.assertEqual([s.id for s in restored], [1, 3])
        self.assertEqual(self.logger.messages("ERROR"), [])

    def test_record_missing_id_is_dropped(self) -> None:
        self.store.persist(self.catalog([make_spot(1), make_spot(2)]))
        self.store.conn.execute("UPDATE spots SET id = NULL WHERE id = 1")
        self.store.conn.commit()
        restored, _ = self.store.restore()
        self.assertEqual([s.id for s in restored], [2])

    def test_empty_restore_is_a_warning(self) -> None:
        restored, session = self.store.restore()
        self.assertEqual(restored, [])
        self.assertEqual(session, SessionState())
        self.assertEqual(self.logger.messages("WARNING"), ["No spot records restored"])

    def test_all_records_damaged(self) -> None:
        self.store.persist(self.catalog([make_spot(1)]))
        self.store.conn.execute("UPDATE spots SET unlocked = NULL")
        self.store.conn.commit()
        restored, _ = self.store.restore()
        self.assertEqual(restored, [])
        self.assertIn("No spot records restored", self.logger.messages("WARNING"))

    def test_damaged_session_value_ignored(self) -> None:
        self.store.persist(self.catalog([make_spot(1)]), SessionState(language="en"))
        self.store.conn.execute("UPDATE session SET value = '{broken' WHERE key = 'language'")
        self.store.conn.execute(
            "INSERT INTO session (key, value, updated_at) VALUES ('retired_setting', '1', 'x')")
        self.store.conn.commit()
        _, session = self.store.restore()
        self.assertEqual(session.language, SessionState().language)

    def test_reset_progress(self) -> None:
        self.store.persist(self.catalog([make_spot(1, unlocked=True), make_spot(2, unlocked=True),
                                         make_spot(3)]))
        self.assertEqual(self.store.reset_progress(), 2)
        restored, _ = self.store.restore()
        self.assertFalse(any(s.unlocked for s in restored))


if __name__ == "__main__":
    unittest.main()
