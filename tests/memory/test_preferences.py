import unittest

from advisor_chat.memory import Preferences
from advisor_chat.memory.preferences import DARK_MODE_KEY
from tests.memory.base import MemoryStoreTestCase


class PreferencesTests(MemoryStoreTestCase):
    def test_dark_mode_defaults_to_off(self) -> None:
        self.assertFalse(Preferences(self._kv).dark_mode)

    def test_toggle_persists_boolean_as_string(self) -> None:
        prefs = Preferences(self._kv)
        self.assertTrue(prefs.toggle_dark_mode())
        self.assertEqual("true", self._kv.get(DARK_MODE_KEY))
        self.assertFalse(prefs.toggle_dark_mode())
        self.assertEqual("false", self._kv.get(DARK_MODE_KEY))

    def test_unexpected_stored_value_reads_as_off(self) -> None:
        self._kv.set(DARK_MODE_KEY, "yes please")
        self.assertFalse(Preferences(self._kv).dark_mode)


if __name__ == "__main__":
    unittest.main()
