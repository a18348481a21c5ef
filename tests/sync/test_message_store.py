import unittest

from agent_desk.models import Role
from agent_desk.sync.message_store import MessageStore, StoreState
from tests.fakes import make_message


class MessageStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = MessageStore()
        self.changes: list[str] = []
        self.store.add_listener(lambda kind, message: self.changes.append(kind))

    def test_starts_empty_and_unbound(self) -> None:
        self.assertEqual(StoreState.EMPTY, self.store.state)
        self.assertIsNone(self.store.session_id)
        self.assertEqual((), self.store.messages)

    def test_replace_loads_history_in_order(self) -> None:
        history = [make_message("s1", "one", Role.USER), make_message("s1", "two")]
        self.store.begin_loading("s1")
        self.assertEqual(StoreState.LOADING, self.store.state)

        self.store.replace("s1", history)

        self.assertEqual(StoreState.POPULATED, self.store.state)
        self.assertEqual(["one", "two"], [m.content for m in self.store.messages])

    def test_replace_discards_previous_session(self) -> None:
        self.store.replace("s1", [make_message("s1", "old")])
        self.store.begin_loading("s2")
        self.store.replace("s2", [make_message("s2", "new")])
        self.assertEqual(["new"], [m.content for m in self.store.messages])
        self.assertEqual("s2", self.store.session_id)

    def test_append_adds_to_end_without_dedup(self) -> None:
        self.store.replace("s1", [])
        first = make_message("s1", "same")
        second = make_message("s1", "same")
        self.assertTrue(self.store.append(first))
        self.assertTrue(self.store.append(second))
        self.assertEqual(2, len(self.store))

    def test_append_during_loading_lands_after_history(self) -> None:
        self.store.begin_loading("s1")
        self.store.append(make_message("s1", "live"))
        self.store.replace("s1", [make_message("s1", "h1"), make_message("s1", "h2")])
        self.assertEqual(["h1", "h2", "live"], [m.content for m in self.store.messages])

    def test_append_for_other_session_is_refused(self) -> None:
        self.store.replace("s1", [])
        self.assertFalse(self.store.append(make_message("s2", "stray")))
        self.assertEqual(0, len(self.store))

    def test_append_when_unbound_is_refused(self) -> None:
        self.assertFalse(self.store.append(make_message("s1", "nobody home")))
        self.assertEqual(StoreState.EMPTY, self.store.state)

    def test_remove_by_identity_ignores_equal_copies(self) -> None:
        self.store.replace("s1", [])
        optimistic = make_message("s1", "hello", Role.USER)
        echo = make_message("s1", "hello", Role.USER)
        self.assertEqual(optimistic, echo)
        self.store.append(echo)
        self.store.append(optimistic)

        self.assertTrue(self.store.remove_by_identity(optimistic))

        self.assertEqual(1, len(self.store))
        self.assertIs(echo, self.store.messages[0])
        self.assertFalse(self.store.remove_by_identity(optimistic))

    def test_remove_by_identity_reaches_held_messages(self) -> None:
        self.store.begin_loading("s1")
        optimistic = make_message("s1", "early", Role.USER)
        self.store.append(optimistic)
        self.assertTrue(self.store.remove_by_identity(optimistic))
        self.store.replace("s1", [])
        self.assertEqual((), self.store.messages)

    def test_fail_loading_returns_to_empty_but_keeps_binding(self) -> None:
        self.store.begin_loading("s1")
        self.store.append(make_message("s1", "held"))
        self.store.fail_loading("s1")
        self.assertEqual(StoreState.EMPTY, self.store.state)
        self.assertEqual((), self.store.messages)
        self.assertEqual("s1", self.store.session_id)

    def test_fail_loading_for_stale_session_is_ignored(self) -> None:
        self.store.begin_loading("s2")
        self.store.fail_loading("s1")
        self.assertEqual(StoreState.LOADING, self.store.state)

    def test_clear_empties_and_unbinds(self) -> None:
        self.store.replace("s1", [make_message("s1", "x")])
        self.store.clear()
        self.assertEqual(StoreState.EMPTY, self.store.state)
        self.assertIsNone(self.store.session_id)
        self.assertEqual(0, len(self.store))

    def test_listeners_see_each_mutation(self) -> None:
        self.store.begin_loading("s1")
        self.store.replace("s1", [])
        message = make_message("s1", "x")
        self.store.append(message)
        self.store.remove_by_identity(message)
        self.store.clear()
        self.assertEqual(["reset", "replace", "append", "remove", "reset"], self.changes)


if __name__ == "__main__":
    unittest.main()
