import asyncio
import unittest

from advisor_chat.commands.router import CommandRouter


class CommandRouterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.calls: list[tuple[str, str | None]] = []

        def no_arg(name: str):
            async def handler() -> None:
                self.calls.append((name, None))

            return handler

        def with_arg(name: str):
            async def handler(argument: str) -> None:
                self.calls.append((name, argument))

            return handler

        self.router = CommandRouter(
            on_help=no_arg("help"),
            on_new=no_arg("new"),
            on_list=no_arg("list"),
            on_select=with_arg("select"),
            on_delete=with_arg("delete"),
            on_rename=with_arg("rename"),
            on_history=no_arg("history"),
            on_voice=no_arg("voice"),
            on_theme=no_arg("theme"),
            on_status=no_arg("status"),
            on_unknown=lambda text: self.calls.append(("unknown", text)),
        )

    def _handle(self, text: str) -> bool:
        return asyncio.run(self.router.try_handle(text))

    def test_plain_text_is_not_a_command(self) -> None:
        self.assertFalse(self._handle("What about ETFs?"))
        self.assertEqual([], self.calls)

    def test_commands_without_arguments(self) -> None:
        for command in ("/help", "/new", "/list", "/history", "/voice", "/theme", "/status"):
            self.assertTrue(self._handle(command))
        self.assertEqual(
            ["help", "new", "list", "history", "voice", "theme", "status"],
            [name for name, _ in self.calls],
        )

    def test_argument_is_passed_through_trimmed(self) -> None:
        self.assertTrue(self._handle("  /rename   Retirement planning  "))
        self.assertTrue(self._handle("/select 2"))
        self.assertTrue(self._handle("/delete"))
        self.assertEqual(
            [("rename", "Retirement planning"), ("select", "2"), ("delete", "")],
            self.calls,
        )

    def test_command_name_is_case_insensitive(self) -> None:
        self.assertTrue(self._handle("/NEW"))
        self.assertEqual([("new", None)], self.calls)

    def test_unknown_command_is_reported(self) -> None:
        self.assertTrue(self._handle("/frobnicate now"))
        self.assertEqual([("unknown", "/frobnicate now")], self.calls)


if __name__ == "__main__":
    unittest.main()
