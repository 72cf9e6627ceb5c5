import asyncio
import unittest

from advisor_chat.memory import Message
from advisor_chat.streaming import CancellationToken, ResponseStreamer


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ResponseStreamerTests(unittest.TestCase):
    def _collect(self, streamer: ResponseStreamer, text: str, token: CancellationToken | None = None) -> list[str]:
        async def scenario() -> list[str]:
            return [prefix async for prefix in streamer.reveal(text, cancel_token=token)]

        return asyncio.run(scenario())

    def test_reveals_growing_word_prefixes(self) -> None:
        sleep = _RecordingSleep()
        streamer = ResponseStreamer(sleep=sleep)

        prefixes = self._collect(streamer, "Bonds are generally lower risk.")

        self.assertEqual(
            ["Bonds", "Bonds are", "Bonds are generally", "Bonds are generally lower", "Bonds are generally lower risk."],
            prefixes,
        )
        self.assertEqual([0.05] * 5, sleep.delays)

    def test_consecutive_spaces_produce_empty_tokens(self) -> None:
        streamer = ResponseStreamer(sleep=_RecordingSleep())

        prefixes = self._collect(streamer, "a  b")

        self.assertEqual(["a", "a ", "a  b"], prefixes)

    def test_stream_replaces_target_content_and_reports_each_step(self) -> None:
        streamer = ResponseStreamer(sleep=_RecordingSleep())
        target = Message.assistant()
        seen: list[str] = []

        asyncio.run(streamer.stream("Buy   low sell high", target, on_reveal=seen.append))

        self.assertEqual(seen[-1], target.content)
        self.assertEqual(6, len(seen))
        self.assertTrue(all(seen[i + 1].startswith(seen[i]) for i in range(len(seen) - 1)))

    def test_cancellation_stops_further_reveals(self) -> None:
        token = CancellationToken()
        sleep_calls = 0

        async def cancelling_sleep(_: float) -> None:
            nonlocal sleep_calls
            sleep_calls += 1
            if sleep_calls == 3:
                token.cancel()

        streamer = ResponseStreamer(sleep=cancelling_sleep)

        prefixes = self._collect(streamer, "one two three four", token)

        self.assertEqual(["one", "two"], [p.split(" ")[-1] for p in prefixes])

    def test_empty_text_reveals_single_empty_step(self) -> None:
        streamer = ResponseStreamer(sleep=_RecordingSleep())
        self.assertEqual([""], self._collect(streamer, ""))

    def test_real_delay_is_awaited(self) -> None:
        streamer = ResponseStreamer(delay_seconds=0.01)
        target = Message.assistant()

        async def scenario() -> float:
            loop = asyncio.get_running_loop()
            started = loop.time()
            await streamer.stream("w1 w2 w3", target)
            return loop.time() - started

        elapsed = asyncio.run(scenario())
        self.assertGreaterEqual(elapsed, 0.025)
        self.assertEqual("w1 w2 w3", target.content)


if __name__ == "__main__":
    unittest.main()
