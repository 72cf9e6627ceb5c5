import asyncio
import unittest

import httpx

from advisor_chat.reachability import ReachabilityProbe, ReachabilitySignal, probe_url_for


class ReachabilitySignalTests(unittest.TestCase):
    def test_listeners_hear_only_transitions(self) -> None:
        signal = ReachabilitySignal()
        seen: list[bool] = []
        signal.subscribe(seen.append)

        signal.set_online(True)
        signal.set_online(False)
        signal.set_online(False)
        signal.set_online(True)

        self.assertEqual([False, True], seen)
        self.assertTrue(signal.is_online)

    def test_closed_subscription_stops_notifications(self) -> None:
        signal = ReachabilitySignal()
        seen: list[bool] = []
        subscription = signal.subscribe(seen.append)

        subscription.close()
        signal.set_online(False)

        self.assertEqual([], seen)
        self.assertFalse(signal.is_online)


class ReachabilityProbeTests(unittest.TestCase):
    def test_probe_url_is_endpoint_origin(self) -> None:
        self.assertEqual(
            "https://web-production-2fc6.up.railway.app/",
            probe_url_for("https://web-production-2fc6.up.railway.app/chat"),
        )

    def test_any_response_counts_as_online(self) -> None:
        signal = ReachabilitySignal(online=False)

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual("HEAD", request.method)
            return httpx.Response(404)

        probe = ReachabilityProbe(signal, "https://assistant.test/", transport=httpx.MockTransport(handler))

        self.assertTrue(asyncio.run(probe.check_once()))
        self.assertTrue(signal.is_online)

    def test_transport_failure_marks_offline(self) -> None:
        signal = ReachabilitySignal()

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        probe = ReachabilityProbe(signal, "https://assistant.test/", transport=httpx.MockTransport(handler))

        self.assertFalse(asyncio.run(probe.check_once()))
        self.assertFalse(signal.is_online)

    def test_background_probe_runs_until_stopped(self) -> None:
        signal = ReachabilitySignal()
        checks = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal checks
            checks += 1
            raise httpx.ConnectError("unreachable", request=request)

        probe = ReachabilityProbe(
            signal,
            "https://assistant.test/",
            interval_seconds=0.05,
            transport=httpx.MockTransport(handler),
        )

        async def scenario() -> None:
            async with probe:
                self.assertTrue(probe.is_running)
                await asyncio.sleep(0.2)
            self.assertFalse(probe.is_running)

        asyncio.run(scenario())

        self.assertGreaterEqual(checks, 2)
        self.assertFalse(signal.is_online)


if __name__ == "__main__":
    unittest.main()
