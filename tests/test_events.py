"""
Tests for the status event webhook client.
"""

import asyncio

from aiohttp import web

from pipeline.events import EventNotifier


async def _serve_and_send(status):
    received = []

    async def handler(request):
        received.append(await request.json())
        return web.Response(status=status)

    app = web.Application()
    app.router.add_post("/events", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        notifier = EventNotifier(f"http://127.0.0.1:{port}/events", enabled=True, timeout_seconds=5)
        delivered = await notifier.send("job_failed", "job-1", error="boom")
    finally:
        await runner.cleanup()
    return delivered, received


class TestEventNotifier:

    def test_disabled_does_nothing(self):
        assert asyncio.run(EventNotifier("http://127.0.0.1:9/events", enabled=False).send("x", "j")) is False
        assert EventNotifier(None, enabled=True).enabled is False

    def test_posts_payload(self):
        delivered, received = asyncio.run(_serve_and_send(200))
        assert delivered is True
        assert received[0]["type"] == "job_failed"
        assert received[0]["job_id"] == "job-1"
        assert received[0]["error"] == "boom"
        assert "timestamp_utc" in received[0]

    def test_rejected_event(self):
        delivered, received = asyncio.run(_serve_and_send(500))
        assert delivered is False
        assert len(received) == 1

    def test_unreachable_endpoint(self):
        notifier = EventNotifier("http://127.0.0.1:9/events", enabled=True, timeout_seconds=2)
        assert asyncio.run(notifier.send("job_processed", "job-1")) is False
