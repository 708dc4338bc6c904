"""
E2E Tests: Concurrent Writes

Simultaneous REST writes are accepted immediately and reach the bridge one at
a time, in arrival order.
"""

import asyncio

import pytest

from conftest import wait_for

SLOW_BRIDGE_DELAY = 0.2


class TestConcurrentWrites:

    @pytest.mark.e2e
    @pytest.mark.asyncio
    async def test_writes_are_accepted_before_the_bridge_answers(self, client, fake_hub):
        fake_hub.delay = SLOW_BRIDGE_DELAY

        responses = await asyncio.gather(
            client.put("/api/lights/1/brightness", json={"brightness": 0.2}),
            client.put("/api/lights/2/brightness", json={"brightness": 0.8}),
        )

        assert [response.status_code for response in responses] == [202, 202]
        assert not any(call.finished for call in fake_hub.calls)

        await wait_for(lambda: len(fake_hub.calls) == 2 and all(c.finished for c in fake_hub.calls), timeout=3.0)

        first, second = fake_hub.calls
        assert fake_hub.max_in_flight == 1
        assert second.started >= first.finished
        assert sorted((call.path, call.body["bri"]) for call in fake_hub.calls) == [
            ("/lights/1/state", 51),
            ("/lights/2/state", 203),
        ]

    @pytest.mark.e2e
    @pytest.mark.asyncio
    async def test_reads_wait_behind_queued_writes(self, client, fake_hub):
        fake_hub.delay = 0.02

        await client.post("/api/all/off")
        await client.post("/api/rooms/1/on")
        response = await client.get("/api/lights")

        assert response.status_code == 200
        assert [(c.method, c.path) for c in fake_hub.calls] == [
            ("PUT", "/groups/0/action"),
            ("PUT", "/groups/1/action"),
            ("GET", "/lights"),
        ]
        assert fake_hub.max_in_flight == 1

    @pytest.mark.e2e
    @pytest.mark.asyncio
    async def test_burst_of_writes_keeps_order(self, client, fake_hub):
        fake_hub.delay = 0.005
        light_ids = ["1", "2", "3", "1", "2", "3", "1", "2"]

        for index, light_id in enumerate(light_ids):
            action = "on" if index % 2 == 0 else "off"
            assert (await client.post(f"/api/lights/{light_id}/{action}")).status_code == 202

        await wait_for(lambda: len(fake_hub.calls) == len(light_ids), timeout=3.0)

        assert [call.path for call in fake_hub.calls] == [f"/lights/{i}/state" for i in light_ids]
        assert [call.body["on"] for call in fake_hub.calls] == [i % 2 == 0 for i in range(len(light_ids))]
        assert fake_hub.max_in_flight == 1
