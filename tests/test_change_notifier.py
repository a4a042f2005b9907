"""Unit tests for the change notifier pub/sub hub."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import threading
import pytest
from lpr_hub.services.change_notifier import ChangeNotifier, SITE_UPDATE, CAMERA_UPDATE, EVENT_UPDATE


class TestChangeNotifier:
    @pytest.mark.asyncio
    async def test_publish_wakes_subscriber(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        assert notifier.publish(EVENT_UPDATE) == 1
        assert await sub.wait(timeout=1) == [EVENT_UPDATE]

    @pytest.mark.asyncio
    async def test_wait_times_out_empty(self):
        sub = ChangeNotifier().subscribe()
        assert await sub.wait(timeout=0.01) == []

    @pytest.mark.asyncio
    async def test_burst_coalesces_in_order(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        for topic in (SITE_UPDATE, EVENT_UPDATE, SITE_UPDATE, CAMERA_UPDATE, EVENT_UPDATE):
            notifier.publish(topic)
        assert await sub.wait(timeout=1) == [SITE_UPDATE, EVENT_UPDATE, CAMERA_UPDATE]
        assert await sub.wait(timeout=0.01) == []

    @pytest.mark.asyncio
    async def test_topic_filter(self):
        notifier = ChangeNotifier()
        sites_only = notifier.subscribe([SITE_UPDATE])
        assert notifier.publish(EVENT_UPDATE) == 0
        notifier.publish(SITE_UPDATE)
        assert await sites_only.wait(timeout=1) == [SITE_UPDATE]

    @pytest.mark.asyncio
    async def test_unknown_topic_rejected(self):
        notifier = ChangeNotifier()
        with pytest.raises(ValueError):
            notifier.publish("vehicle_update")
        with pytest.raises(ValueError):
            notifier.subscribe(["vehicle_update"])

    @pytest.mark.asyncio
    async def test_publish_from_worker_thread(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        worker = threading.Thread(target=notifier.publish, args=(CAMERA_UPDATE,))
        worker.start()
        worker.join()
        assert await sub.wait(timeout=1) == [CAMERA_UPDATE]

    @pytest.mark.asyncio
    async def test_unsubscribed_receives_nothing(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        notifier.publish(EVENT_UPDATE)     # queued on the loop, not yet delivered
        sub.close()
        await asyncio.sleep(0)
        assert notifier.subscriber_count == 0
        assert await sub.wait(timeout=0.01) == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        sub.close()
        sub.close()
        notifier.unsubscribe(sub)
        assert notifier.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_releases_waiter(self):
        notifier = ChangeNotifier()
        sub = notifier.subscribe()
        waiter = asyncio.create_task(sub.wait())
        await asyncio.sleep(0)
        sub.close()
        assert await asyncio.wait_for(waiter, timeout=1) == []

    @pytest.mark.asyncio
    async def test_reset_drops_everyone(self):
        notifier = ChangeNotifier()
        subs = [notifier.subscribe() for _ in range(3)]
        notifier.reset()
        assert notifier.subscriber_count == 0
        assert notifier.publish(SITE_UPDATE) == 0
        assert all(not s.active for s in subs)

    @pytest.mark.asyncio
    async def test_publish_racing_unsubscribe(self):
        notifier = ChangeNotifier()
        subs = [notifier.subscribe() for _ in range(20)]

        def publisher():
            for _ in range(200):
                notifier.publish(EVENT_UPDATE)

        worker = threading.Thread(target=publisher)
        worker.start()
        for sub in subs[::2]:
            sub.close()
            await asyncio.sleep(0)
        worker.join()
        await asyncio.sleep(0.01)

        for sub in subs[::2]:
            assert await sub.wait(timeout=0) == []
        for sub in subs[1::2]:
            assert await sub.wait(timeout=1) == [EVENT_UPDATE]
