"""Tests for the progress counter: clamping, resume position, advancing."""

import pytest

from rankstudy.models.video import VideoOrder
from rankstudy.services import progress


def _playlist(n):
    return [VideoOrder(participant_id=1, video_id=100 + i, order=i) for i in range(1, n + 1)]


class TestClamp:
    """current_index never leaves [0, N]."""

    @pytest.mark.parametrize(
        "stored, expected",
        [(-5, 0), (0, 0), (None, 0), (1, 0), (2, 1), (4, 3), (5, 4), (999, 4)],
    )
    def test_clamped(self, stored, expected):
        assert progress.current_index(stored, 4) == expected

    def test_completion_bound(self):
        assert not progress.is_completed(4, 4)
        assert progress.is_completed(5, 4)
        assert progress.is_completed(999, 4)


class TestResume:
    """What a reload shows."""

    def test_just_verified_watches_first_video(self):
        view = progress.resume(1, _playlist(3))
        assert view.status == "watching"
        assert view.current_video_index == 0
        assert [o.video_id for o in view.ranking_pool] == [101]

    def test_mid_way_pool_includes_current(self):
        view = progress.resume(3, _playlist(4))
        assert view.current_video_index == 2
        assert [o.video_id for o in view.ranking_pool] == [101, 102, 103]

    def test_corrupt_negative_counter(self):
        view = progress.resume(-5, _playlist(3))
        assert view.status == "watching"
        assert view.current_video_index == 0

    def test_completed(self):
        view = progress.resume(4, _playlist(3))
        assert view.status == "completed"
        assert view.current_video_index is None
        assert len(view.ranking_pool) == 3


class TestAdvanceEndpoint:
    """POST /experiment {action: increment_progress}."""

    async def _setup(self, client, make_code, make_video, start_participant, n=3, **code_fields):
        await make_code(**code_fields)
        for _ in range(n):
            await make_video()
        await start_participant()
        return (await client.get("/experiment")).json()

    async def test_advance_moves_to_next_video(self, client, make_code, make_video, start_participant):
        data = await self._setup(client, make_code, make_video, start_participant)
        assert data["current_video_index"] == 0

        r = await client.post("/experiment", json={"action": "increment_progress"})
        assert r.status_code == 200
        assert r.json() == {"success": True, "progress_counter": 2}

        data = (await client.get("/experiment")).json()
        assert data["current_video_index"] == 1
        assert data["ranking_pool"] == [v["id"] for v in data["videos"][:2]]

    async def test_duplicate_advance_without_guard_double_counts(
        self, client, make_code, make_video, start_participant, fetch_participant
    ):
        await self._setup(client, make_code, make_video, start_participant)
        await client.post("/experiment", json={"action": "increment_progress"})
        await client.post("/experiment", json={"action": "increment_progress"})
        assert (await fetch_participant("123456")).progress_counter == 3

    async def test_stale_expected_counter_rejected(
        self, client, make_code, make_video, start_participant, fetch_participant
    ):
        await self._setup(client, make_code, make_video, start_participant)
        body = {"action": "increment_progress", "expected_counter": 1}

        assert (await client.post("/experiment", json=body)).status_code == 200
        r = await client.post("/experiment", json=body)
        assert r.status_code == 409
        assert (await fetch_participant("123456")).progress_counter == 2

    async def test_advance_stops_at_completion(
        self, client, make_code, make_video, start_participant, fetch_participant
    ):
        await self._setup(client, make_code, make_video, start_participant, n=2)
        for _ in range(5):
            r = await client.post("/experiment", json={"action": "increment_progress"})
            assert r.status_code == 200

        assert (await fetch_participant("123456")).progress_counter == 3
        data = (await client.get("/experiment")).json()
        assert data["status"] == "completed"
        assert data["current_video_index"] is None
        assert len(data["ranking_pool"]) == 2

    async def test_unknown_action_400(self, client, make_code, make_video, start_participant):
        await self._setup(client, make_code, make_video, start_participant)
        r = await client.post("/experiment", json={"action": "rewind"})
        assert r.status_code == 400

    async def test_no_playlist_yet_404(self, client, make_code, start_participant):
        await make_code()
        await start_participant()
        r = await client.post("/experiment", json={"action": "increment_progress"})
        assert r.status_code == 404

    async def test_requires_cookie(self, client):
        r = await client.post("/experiment", json={"action": "increment_progress"})
        assert r.status_code == 401
