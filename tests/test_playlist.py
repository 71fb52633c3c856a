"""Tests for playlist building: selection policies, persistence and idempotence."""

import random
from collections import Counter

import pytest
from sqlalchemy import func, select

from rankstudy.models.video import Video, VideoOrder
from rankstudy.services import playlist
from rankstudy.services.errors import InsufficientDataError, NotFoundError


def _videos(tags):
    """Transient Video objects from [(nar_level, sex), ...]."""
    return [
        Video(id=i, title=f"v{i}", url=f"u{i}", group=1, nar_level=nar, sex=sex)
        for i, (nar, sex) in enumerate(tags, start=1)
    ]


class TestPolicies:
    """Pure selection functions."""

    def test_uniform_is_a_permutation(self):
        videos = _videos([(None, None)] * 10)
        out = playlist.shuffle_uniform(videos, random.Random(7))
        assert sorted(v.id for v in out) == list(range(1, 11))

    def test_uniform_depends_only_on_seed(self):
        videos = _videos([(None, None)] * 10)
        a = playlist.shuffle_uniform(videos, random.Random(7))
        b = playlist.shuffle_uniform(videos, random.Random(7))
        assert [v.id for v in a] == [v.id for v in b]

    @pytest.mark.parametrize("seed", range(20))
    def test_stratified_draws_two_per_stratum(self, seed):
        videos = _videos([s for s in playlist.STRATA for _ in range(4)] + [(None, "m")])
        out = playlist.draw_stratified(videos, random.Random(seed), 2)

        assert len(out) == 8
        assert len({v.id for v in out}) == 8
        counts = Counter((v.nar_level, v.sex) for v in out)
        assert counts == {s: 2 for s in playlist.STRATA}

    def test_stratified_rejects_thin_stratum(self):
        tags = [("high", "m")] * 3 + [("high", "f")] * 3 + [("low", "m")] * 3 + [("low", "f")]
        with pytest.raises(InsufficientDataError) as exc:
            playlist.draw_stratified(_videos(tags), random.Random(1), 2)
        assert "low/f" in str(exc.value)

    def test_untagged_videos_do_not_fill_strata(self):
        tags = [s for s in playlist.STRATA[:3] for _ in range(2)] + [(None, None)] * 5
        with pytest.raises(InsufficientDataError):
            playlist.draw_stratified(_videos(tags), random.Random(1), 2)


class TestGetOrBuild:
    """Persistence through get_or_build_playlist."""

    async def test_builds_from_active_videos_of_group(self, database, make_code, make_video):
        p = await make_code(group=2)
        wanted = [await make_video(group=2) for _ in range(3)]
        await make_video(group=1)
        await make_video(group=2, is_active=False)

        async with database.restricted() as s, database.privileged() as priv:
            orders = await playlist.get_or_build_playlist(s, priv, p, rng=random.Random(3))

        assert [o.order for o in orders] == [1, 2, 3]
        assert {o.video_id for o in orders} == {v.id for v in wanted}

    async def test_second_call_returns_same_order(self, database, make_code, make_video):
        p = await make_code()
        for _ in range(6):
            await make_video()

        async with database.restricted() as s, database.privileged() as priv:
            first = await playlist.get_or_build_playlist(s, priv, p, rng=random.Random(1))
        async with database.restricted() as s, database.privileged() as priv:
            # другой seed не должен ничего поменять
            second = await playlist.get_or_build_playlist(s, priv, p, rng=random.Random(99))

        assert [o.video_id for o in first] == [o.video_id for o in second]

    async def test_concurrent_build_keeps_first_stored_order(self, database, make_code, make_video, monkeypatch):
        p = await make_code()
        videos = [await make_video() for _ in range(4)]
        stored_first = [v.id for v in reversed(videos)]
        original = playlist._candidate_videos

        async def candidates_then_lose_race(session, group):
            found = await original(session, group)
            # другой запрос успевает сохранить свой порядок между чтением и записью
            async with database.privileged() as other:
                other.add_all(
                    VideoOrder(participant_id=p.id, video_id=vid, order=idx)
                    for idx, vid in enumerate(stored_first, start=1)
                )
                await other.commit()
            return found

        monkeypatch.setattr(playlist, "_candidate_videos", candidates_then_lose_race)

        async with database.restricted() as s, database.privileged() as priv:
            orders = await playlist.get_or_build_playlist(s, priv, p, rng=random.Random(5))

        assert [o.video_id for o in orders] == stored_first
        async with database.restricted() as s:
            count = await s.scalar(
                select(func.count()).select_from(VideoOrder).where(VideoOrder.participant_id == p.id)
            )
        assert count == 4

    async def test_no_videos_for_group(self, database, make_code, make_video):
        p = await make_code(group=2)
        await make_video(group=1)
        async with database.restricted() as s, database.privileged() as priv:
            with pytest.raises(NotFoundError):
                await playlist.get_or_build_playlist(s, priv, p)

    async def test_insufficient_strata_persist_nothing(self, database, make_code, make_video):
        p = await make_code()
        await make_video(sex="m", nar_level="high")
        await make_video(sex="f", nar_level="low")

        async with database.restricted() as s, database.privileged() as priv:
            with pytest.raises(InsufficientDataError):
                await playlist.get_or_build_playlist(s, priv, p, policy="stratified")
            count = await s.scalar(select(func.count()).select_from(VideoOrder))
        assert count == 0


class TestExperimentEndpoint:
    """GET /experiment builds the playlist on first call."""

    async def test_requires_cookie(self, client):
        r = await client.get("/experiment")
        assert r.status_code == 401

    async def test_unknown_cookie_code_404(self, client):
        client.cookies.set("participant_code", "nope")
        r = await client.get("/experiment")
        assert r.status_code == 404

    async def test_playlist_is_stable_across_reloads(self, client, make_code, make_video, start_participant):
        await make_code()
        for _ in range(5):
            await make_video()
        await start_participant()

        first = (await client.get("/experiment")).json()
        second = (await client.get("/experiment")).json()

        assert first["status"] == "watching"
        assert [v["order"] for v in first["videos"]] == [1, 2, 3, 4, 5]
        assert first["videos"] == second["videos"]
        assert first["participant"]["code"] == "123456"
        assert set(first["videos"][0]) == {"id", "url", "group", "thumbnail", "order"}

    async def test_stratified_policy_from_settings(
        self, client, app, make_code, make_stratified_catalog, start_participant
    ):
        app.state.settings.PLAYLIST_POLICY = "stratified"
        await make_code()
        await make_stratified_catalog(per_stratum=3)
        await start_participant()

        r = await client.get("/experiment")
        assert r.status_code == 200
        assert len(r.json()["videos"]) == 8

    async def test_stratified_policy_insufficient_catalog(
        self, client, app, make_code, make_video, start_participant
    ):
        app.state.settings.PLAYLIST_POLICY = "stratified"
        await make_code()
        await make_video(sex="m", nar_level="high")
        await start_participant()

        r = await client.get("/experiment")
        assert r.status_code == 422
        assert "error" in r.json()

    async def test_empty_group_404(self, client, make_code, start_participant):
        await make_code()
        await start_participant()
        r = await client.get("/experiment")
        assert r.status_code == 404
        assert r.json() == {"error": "No videos available for this group"}
