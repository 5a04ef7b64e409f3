"""Unit tests for ImportOrchestrator."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from clipingest.models.types import ClipRef, ImportItem, ImportState, ItemState, JobStatus
from clipingest.services.error_handling import ApplicationError, TransportError
from clipingest.services.http import ApiResponse
from clipingest.services.orchestrator import ImportOrchestrator, parse_take_number
from clipingest.services.session_store import SessionStore
from clipingest.utils.progress import INACTIVE_PROGRESS

IDLE_STATUS = {"enabled": True, "active": False}


def clip_json(name: str, size: int = 1) -> dict:
    return {"name": name, "paths": [f"{name}.mov"], "totalSize": size}


async def open_and_wait(orchestrator, path):
    """Open a path, checking the synchronous LOADING transition."""
    task = orchestrator.open_path(path)
    assert orchestrator.get_state() is ImportState.LOADING
    await task


def load(orchestrator, path="/foo"):
    asyncio.run(open_and_wait(orchestrator, path))


class TestInitialization:
    """Tests for loading a source directory."""

    def test_initial_state(self, make_orchestrator):
        """A fresh orchestrator has no items and no job."""
        orch = make_orchestrator()
        assert orch.enabled is True
        assert orch.progress < 0
        assert orch.eta is None
        assert orch.items == []
        assert orch.get_state() is ImportState.NO_DATA
        assert orch.is_active() is False
        assert orch.any_checked() is False
        assert orch.all_checked() is False

    def test_reconciles_clips_with_takes(self, make_orchestrator, sample_clips):
        """Already imported clips are unchecked and marked imported."""
        orch = make_orchestrator()
        load(orch)

        assert orch.path == "/foo"
        assert orch.items == [
            ImportItem(sample_clips[0], True, ItemState.READY, "scratch", "1", False),
            ImportItem(sample_clips[1], True, ItemState.READY, "scratch", "2", False),
            ImportItem(sample_clips[2], False, ItemState.IMPORTED, "scratch", "3", False),
        ]
        assert orch.get_state() is ImportState.READY
        assert orch.is_active() is False
        assert orch.any_checked() is True
        assert orch.all_checked() is False

    def test_lists_source_by_path(self, make_orchestrator, fake_transport):
        """The source listing is requested for the opened path."""
        orch = make_orchestrator()
        load(orch)
        assert fake_transport.calls_to("GET", "/source")[0][2] == {"path": "/foo"}

    def test_empty_path_does_not_load(self, make_orchestrator, fake_transport):
        """With no path, nothing is listed and the state is NO_DATA."""
        orch = make_orchestrator()
        asyncio.run(orch.load())

        assert orch.items == []
        assert orch.get_state() is ImportState.NO_DATA
        assert fake_transport.calls_to("GET", "/source") == []
        assert fake_transport.calls_to("GET", "/take/") == []

    def test_load_failure_clears_items(self, make_orchestrator, fake_transport, caplog):
        """A failed listing is logged and leaves an empty list."""
        orch = make_orchestrator()
        load(orch)
        fake_transport.when("GET", "/source", ApiResponse(status=500))

        with caplog.at_level(logging.ERROR):
            load(orch, "/bad")

        assert orch.items == []
        assert orch.loading is False
        assert orch.get_state() is ImportState.NO_DATA
        assert "source load failed" in caplog.text

    def test_remembers_last_path(self, make_orchestrator, tmp_path):
        """Opening a path stores it for the next session."""
        store = SessionStore(cache_dir=tmp_path)
        orch = make_orchestrator(session_store=store)
        load(orch, "/foo")

        assert SessionStore(cache_dir=tmp_path).last_import_path == "/foo"
        assert make_orchestrator(session_store=store).suggested_path == "/foo"

    def test_explicit_path_wins_over_last_path(self, make_orchestrator, tmp_path):
        store = SessionStore(cache_dir=tmp_path)
        store.last_import_path = "/old"
        orch = make_orchestrator(session_store=store, path="/new")
        assert orch.suggested_path == "/new"

    def test_opening_empty_path_clears_items(self, make_orchestrator, fake_transport):
        """Switching to no path drops the previous listing."""
        orch = make_orchestrator()
        load(orch, "/foo")
        assert len(orch.items) == 3

        load(orch, "")

        assert orch.items == []
        assert orch.find_item("foo") is None
        assert orch.get_state() is ImportState.NO_DATA
        assert len(fake_transport.calls_to("GET", "/source")) == 1

    def test_malformed_status_on_load_is_logged(self, make_orchestrator, fake_transport, caplog):
        """A status body that cannot be decoded does not abort loading."""
        fake_transport.when("GET", "/import", ["not", "a", "status"])
        orch = make_orchestrator()

        with caplog.at_level(logging.WARNING):
            load(orch)

        assert len(orch.items) == 3
        assert orch.get_state() is ImportState.READY
        assert "Could not fetch import status" in caplog.text

    def test_superseded_load_is_discarded(self):
        """A listing that finishes after a newer open_path is dropped."""
        results = {
            "/a": [ImportItem(clip=ClipRef("a"))],
            "/b": [ImportItem(clip=ClipRef("b"))],
        }

        async def scenario():
            events = {"/a": asyncio.Event(), "/b": asyncio.Event()}

            async def gated_load(path):
                await events[path].wait()
                return results[path]

            reconciler = MagicMock()
            reconciler.load = gated_load
            job_client = MagicMock()
            job_client.get_status = AsyncMock(return_value=JobStatus())
            orch = ImportOrchestrator(reconciler, job_client, poll_interval=0)

            first = orch.open_path("/a")
            await asyncio.sleep(0)
            second = orch.open_path("/b")
            await asyncio.sleep(0)
            events["/b"].set()
            await second
            events["/a"].set()
            await first
            return orch

        orch = asyncio.run(scenario())
        assert orch.path == "/b"
        assert [i.clip.name for i in orch.items] == ["b"]
        assert orch.get_state() is ImportState.READY


class TestEditing:
    """Tests for item edits."""

    def test_check_all(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.check_all()
        assert [i.checked for i in orch.items] == [True, True, True]
        assert orch.all_checked() is True

    def test_check_none(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.check_none()
        assert [i.checked for i in orch.items] == [False, False, False]
        assert orch.any_checked() is False

    def test_autofill_scene_copies_to_end_of_list(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.items[1].scene = "blah"
        orch.autofill_scene(1)
        assert [i.scene for i in orch.items] == ["scratch", "blah", "blah"]

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_autofill_out_of_range_is_noop(self, make_orchestrator, index):
        orch = make_orchestrator()
        load(orch)
        orch.autofill_scene(index)
        orch.autofill_num(index)
        assert [i.scene for i in orch.items] == ["scratch"] * 3
        assert [i.num for i in orch.items] == ["1", "2", "3"]

    def test_autofill_num_increments_to_end_of_list(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.items[1].num = "5"
        orch.autofill_num(1)
        assert [i.num for i in orch.items] == ["1", "5", "6"]

    def test_autofill_num_non_numeric_is_noop(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.items[0].num = "pickup"
        orch.autofill_num(0)
        assert [i.num for i in orch.items] == ["pickup", "2", "3"]

    def test_autofill_num_uses_leading_integer(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        orch.items[0].num = "12b"
        orch.autofill_num(0)
        assert [i.num for i in orch.items] == ["12b", "13", "14"]

    def test_checked_total_bytes(self, make_orchestrator):
        orch = make_orchestrator()
        load(orch)
        assert orch.checked_total_bytes() == 42 + 1025
        orch.check_all()
        assert orch.checked_total_bytes() == 42 + 1025 + 314159
        orch.check_none()
        assert orch.checked_total_bytes() == 0


class TestParseTakeNumber:
    @pytest.mark.parametrize(
        "num,expected",
        [("5", 5), (" 7", 7), ("3a", 3), ("-2", -2), ("", None), ("a3", None), ("x", None)],
    )
    def test_parse(self, num, expected):
        assert parse_take_number(num) == expected


class TestStartImport:
    """Tests for submitting an import."""

    def test_selects_are_submitted_first(self, make_orchestrator, fake_transport, sample_clips):
        orch = make_orchestrator()
        load(orch)
        orch.items[1].select = True

        async def start():
            task = await orch.start_import()
            await task

        asyncio.run(start())

        body = fake_transport.calls_to("POST", "/import")[0][3]
        assert body["path"] == "/foo"
        assert body["subdirectory"] == ""
        assert body["items"] == [
            {"clip": sample_clips[1].to_dict(), "scene": "scratch", "num": "2", "select": True},
            {"clip": sample_clips[0].to_dict(), "scene": "scratch", "num": "1", "select": False},
        ]

    def test_subdirectory_is_submitted(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        orch.subdirectory = "SUB"

        async def start():
            await (await orch.start_import())

        asyncio.run(start())
        assert fake_transport.calls_to("POST", "/import")[0][3]["subdirectory"] == "SUB"

    def test_rejected_import_raises_and_does_not_poll(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        fake_transport.when(
            "POST", "/import", {"code": 402, "errorMessage": "existing import in progress"}
        )
        polls_before = len(fake_transport.calls_to("GET", "/import"))

        with pytest.raises(ApplicationError) as exc_info:
            asyncio.run(orch.start_import())

        assert exc_info.value.code == 402
        assert len(fake_transport.calls_to("GET", "/import")) == polls_before

    def test_submission_does_not_change_item_states(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        job_client = MagicMock()
        job_client.start_import = AsyncMock()
        orch.job_client = job_client
        orch.start_polling = MagicMock()

        asyncio.run(orch.start_import())

        assert [i.state for i in orch.items] == [
            ItemState.READY,
            ItemState.READY,
            ItemState.IMPORTED,
        ]
        orch.start_polling.assert_called_once()


class TestPolling:
    """Tests for status polling and merging."""

    def _run_import(self, orch):
        async def run():
            await (await orch.start_import())

        asyncio.run(run())

    def test_poll_merges_results_until_idle(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        seen = []
        orch.status_callback = lambda st: seen.append(
            (orch.get_state(), [i.state for i in orch.items], orch.progress)
        )
        fake_transport.when(
            "GET",
            "/import",
            {
                "enabled": True,
                "active": True,
                "bytesCopied": 10,
                "bytesTotal": 40,
                "eta": "2014-08-01T12:00:00Z",
                "pending": [clip_json("foo"), clip_json("bar")],
                "results": [],
            },
            {
                "enabled": True,
                "active": True,
                "bytesCopied": 20,
                "bytesTotal": 40,
                "pending": [clip_json("bar")],
                "results": [{"clip": clip_json("foo")}],
            },
            {
                "enabled": True,
                "active": False,
                "results": [
                    {"clip": clip_json("foo")},
                    {"clip": clip_json("bar"), "error": "disk full"},
                ],
            },
        )

        self._run_import(orch)

        assert seen[0] == (
            ImportState.ACTIVE,
            [ItemState.ACTIVE, ItemState.READY, ItemState.IMPORTED],
            0.25,
        )
        assert seen[1] == (
            ImportState.ACTIVE,
            [ItemState.IMPORTED, ItemState.ACTIVE, ItemState.IMPORTED],
            0.5,
        )
        assert seen[2][0] is ImportState.READY
        assert [i.state for i in orch.items] == [
            ItemState.IMPORTED,
            ItemState.ERROR,
            ItemState.IMPORTED,
        ]
        assert orch.progress == INACTIVE_PROGRESS
        assert orch.eta is None

    def test_eta_is_set_while_active(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        etas = []
        orch.status_callback = lambda st: etas.append(orch.eta)
        fake_transport.when(
            "GET",
            "/import",
            {"active": True, "bytesCopied": 1, "bytesTotal": 2, "eta": "2014-08-01T12:00:00Z"},
            IDLE_STATUS,
        )

        self._run_import(orch)

        assert etas[0] is not None
        assert etas[0].hour == 12
        assert etas[1] is None

    def test_only_first_pending_clip_is_active(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        orch.status_callback = MagicMock()
        asyncio.run(
            _merge(
                orch,
                {
                    "active": True,
                    "bytesCopied": 0,
                    "bytesTotal": 10,
                    "pending": [clip_json("bar"), clip_json("foo")],
                },
            )
        )
        assert orch.items[0].state is ItemState.READY
        assert orch.items[1].state is ItemState.ACTIVE

    def test_unknown_clips_are_ignored(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        asyncio.run(
            _merge(
                orch,
                {
                    "active": True,
                    "bytesCopied": 0,
                    "bytesTotal": 10,
                    "pending": [clip_json("elsewhere")],
                    "results": [{"clip": clip_json("other"), "error": "boom"}],
                },
            )
        )
        assert [i.state for i in orch.items] == [
            ItemState.READY,
            ItemState.READY,
            ItemState.IMPORTED,
        ]

    def test_inactive_status_leaves_states_untouched(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        orch.items[0].state = ItemState.ERROR
        orch.progress = 0.5

        asyncio.run(_merge(orch, {"enabled": True, "active": False}))

        assert [i.state for i in orch.items] == [
            ItemState.ERROR,
            ItemState.READY,
            ItemState.IMPORTED,
        ]
        assert orch.progress == INACTIVE_PROGRESS
        assert orch.get_state() is ImportState.READY

    def test_zero_total_bytes_reports_zero_progress(self, make_orchestrator, fake_transport):
        orch = make_orchestrator()
        load(orch)
        asyncio.run(_merge(orch, {"active": True, "bytesCopied": 0, "bytesTotal": 0}))
        assert orch.progress == 0.0
        assert orch.get_state() is ImportState.ACTIVE

    def test_disabled_server(self, make_orchestrator, fake_transport):
        fake_transport.when("GET", "/import", {"enabled": False})
        orch = make_orchestrator()
        load(orch)
        assert orch.enabled is False

    def test_transient_failures_are_retried(self, make_orchestrator, fake_transport):
        orch = make_orchestrator(max_poll_retries=3)
        load(orch)
        fake_transport.when(
            "GET",
            "/import",
            {"active": True, "bytesCopied": 1, "bytesTotal": 2},
            ApiResponse(status=503),
            TransportError("connection refused"),
            {"active": False, "results": [{"clip": clip_json("foo")}]},
        )
        polls_before = len(fake_transport.calls_to("GET", "/import"))

        self._run_import(orch)

        assert len(fake_transport.calls_to("GET", "/import")) - polls_before == 4
        assert orch.items[0].state is ItemState.IMPORTED
        assert orch.get_state() is ImportState.READY

    def test_gives_up_after_max_retries(self, make_orchestrator, fake_transport, caplog):
        orch = make_orchestrator(max_poll_retries=2)
        load(orch)
        fake_transport.when(
            "GET",
            "/import",
            {"active": True, "bytesCopied": 1, "bytesTotal": 2, "pending": [clip_json("foo")]},
            ApiResponse(status=503),
        )
        polls_before = len(fake_transport.calls_to("GET", "/import"))

        with caplog.at_level(logging.WARNING):
            self._run_import(orch)

        # One successful poll, then the initial failure plus two retries
        assert len(fake_transport.calls_to("GET", "/import")) - polls_before == 4
        assert orch.progress == INACTIVE_PROGRESS
        assert orch.get_state() is ImportState.READY
        assert orch.items[0].state is ItemState.ACTIVE
        assert "Giving up" in caplog.text

    def test_client_error_is_not_retried(self, make_orchestrator, fake_transport):
        orch = make_orchestrator(max_poll_retries=5)
        load(orch)
        fake_transport.when(
            "GET",
            "/import",
            {"active": True, "bytesCopied": 1, "bytesTotal": 2},
            ApiResponse(status=400),
        )
        polls_before = len(fake_transport.calls_to("GET", "/import"))

        self._run_import(orch)

        assert len(fake_transport.calls_to("GET", "/import")) - polls_before == 2
        assert orch.progress == INACTIVE_PROGRESS

    def test_close_stops_polling(self, make_orchestrator, fake_transport):
        orch = make_orchestrator(poll_interval=60)
        load(orch)

        async def run():
            task = await orch.start_import()
            await asyncio.sleep(0)
            orch.close()
            await asyncio.wait_for(task, timeout=5)

        asyncio.run(run())
        # The first poll was still waiting on its delay
        assert len(fake_transport.calls_to("GET", "/import")) == 1

    def test_malformed_status_stops_polling(self, make_orchestrator, fake_transport, caplog):
        orch = make_orchestrator(max_poll_retries=5)
        load(orch)
        fake_transport.when(
            "GET",
            "/import",
            {"active": True, "bytesCopied": 1, "bytesTotal": 2},
            {"active": True, "results": [{"error": "no clip"}]},
        )
        polls_before = len(fake_transport.calls_to("GET", "/import"))

        with caplog.at_level(logging.WARNING):
            self._run_import(orch)

        assert len(fake_transport.calls_to("GET", "/import")) - polls_before == 2
        assert orch.progress == INACTIVE_PROGRESS
        assert "Giving up" in caplog.text

    def test_polling_restarts_after_close(self, make_orchestrator, fake_transport):
        """A loop started right after close() belongs to the new session."""
        fake_transport.when("GET", "/import", {"active": True, "bytesCopied": 1, "bytesTotal": 2})
        orch = make_orchestrator(poll_interval=0.01)

        async def run():
            old = orch.start_polling()
            orch.close()
            new = orch.start_polling()
            await asyncio.sleep(0.2)
            still_polling = not new.done()
            polls = len(fake_transport.calls_to("GET", "/import"))
            orch.close()
            await asyncio.wait_for(asyncio.gather(old, new), timeout=5)
            return new is not old, still_polling, polls

        is_new, still_polling, polls = asyncio.run(run())

        assert is_new is True
        assert still_polling is True
        assert polls > 0

    def test_start_polling_reuses_running_task(self, make_orchestrator):
        orch = make_orchestrator(poll_interval=60)

        async def run():
            first = orch.start_polling()
            second = orch.start_polling()
            orch.close()
            await first
            return first is second

        assert asyncio.run(run()) is True


async def _merge(orch, status_json):
    """Serve one status response and merge it."""
    orch.job_client.transport.when("GET", "/import", status_json)
    await orch.refresh_status()
