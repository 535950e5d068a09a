"""Registry lifecycle: initialize, new_session, close and shutdown."""

import threading
from unittest.mock import Mock, patch

import pytest

from chromedriver_session import context as context_module
from chromedriver_session.context import DriverContext, get_context, reset_context
from chromedriver_session.errors import DriverNotStartedError, DriverStartupError
from chromedriver_session.session import Session

from _utils import FakeDriver, FakeProcess


class InstrumentedDriver(FakeDriver):
    """Records quit() into a shared event list."""

    def __init__(self, name, events, **kwargs):
        super().__init__(session_id=name, **kwargs)
        self.events = events

    def quit(self):
        self.events.append(f"quit:{self.session_id}")
        super().quit()


class Harness:
    def __init__(self, owned=True):
        self.events = []
        self.acquired = []
        self.drivers = []
        self.owned = owned

    def acquire(self, path, port, debug):
        proc = FakeProcess(owned=self.owned, port=port, events=self.events)
        self.acquired.append((path, port, debug, proc))
        return proc

    def driver_factory(self, hub_url, options):
        d = InstrumentedDriver(f"s{len(self.drivers) + 1}", self.events)
        d.hub_url = hub_url
        d.options = options
        self.drivers.append(d)
        return d

    def context(self):
        return DriverContext(
            driver_factory=self.driver_factory,
            acquire=self.acquire,
            install_signal_handlers=False,
        )


@pytest.fixture(autouse=True)
def _no_process_scan(monkeypatch):
    monkeypatch.setattr(context_module, "find_driver_processes", lambda path: [])
    monkeypatch.setenv("CHROME_DRIVER", "/opt/chromedriver")


class TestInitialize:

    def test_second_initialize_is_a_noop(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        first = ctx.supervisor
        ctx.initialize(9515, debug=True)
        assert len(h.acquired) == 1
        assert ctx.supervisor is first
        assert h.acquired[0][:3] == ("/opt/chromedriver", 9515, False)

    def test_missing_driver_path(self, monkeypatch):
        monkeypatch.delenv("CHROME_DRIVER", raising=False)
        ctx = Harness().context()
        with pytest.raises(EnvironmentError):
            ctx.initialize(9515)

    def test_low_port_rejected(self):
        h = Harness()
        with pytest.raises(ValueError):
            h.context().initialize(80)
        assert h.acquired == []

    def test_startup_failure_leaves_nothing_registered(self):
        def failing(path, port, debug):
            raise DriverStartupError(port)

        ctx = DriverContext(acquire=failing, install_signal_handlers=False)
        with pytest.raises(DriverStartupError):
            ctx.initialize(9515)
        assert not ctx.is_initialized()
        assert ctx.open_sessions() == []

    def test_concurrent_initialize_acquires_once(self):
        h = Harness()
        ctx = h.context()
        threads = [threading.Thread(target=ctx.initialize, args=(9515,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(h.acquired) == 1

    def test_reinitialize_after_shutdown_starts_fresh(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.shutdown()
        ctx.initialize(9515)
        assert len(h.acquired) == 2
        assert ctx.is_initialized()


class TestSessions:

    def test_new_session_requires_initialize(self):
        with pytest.raises(DriverNotStartedError):
            Harness().context().new_session()

    def test_new_session_is_registered_and_configured(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        s = ctx.new_session("/tmp/profile", 800, 600, headless=True, timeout=5)
        assert ctx.open_sessions() == [s]
        assert s.timeout == 5
        assert s.hub_url == "http://localhost:9515/wd/hub"
        args = h.drivers[0].options.arguments
        assert "window-size=800,600" in args
        assert "headless" in args
        assert "user-data-dir=/tmp/profile" in args

    def test_close_deregisters_and_quits(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        a, b, c = (ctx.new_session() for _ in range(3))
        a.close()
        assert set(ctx.open_sessions()) == {b, c}
        assert h.events == ["quit:s1"]
        a.close()
        assert h.events == ["quit:s1"]

    def test_concurrent_close_issues_one_remote_quit(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        s = ctx.new_session()
        other = ctx.new_session()
        barrier = threading.Barrier(2)
        errors = []

        def close():
            barrier.wait()
            try:
                s.close()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=close) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert h.drivers[0].quit_calls == 1
        assert ctx.open_sessions() == [other]

    def test_close_racing_shutdown_quits_once(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        s = ctx.new_session()
        ctx.shutdown()
        s.close()
        assert h.drivers[0].quit_calls == 1

    def test_session_context_manager_closes(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        with ctx.new_session() as s:
            assert ctx.open_sessions() == [s]
        assert ctx.open_sessions() == []
        assert s.closed


class TestShutdown:

    def test_zero_sessions_owned_process_stops_once(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        proc = ctx.supervisor
        ctx.shutdown()
        ctx.shutdown()
        assert proc.stop_calls == 1
        assert ctx.supervisor is None
        assert ctx.open_sessions() == []

    def test_sessions_close_before_process_stops(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        for _ in range(4):
            ctx.new_session()
        ctx.shutdown()
        assert sorted(h.events[:4]) == ["quit:s1", "quit:s2", "quit:s3", "quit:s4"]
        assert h.events[4:] == ["stop"]
        assert ctx.open_sessions() == []

    def test_adopted_process_is_left_running(self):
        h = Harness(owned=False)
        ctx = h.context()
        ctx.initialize(9515)
        proc = ctx.supervisor
        ctx.new_session()
        ctx.shutdown()
        assert proc.stop_calls == 0
        assert h.events == ["quit:s1"]
        assert ctx.supervisor is None

    def test_failing_session_does_not_block_cleanup(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.new_session()
        ctx.new_session()
        h.drivers[0].quit_error = RuntimeError("connection refused")
        errors = ctx.shutdown()
        assert [str(e) for e in errors] == ["connection refused"]
        assert h.drivers[1].quit_calls == 1
        assert h.events[-1] == "stop"

    def test_stop_failure_is_reported_not_raised(self):
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.supervisor.stop = Mock(side_effect=OSError("gone"))
        errors = ctx.shutdown()
        assert len(errors) == 1
        assert ctx.supervisor is None

    def test_context_manager_shuts_down(self):
        h = Harness()
        with h.context() as ctx:
            ctx.initialize(9515)
            ctx.new_session()
        assert h.events == ["quit:s1", "stop"]

    def test_signal_handler_shuts_down_and_exits(self, monkeypatch):
        exit_process = Mock()
        monkeypatch.setattr(context_module, "_exit_process", exit_process)
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.new_session()

        ctx._on_signal(2, None)
        ctx._signal_thread.join(5)

        assert not ctx._signal_thread.is_alive()
        assert h.events == ["quit:s1", "stop"]
        exit_process.assert_called_once_with(0)

    def test_repeated_signal_starts_one_shutdown(self, monkeypatch):
        exit_process = Mock()
        monkeypatch.setattr(context_module, "_exit_process", exit_process)
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)

        ctx._on_signal(2, None)
        worker = ctx._signal_thread
        ctx._on_signal(15, None)
        worker.join(5)

        assert ctx._signal_thread is worker
        assert h.events == ["stop"]
        exit_process.assert_called_once_with(0)

    def test_signal_while_registry_lock_held_does_not_block(self, monkeypatch):
        exit_process = Mock()
        monkeypatch.setattr(context_module, "_exit_process", exit_process)
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.new_session()

        returned = threading.Event()
        events_while_held = []

        def interrupted_main():
            with ctx._lock:
                ctx._on_signal(2, None)
                returned.set()
                events_while_held.extend(h.events)

        t = threading.Thread(target=interrupted_main)
        t.start()
        t.join(5)

        assert not t.is_alive()
        assert returned.is_set()
        assert events_while_held == []
        ctx._signal_thread.join(5)
        assert h.events == ["quit:s1", "stop"]
        assert ctx.supervisor is None
        exit_process.assert_called_once_with(0)

    def test_signal_during_shutdown_exits_after_cleanup(self, monkeypatch):
        exit_process = Mock()
        monkeypatch.setattr(context_module, "_exit_process", exit_process)
        h = Harness()
        ctx = h.context()
        ctx.initialize(9515)
        ctx.new_session()
        proc = ctx.supervisor

        def stop_with_signal():
            # Handler fires on the same thread mid-shutdown.
            ctx._on_signal(15, None)
            proc.events.append("stop")
            proc.stop_calls += 1

        proc.stop = stop_with_signal
        assert ctx.shutdown() == []
        ctx._signal_thread.join(5)

        assert h.events == ["quit:s1", "stop"]
        assert proc.stop_calls == 1
        assert ctx.supervisor is None
        exit_process.assert_called_once_with(0)

    def test_signal_handlers_installed_once_on_main_thread(self):
        h = Harness()
        ctx = DriverContext(driver_factory=h.driver_factory, acquire=h.acquire)
        with patch("chromedriver_session.context.signal.signal") as install:
            ctx.initialize(9515)
            ctx.shutdown()
            ctx.initialize(9515)
        assert install.call_count == 2
        assert {c.args[0] for c in install.call_args_list} == {
            context_module.signal.SIGINT,
            context_module.signal.SIGTERM,
        }


class TestDefaultContext:

    def test_singleton_until_reset(self):
        assert get_context() is get_context()
        first = get_context()
        reset_context()
        assert get_context() is not first

    def test_module_level_api_uses_default_context(self, monkeypatch):
        h = Harness()
        monkeypatch.setattr(context_module, "_global_context", h.context())
        context_module.initialize(9515)
        s = context_module.new_session(timeout=3)
        assert isinstance(s, Session)
        context_module.shutdown()
        assert h.events == ["quit:s1", "stop"]
