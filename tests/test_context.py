import logging

import pytest

from bpengine.constants import Attribution, LayerFlag
from bpengine.context import new_context
from bpengine.exceptions import InternalError, PhaseExit, UserError
from bpengine.execution import MockExecutor, SubprocessExecutor


@pytest.fixture
def app(tmp_path):
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    (app_dir / "worker.js").write_text("module.exports = {};\n")
    return app_dir


@pytest.fixture
def layers(tmp_path):
    d = tmp_path / "layers"
    d.mkdir()
    return d


def _ctx(app, layers=None, mocks=None, env=None, debug=None):
    executor = MockExecutor(mocks) if mocks is not None else None
    return new_context(env=env or {}, executor=executor, application_root=app, layers_dir=layers, debug=debug)


class TestContextBasics:
    """Tests for the read-only parts of the Context."""

    def test_roots(self, app, layers):
        ctx = _ctx(app, layers)
        assert ctx.application_root == app.resolve()
        assert ctx.layers_dir == layers
        assert ctx.buildpack_root is None
        assert isinstance(ctx.executor, SubprocessExecutor)

    def test_getenv_uses_snapshot(self, app, monkeypatch):
        monkeypatch.setenv("FUNCTION_TARGET", "ambient")
        ctx = _ctx(app, env={"FUNCTION_TARGET": "snapshot"})
        monkeypatch.setenv("FUNCTION_TARGET", "changed")
        assert ctx.getenv("FUNCTION_TARGET") == "snapshot"
        assert ctx.getenv("MISSING") == ""
        assert ctx.getenv("MISSING", "fallback") == "fallback"
        assert ctx.has_env("FUNCTION_TARGET")

    def test_file_exists(self, app):
        ctx = _ctx(app)
        assert ctx.file_exists("worker.js")
        assert not ctx.file_exists("package.json")

    def test_debug_from_env(self, app):
        assert _ctx(app, env={"GOOGLE_DEBUG": "true"}).debug
        assert not _ctx(app).debug


class TestContextOutput:
    """Tests for user-facing log helpers."""

    def test_logf_formats_and_records(self, app, caplog):
        caplog.set_level(logging.DEBUG)
        ctx = _ctx(app)
        ctx.logf("Installing %s %s", "node", "18.1.0")
        assert ctx.output == ["Installing node 18.1.0"]
        assert "Installing node 18.1.0" in caplog.text

    def test_debugf_only_in_debug_mode(self, app):
        quiet = _ctx(app)
        quiet.debugf("hidden %d", 1)
        assert quiet.output == []
        loud = _ctx(app, debug=True)
        loud.debugf("shown %d", 1)
        assert loud.output == ["shown 1"]

    def test_warnf_prefix(self, app):
        ctx = _ctx(app)
        ctx.warnf("engines.node %s ignored", ">=10")
        assert ctx.output == ["Warning: engines.node >=10 ignored"]

    def test_cache_messages(self, app):
        ctx = _ctx(app)
        ctx.cache_hit("deps")
        ctx.cache_miss("deps")
        assert ctx.output == ["Cache hit for layer deps", "Cache miss for layer deps"]

    def test_literal_percent_without_args(self, app):
        ctx = _ctx(app)
        ctx.logf("100% done")
        assert ctx.output == ["100% done"]


class TestContextLayers:
    """Tests for layer acquisition through the Context."""

    def test_layer_is_reused(self, app, layers):
        ctx = _ctx(app, layers)
        first = ctx.layer("deps", LayerFlag.CACHE)
        second = ctx.layer("deps", LayerFlag.LAUNCH)
        assert first is second
        assert first.cache and first.launch

    def test_layer_needs_layers_dir(self, app):
        with pytest.raises(InternalError):
            _ctx(app).layer("deps")

    def test_check_cache_relative_to_app(self, app, layers):
        ctx = _ctx(app, layers)
        layer = ctx.layer("deps", LayerFlag.CACHE)
        assert ctx.check_cache(layer, ["v18"], ["worker.js"]) is False
        assert layer.signature

    def test_clear_layer(self, app, layers):
        ctx = _ctx(app, layers)
        layer = ctx.layer("deps", LayerFlag.CACHE)
        (layer.path / "stale").write_text("x")
        ctx.clear_layer(layer)
        assert list(layer.path.iterdir()) == []

    def test_processes(self, app):
        ctx = _ctx(app)
        ctx.add_process("worker", ["node", "worker.js"])
        ctx.add_web_process(["node", "server.js"])
        assert [(p.type, p.default) for p in ctx.processes] == [("worker", False), ("web", True)]


class TestContextExec:
    """Tests for running commands through the Context."""

    def test_exec_passes_phase_env(self, app):
        seen = {}

        class Recorder(SubprocessExecutor):
            def run(self, command, cwd=None, env=None):
                seen.update(cwd=cwd, env=dict(env))
                return MockExecutor({".*": {}}).run(command)

        ctx = new_context(env={"A": "1"}, executor=Recorder(), application_root=app)
        ctx.exec(["npm", "ci"], env={"B": "2"})
        assert seen["cwd"] == ctx.application_root
        assert seen["env"] == {"A": "1", "B": "2"}
        assert ctx.env == {"A": "1"}

    def test_non_zero_exit_returned_without_check(self, app):
        ctx = _ctx(app, mocks={"npm ci": {"exit_code": 1}})
        assert ctx.exec("npm ci").exit_code == 1

    def test_check_raises_internal_error(self, app):
        ctx = _ctx(app, mocks={"tar": {"exit_code": 2, "stderr": "broken archive"}})
        with pytest.raises(InternalError, match="exit code 2") as info:
            ctx.exec("tar xzf node.tgz", check=True)
        assert "broken archive" in str(info.value)

    def test_check_raises_user_error_for_user_commands(self, app):
        ctx = _ctx(app, mocks={"npm": {"exit_code": 1, "stdout": "ERESOLVE"}})
        with pytest.raises(UserError, match="npm ci"):
            ctx.exec("npm ci", attribution=Attribution.USER, check=True)

    def test_exit_raises(self, app):
        ctx = _ctx(app)
        with pytest.raises(PhaseExit) as info:
            ctx.exit(0)
        assert info.value.code == 0
        assert info.value.error is None

    def test_mock_table_from_settings(self, app, tmp_path):
        mocks = tmp_path / "mocks.yaml"
        mocks.write_text("node --version:\n  stdout: v18.0.0\n")
        ctx = new_context(env={"BPENGINE_EXEC_MOCKS": str(mocks)}, application_root=app)
        assert isinstance(ctx.executor, MockExecutor)
        assert ctx.exec("node --version").stdout == "v18.0.0"


class TestContextExecOutput:
    """Lines shown to the user by exec are kept in the Context output."""

    def test_user_command_recorded(self, app):
        ctx = _ctx(app, mocks={"npm": {"stdout": "added 57 packages\n"}})
        ctx.exec("npm install", attribution=Attribution.USER)
        assert ctx.output[0] == 'Running "npm install"'
        assert ctx.output[1] == "added 57 packages"
        assert ctx.output[2].startswith('Done "npm install"')

    def test_user_timing_records_frame_only(self, app):
        ctx = _ctx(app, mocks={"cp": {"stdout": "copied"}})
        ctx.exec("cp a b", attribution=Attribution.USER_TIMING)
        assert len(ctx.output) == 2
        assert "copied" not in ctx.output

    def test_internal_command_hidden_unless_debug(self, app):
        quiet = _ctx(app, mocks={"tar": {"stdout": "x"}})
        quiet.exec("tar xzf node.tgz")
        assert quiet.output == []

        loud = _ctx(app, mocks={"tar": {"stdout": "x"}}, debug=True)
        loud.exec("tar xzf node.tgz")
        assert loud.output[0] == 'Running "tar xzf node.tgz"'
        assert len(loud.output) == 3
