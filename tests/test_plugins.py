import pytest

from bpengine.exceptions import PluginLoadError
from bpengine.utils import load_plugin


def _plugin(tmp_path, source, name="plugin.py"):
    path = tmp_path / name
    path.write_text(source)
    return str(path)


class TestLoadPlugin:
    """Tests for loading detect/build functions from a plugin."""

    def test_file_plugin(self, tmp_path):
        detect, build = load_plugin(_plugin(tmp_path, "def detect(ctx):\n    return None\n"))
        assert callable(detect)
        assert build is None

    def test_module_plugin(self, tmp_path, monkeypatch):
        _plugin(tmp_path, "def build(ctx):\n    pass\n", name="dotted_build_plugin.py")
        monkeypatch.syspath_prepend(str(tmp_path))
        detect, build = load_plugin("dotted_build_plugin")
        assert detect is None
        assert callable(build)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PluginLoadError, match="not found"):
            load_plugin(str(tmp_path / "absent.py"))

    def test_unknown_module(self):
        with pytest.raises(PluginLoadError, match="Could not import"):
            load_plugin("no_such_plugin_module_xyz")

    def test_syntax_error(self, tmp_path):
        path = _plugin(tmp_path, "def detect(ctx)\n    return None\n")
        with pytest.raises(PluginLoadError, match="SyntaxError"):
            load_plugin(path)

    def test_import_error_inside_plugin(self, tmp_path):
        path = _plugin(tmp_path, "import no_such_dependency_xyz\n\ndef build(ctx):\n    pass\n")
        with pytest.raises(PluginLoadError, match="ModuleNotFoundError"):
            load_plugin(path)

    def test_error_at_import_time(self, tmp_path):
        path = _plugin(tmp_path, "raise RuntimeError('boom')\n")
        with pytest.raises(PluginLoadError, match="RuntimeError: boom"):
            load_plugin(path)

    def test_non_callable(self, tmp_path):
        with pytest.raises(PluginLoadError, match="not callable"):
            load_plugin(_plugin(tmp_path, "detect = 1\n"))

    def test_no_phase_functions(self, tmp_path):
        with pytest.raises(PluginLoadError, match="neither"):
            load_plugin(_plugin(tmp_path, "X = 1\n"))
