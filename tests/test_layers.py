import toml
import pytest

from bpengine.constants import LayerFlag
from bpengine.exceptions import LayerError
from bpengine.layers import open_layer, read_layer_metadata, write_launch_metadata
from bpengine.datacls import Process


class TestLayer:
    """Tests for layer directories and their metadata files."""

    def test_open_creates_directory(self, tmp_path):
        layer = open_layer(tmp_path, "node", [LayerFlag.BUILD, LayerFlag.LAUNCH])
        assert layer.path == tmp_path / "node"
        assert layer.path.is_dir()
        assert layer.build and layer.launch and not layer.cache
        assert layer.previous_metadata == {}
        assert layer.previous_signature is None

    def test_persist_writes_types_and_metadata(self, tmp_path):
        layer = open_layer(tmp_path, "node", [LayerFlag.CACHE, LayerFlag.LAUNCH])
        layer.signature = "abc123"
        layer.metadata["version"] = "18.1.0"
        layer.persist()

        doc = toml.loads((tmp_path / "node.toml").read_text())
        assert doc["types"] == {"build": False, "cache": True, "launch": True}
        assert doc["metadata"] == {"cache_signature": "abc123", "version": "18.1.0"}

    def test_previous_metadata_restored(self, tmp_path):
        (tmp_path / "node.toml").write_text(toml.dumps({
            "types": {"cache": True},
            "metadata": {"cache_signature": "prev"},
        }))
        layer = open_layer(tmp_path, "node", [LayerFlag.CACHE])
        assert layer.previous_signature == "prev"
        # this build's metadata starts empty
        assert layer.signature is None

    def test_persist_writes_env_dirs(self, tmp_path):
        layer = open_layer(tmp_path, "worker", [LayerFlag.LAUNCH])
        layer.launch_env.default("WORKER_PORT", 8091)
        layer.build_env.prepend("PATH", ":", "/worker/bin")
        layer.persist()
        assert (tmp_path / "worker" / "env.launch" / "WORKER_PORT.default").read_text() == "8091"
        assert (tmp_path / "worker" / "env.build" / "PATH.prepend").read_text() == "/worker/bin"

    def test_clear_empties_directory(self, tmp_path):
        layer = open_layer(tmp_path, "deps", [LayerFlag.CACHE])
        (layer.path / "node_modules").mkdir()
        (layer.path / "node_modules" / "a.js").write_text("x")
        layer.clear()
        assert layer.path.is_dir()
        assert list(layer.path.iterdir()) == []

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "launch"])
    def test_invalid_names(self, tmp_path, name):
        with pytest.raises(LayerError):
            open_layer(tmp_path, name)

    def test_corrupt_metadata_is_an_error(self, tmp_path):
        (tmp_path / "node.toml").write_text("[types\nbroken")
        with pytest.raises(LayerError):
            read_layer_metadata(tmp_path / "node.toml")

    def test_launch_metadata(self, tmp_path):
        path = write_launch_metadata(tmp_path, [Process(type="web", command=["node", "worker.js"], default=True)])
        doc = toml.loads(path.read_text())
        assert doc["processes"] == [{"type": "web", "command": ["node", "worker.js"], "default": True}]

    def test_no_processes_no_launch_file(self, tmp_path):
        assert write_launch_metadata(tmp_path, []) is None
        assert not (tmp_path / "launch.toml").exists()
