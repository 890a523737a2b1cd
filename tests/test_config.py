import pytest

from zkyc.config import ProtocolConfig
from zkyc.errors import ConfigError


def test_defaults():
    config = ProtocolConfig()
    assert config.tree_depth == 16
    assert config.max_workers is None
    assert config.minimum_age == 18
    assert config.required_nationality == "FRA"
    assert config.retained_versions is None


@pytest.mark.parametrize(
    "values",
    [
        {"tree_depth": 0},
        {"tree_depth": 33},
        {"max_workers": 0},
        {"minimum_age": -1},
        {"retained_versions": 0},
    ],
)
def test_invalid_values(values):
    with pytest.raises(ConfigError):
        ProtocolConfig(**values)


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError, match="Unknown"):
        ProtocolConfig.from_mapping({"tree_depth": 4, "depth": 4})


def test_load_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("ZKYC_TREE_DEPTH", raising=False)
    path = tmp_path / "zkyc.yaml"
    path.write_text("tree_depth: 8\nrequired_nationality: DEU\nretained_versions: 3\n")
    config = ProtocolConfig.load(path, minimum_age=21)
    assert config.tree_depth == 8
    assert config.required_nationality == "DEU"
    assert config.retained_versions == 3
    assert config.minimum_age == 21


def test_load_overrides_take_precedence_over_the_file(tmp_path, monkeypatch):
    monkeypatch.delenv("ZKYC_TREE_DEPTH", raising=False)
    path = tmp_path / "zkyc.yaml"
    path.write_text("tree_depth: 8\n")
    assert ProtocolConfig.load(path, tree_depth=10).tree_depth == 10


def test_load_rejects_non_mapping(tmp_path):
    path = tmp_path / "zkyc.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError, match="mapping"):
        ProtocolConfig.load(path)


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "zkyc.yaml"
    path.write_text("")
    assert ProtocolConfig.load(path).with_environment({}) == ProtocolConfig()


def test_environment():
    config = ProtocolConfig().with_environment(
        {"ZKYC_TREE_DEPTH": "20", "ZKYC_MAX_WORKERS": "4", "ZKYC_REQUIRED_NATIONALITY": "ITA"}
    )
    assert config.tree_depth == 20
    assert config.max_workers == 4
    assert config.required_nationality == "ITA"
    assert ProtocolConfig(max_workers=2).with_environment({"ZKYC_MAX_WORKERS": "none"}).max_workers is None


def test_load_reads_the_process_environment(monkeypatch):
    monkeypatch.setenv("ZKYC_TREE_DEPTH", "12")
    assert ProtocolConfig.load().tree_depth == 12


@pytest.mark.parametrize("environ", [{"ZKYC_TREE_DEPTH": "deep"}, {"ZKYC_TREE_DEPTH": "none"}, {"ZKYC_TREE_DEPTH": "64"}])
def test_invalid_environment(environ):
    with pytest.raises(ConfigError):
        ProtocolConfig().with_environment(environ)
