import pytest

from docguard.config import AppConfig, load_config
from docguard.errors import ConfigurationError
from docguard.severity import Severity


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("DOCGUARD_LOG_LEVEL", "DOCGUARD_WORKERS", "DOCGUARD_REPORTS_DIR"):
        monkeypatch.delenv(name, raising=False)

    assert load_config() == AppConfig()


def test_yaml_values_are_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("DOCGUARD_WORKERS", raising=False)
    path = tmp_path / "docguard.yaml"
    path.write_text(
        "roots: [content]\n"
        "extensions: [md, MDX]\n"
        "workers: 8\n"
        "links:\n  check_external: true\n  timeout: 2.5\n"
        "issues:\n  enabled: true\n  repository: acme/docs\n  severities: [critical, high]\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.roots == ("content",)
    assert config.extensions == (".md", ".mdx")
    assert config.workers == 8
    assert config.links.check_external is True
    assert config.links.timeout == 2.5
    assert config.issues.repository == "acme/docs"
    assert config.issues.severities == (Severity.CRITICAL, Severity.HIGH)


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "docguard.yaml"
    path.write_text("workers: 2\nreports_dir: out\n", encoding="utf-8")
    monkeypatch.setenv("DOCGUARD_WORKERS", "6")
    monkeypatch.setenv("DOCGUARD_REPORTS_DIR", "elsewhere")
    monkeypatch.setenv("DOCGUARD_LOG_LEVEL", "debug")

    config = load_config(path)

    assert config.workers == 6
    assert config.reports_dir == "elsewhere"
    assert config.log_level == "DEBUG"


def test_missing_explicit_file_is_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "workers: 0\n",
        "links: nope\n",
        "issues:\n  severities: [urgent]\n",
        "roots: {a: 1}\n",
        "key: [unterminated\n",
    ],
)
def test_invalid_config_shapes_are_rejected(tmp_path, text):
    path = tmp_path / "docguard.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(path)
