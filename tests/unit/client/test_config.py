# tests/unit/client/test_config.py
# Target: recanon/client/config.py

import pytest

from recanon.client.config import (
    DEFAULT_RENDERER_URL,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_RENDERER_TIMEOUT,
    ENV_RENDERER_URL,
    RendererConfig,
)


class TestResolve:
    def test_defaults(self):
        config = RendererConfig.resolve(environ={})
        assert config.base_url == DEFAULT_RENDERER_URL
        assert config.timeout == DEFAULT_TIMEOUT_SECONDS
        assert config.is_default is True

    def test_environment_url(self):
        config = RendererConfig.resolve(environ={ENV_RENDERER_URL: "http://localhost:5000/"})
        assert config.base_url == "http://localhost:5000"
        assert config.is_default is False

    def test_blank_environment_url_ignored(self):
        assert RendererConfig.resolve(environ={ENV_RENDERER_URL: "   "}).is_default is True

    def test_override_beats_environment(self):
        config = RendererConfig.resolve(
            override=" http://cli.test ", environ={ENV_RENDERER_URL: "http://env.test"}
        )
        assert config.base_url == "http://cli.test"

    def test_timeout_from_environment(self):
        assert RendererConfig.resolve(environ={ENV_RENDERER_TIMEOUT: "2.5"}).timeout == 2.5

    @pytest.mark.parametrize("raw", ["soon", "0", "-1"])
    def test_bad_timeout_raises(self, raw):
        with pytest.raises(ValueError):
            RendererConfig.resolve(environ={ENV_RENDERER_TIMEOUT: raw})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_RENDERER_URL, "http://process.test")
        monkeypatch.delenv(ENV_RENDERER_TIMEOUT, raising=False)
        assert RendererConfig.resolve().base_url == "http://process.test"
