"""Tests for the serve command."""

import json
from unittest.mock import patch

import pytest

from fnrun.cli.commands.serve import serve
from fnrun.config import load_descriptor

DESCRIPTOR = {"name": "greeter", "version": "v1", "runtime": "Knative", "port": 8081}


@pytest.fixture
def context_file(tmp_path, monkeypatch):
    monkeypatch.delenv("FUNC_CONTEXT", raising=False)
    path = tmp_path / "function.json"
    path.write_text(json.dumps(DESCRIPTOR))
    return path


class TestServe:
    def test_descriptor_is_loaded_once(self, context_file):
        with (
            patch("fnrun.cli.commands.serve.load_descriptor", wraps=load_descriptor) as loader,
            patch("fnrun.cli.commands.serve.create_app") as create_app,
            patch("fnrun.cli.commands.serve.uvicorn") as uvicorn,
        ):
            serve(target="echo", context_file=context_file)

        loader.assert_called_once()
        config, descriptor = create_app.call_args.args
        assert descriptor.name == "greeter"
        uvicorn.run.assert_called_once_with(
            create_app.return_value, host=config.server.host, port=8081, log_config=None
        )

    def test_port_option_wins(self, context_file):
        with (
            patch("fnrun.cli.commands.serve.create_app"),
            patch("fnrun.cli.commands.serve.uvicorn") as uvicorn,
        ):
            serve(target="echo", context_file=context_file, port=9000)

        assert uvicorn.run.call_args.kwargs["port"] == 9000

    def test_bad_descriptor_exits(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FUNC_CONTEXT", raising=False)
        path = tmp_path / "function.json"
        path.write_text("{not json")

        with patch("fnrun.cli.commands.serve.uvicorn") as uvicorn:
            with pytest.raises(SystemExit):
                serve(target="echo", context_file=path)

        uvicorn.run.assert_not_called()
