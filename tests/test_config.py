"""Tests for tether/config — settings and the steps.yaml loader."""

import pytest
from pydantic import ValidationError

from tether.config import TetherConfig, load_steps_yaml
from tether.types import ExecutionMode, HttpMethod

STEPS_YAML = """
steps:
  - id: list-repos
    api_config:
      url_host: https://api.github.com
      url_path: /users/{{currentItem_login}}/repos
      method: get
      instruction: List repositories for a user
    execution_mode: loop
    loop_selector: users
    loop_max_iters: 5
  - id: create-issue
    api_config:
      url_host: https://api.github.com
      url_path: /repos/{{repo}}/issues
      method: post
      body: '{"title": "{{title}}"}'
"""


class TestTetherConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TETHER_DEFAULT_RETRIES", raising=False)
        cfg = TetherConfig(_env_file=None)
        assert cfg.default_retries == 8
        assert cfg.default_loop_max_iters == 1000
        assert cfg.store_backend == "memory"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TETHER_DEFAULT_RETRIES", "3")
        monkeypatch.setenv("TETHER_STORE_BACKEND", "redis")
        cfg = TetherConfig(_env_file=None)
        assert cfg.default_retries == 3
        assert cfg.store_backend == "redis"


class TestLoadStepsYaml:

    def test_loads_steps_in_order_and_coerces_enums(self, tmp_path):
        path = tmp_path / "steps.yaml"
        path.write_text(STEPS_YAML)

        steps = load_steps_yaml(path)

        assert [s.id for s in steps] == ["list-repos", "create-issue"]
        assert steps[0].execution_mode == ExecutionMode.LOOP
        assert steps[0].loop_selector == "users"
        assert steps[0].api_config.method == HttpMethod.GET
        assert steps[1].execution_mode == ExecutionMode.DIRECT
        assert steps[1].api_config.method == HttpMethod.POST

    def test_finds_file_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "steps.yaml").write_text(STEPS_YAML)
        monkeypatch.chdir(tmp_path)
        assert len(load_steps_yaml()) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_steps_yaml(tmp_path / "nope.yaml")

    def test_empty_file_gives_no_steps(self, tmp_path):
        path = tmp_path / "steps.yaml"
        path.write_text("")
        assert load_steps_yaml(path) == []

    def test_invalid_loop_max_iters(self, tmp_path):
        path = tmp_path / "steps.yaml"
        path.write_text(STEPS_YAML.replace("loop_max_iters: 5", "loop_max_iters: 0"))
        with pytest.raises(ValidationError):
            load_steps_yaml(path)
