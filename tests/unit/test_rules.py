from pathlib import Path

import pytest

from seo_redirects.components.redirects import DEFAULT_RESERVED_PATHS, RedirectConfig
from seo_redirects.rules.loader import config_from_rules, load_rules

REPO_RULES = Path(__file__).resolve().parents[2] / "rules.yaml"


def write_rules(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(content)
    return path


def test_load_repo_rules():
    rules = load_rules(REPO_RULES)

    assert rules.project.slug == "seo-redirects"
    assert config_from_rules(rules) == RedirectConfig()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")


def test_redirects_section_optional(tmp_path):
    path = write_rules(tmp_path, "project:\n  slug: demo\n  rules_version: '1'\n")

    config = config_from_rules(load_rules(path))

    assert config.default_status == 301
    assert config.reserved_paths == DEFAULT_RESERVED_PATHS
    assert "/health" in config.reserved_paths


def test_overrides_applied(tmp_path):
    path = write_rules(
        tmp_path,
        """
project:
  slug: demo
  rules_version: "1"
redirects:
  default_status: 302
  reserved_paths: [/healthz]
  skip_prefixes: [/admin/, /api/]
  async_hits: false
  list_per_page: 50
""",
    )

    config = config_from_rules(load_rules(path))

    assert config.default_status == 302
    assert config.reserved_paths == ("/healthz",)
    assert config.skip_prefixes == ("/admin/", "/api/")
    assert config.async_hits is False
    assert config.list_per_page == 50


def test_yaml_inside_markdown_fence(tmp_path):
    path = write_rules(
        tmp_path,
        "# Rules\n\n```yaml\nproject:\n  slug: demo\n  rules_version: '1'\n```\n",
    )

    assert load_rules(path).project.slug == "demo"


def test_invalid_default_status(tmp_path):
    path = write_rules(
        tmp_path,
        "project:\n  slug: demo\n  rules_version: '1'\nredirects:\n  default_status: 404\n",
    )

    with pytest.raises(ValueError, match="validation failed"):
        load_rules(path)


def test_unknown_key_rejected(tmp_path):
    path = write_rules(
        tmp_path,
        "project:\n  slug: demo\n  rules_version: '1'\nredirects:\n  follow_chains: true\n",
    )

    with pytest.raises(ValueError):
        load_rules(path)


def test_invalid_yaml(tmp_path):
    path = write_rules(tmp_path, "project: [unclosed\n")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(path)
