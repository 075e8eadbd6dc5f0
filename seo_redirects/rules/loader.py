from pathlib import Path

import yaml
from pydantic import ValidationError

from seo_redirects.components.redirects import RedirectConfig
from seo_redirects.rules.models import Rules


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    # Strip markdown code fences if the YAML is embedded in a ```yaml block
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break

        if in_block:
            yaml_lines.append(line)

    clean_content = "\n".join(yaml_lines) if found_block else content

    try:
        data = yaml.safe_load(clean_content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e


def config_from_rules(rules: Rules) -> RedirectConfig:
    """Build the in-process redirect config from validated rules."""
    r = rules.redirects
    return RedirectConfig(
        enabled=r.enabled,
        default_status=r.default_status,
        reserved_paths=tuple(r.reserved_paths),
        skip_prefixes=tuple(r.skip_prefixes),
        track_hits=r.track_hits,
        async_hits=r.async_hits,
        hit_workers=r.hit_workers,
        export_page_size=r.export_page_size,
        list_per_page=r.list_per_page,
    )
