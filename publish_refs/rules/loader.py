from pathlib import Path

import yaml
from pydantic import ValidationError

from publish_refs.rules.models import Rules


def load_rules(path: Path) -> Rules:
    """
    Read rules.yaml into validated Rules.
    Sections left out of the file keep their defaults.
    Raises FileNotFoundError if the file is missing.
    Raises ValueError for broken YAML or values outside the schema.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
