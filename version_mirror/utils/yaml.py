"""Contains utility functions for working with YAML files."""

from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from version_mirror.configuration.exceptions import MirrorConfigurationError
from version_mirror.schemas.mirror_config import MirrorConfig

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

yaml = YAML(typ="safe")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Loads a YAML file and returns a dictionary."""
    with open(path, encoding="utf-8") as f:
        return yaml.load(f)  # type: ignore[no-any-return]


def create_yaml_dumper() -> YAML:
    """Creates a properly configured YAML object for dumping."""
    yaml_dumper = YAML()
    yaml_dumper.default_flow_style = False
    yaml_dumper.explicit_start = True
    yaml_dumper.indent(mapping=2, sequence=4, offset=2)  # type: ignore[attr-defined]
    yaml_dumper.width = 4096  # Prevent line wrapping for long lines
    return yaml_dumper


def dump_yaml_to_file(data: Any, file_path: Path) -> None:
    """Dumps data to a YAML file."""
    yaml_dumper = create_yaml_dumper()
    with open(file_path, "w", encoding="utf-8") as f:
        yaml_dumper.dump(data, f)  # type: ignore[misc]


def load_mirror_config(path: Path) -> MirrorConfig:
    """Load and validate a mirror configuration file.

    Args:
        path: Path to the .mirror.yaml file.

    Returns:
        The validated MirrorConfig.

    Raises:
        MirrorConfigurationError: If the file is missing, is not valid YAML, or fails validation.
    """
    if not path.is_file():
        raise MirrorConfigurationError(f"Mirror configuration file not found: {path.absolute()}")
    try:
        content = load_yaml_file(path)
    except YAMLError as exc:
        raise MirrorConfigurationError(f"Failed to parse YAML file {path}: {exc}") from exc
    if not isinstance(content, dict):
        raise MirrorConfigurationError(f"Mirror configuration must be a mapping: {path}")
    try:
        config = MirrorConfig.model_validate(content)
    except ValidationError as exc:
        logger.error("Invalid mirror configuration", path=str(path), errors=exc.errors())
        raise MirrorConfigurationError(f"Invalid mirror configuration in {path}: {exc}") from exc
    logger.debug("Loaded mirror configuration", path=str(path), upstream_repo=config.upstream_repo, locale=config.locale)
    return config


def dump_mirror_config(config: MirrorConfig, path: Path) -> None:
    """Write a mirror configuration file, omitting values left at their defaults."""
    data = config.model_dump(mode="json", exclude_defaults=True)
    dump_yaml_to_file(data, path)
