"""
commission_config -- single public entrypoint for platform configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Other components do not read configuration
    files or environment variables directly.

Architecture position:
    Configuration.  Sits above ``commission_kernel`` and below
    ``commission_batch`` / ``commission_services``.  The kernel never
    imports from ``commission_config``; ``bridges`` translates the loaded
    config into kernel inputs.

Environment:
    COMMISSION_CONFIG  -- path of a YAML file layered over the packaged
                          defaults (used when no explicit path is given).
    DATABASE_URL       -- overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the requested config file does not exist.
    - ``ValueError`` -- unknown sections/keys or unparseable values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from commission_config.loader import load_yaml_file, merge_dicts, parse_config
from commission_config.schema import PlatformConfig

_logger = logging.getLogger("commission_kernel.config")

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "COMMISSION_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> PlatformConfig:
    """The public configuration entrypoint.

    Loads the packaged defaults, layers ``path`` (or the file named by
    ``COMMISSION_CONFIG``) over them, then applies ``DATABASE_URL``.

    Raises:
        FileNotFoundError: If the override file does not exist.
        ValueError: If the configuration fails to parse.
    """
    data = load_yaml_file(DEFAULTS_FILE)
    source = str(DEFAULTS_FILE)

    override = path or os.environ.get(CONFIG_ENV_VAR)
    if override:
        override_path = Path(override)
        if not override_path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {override_path}")
        data = merge_dicts(data, load_yaml_file(override_path))
        source = str(override_path)

    config = parse_config(data, source=source)

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(config, database=replace(config.database, url=database_url))

    _logger.info(
        "config_loaded",
        extra={
            "source": config.source,
            "default_rate": config.commission.default_rate,
            "split_countries": list(config.jurisdiction.split_countries),
            "pacing_seconds": config.settlement.pacing_seconds,
        },
    )
    return config


__all__ = ["PlatformConfig", "get_active_config"]
