# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Runtime bootstrap for modpack.

The one-time setup every command goes through before doing real work:
  1. Validate the environment (Python version)
  2. Configure logging from the global config and the --log-level flag
  3. Log what we're running on
"""

from pathlib import Path
from typing import Optional

from modpack.config.schema import GlobalConfig
from modpack.logging.logger import configure_logging, get_logger
from modpack.runtime.environment import check_minimum_python, get_system_info


def bootstrap(config: GlobalConfig, project_root: Path, log_level: Optional[str] = None) -> None:
    """
    Run the bootstrap sequence.

    Args:
        config: The validated global configuration.
        project_root: A relative `log_file` in the config is resolved against this.
        log_level: Overrides config.log_level when given (the CLI flag wins).
    """
    check_minimum_python()

    log_file = None
    if config.log_file is not None:
        log_file = project_root / config.log_file

    level = log_level or config.log_level
    configure_logging(level, log_file)

    logger = get_logger("modpack.runtime")
    system_info = get_system_info()
    logger.debug(
        "modpack bootstrap complete",
        extra={
            "python_version": system_info.python_version,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
            "project_root": str(project_root),
        },
    )
