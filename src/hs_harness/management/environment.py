"""Environment variable management utilities.

Loads a local .env file so that workflow inputs can be reproduced outside CI
(``INPUT_HTTPPORT=8448`` and friends).
"""

import logging
from pathlib import Path

from dotenv import load_dotenv


def load_dotenv_if_available(env_file: str | Path = ".env") -> tuple[bool, Path | None]:
    """Load .env file from current directory if it exists.

    Existing environment variables take precedence (override=False).

    Returns:
        Tuple of (success: bool, env_file_path: Path | None)
        - success: True if .env file was loaded, False otherwise
        - env_file_path: Absolute path to .env file if loaded, None otherwise
    """
    logger = logging.getLogger("env")

    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(env_path, override=False)  # Existing env vars take precedence
        return True, env_path.absolute()

    logger.debug(f"No {env_path} file found")
    return False, None
