"""Configuration management for the FitPlan service."""
import os
from typing import Final, Optional
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Generative text service
OPENAI_API_KEY: Final[Optional[str]] = os.getenv('OPENAI_API_KEY') or None
OPENAI_MODEL: Final[str] = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

# Remote document store (unset -> local JSON file store)
DOCUMENT_STORE_URL: Final[Optional[str]] = os.getenv('DOCUMENT_STORE_URL') or None
DOCUMENT_STORE_TOKEN: Final[Optional[str]] = os.getenv('DOCUMENT_STORE_TOKEN') or None
DOCUMENT_STORE_TIMEOUT: Final[float] = float(os.getenv('DOCUMENT_STORE_TIMEOUT', '10'))

# Application Settings
APP_HOST: Final[str] = os.getenv('APP_HOST', '0.0.0.0')
APP_PORT: Final[int] = int(os.getenv('APP_PORT', '8000'))
DEBUG: Final[bool] = os.getenv('DEBUG', 'False').lower() == 'true'

# Notifications kept for UI polling
NOTIFICATION_BUFFER: Final[int] = int(os.getenv('NOTIFICATION_BUFFER', '300'))

# File Paths
BASE_DIR: Final[Path] = Path(__file__).parent.parent
DATA_DIR: Final[Path] = Path(os.getenv('DATA_DIR', str(BASE_DIR / 'data'))).resolve()
