import logging
import sys
from pathlib import Path

from .config import LOG_DIR, LOG_LEVEL

# Create logs directory if it doesn't exist
logs_dir = Path(LOG_DIR)
logs_dir.mkdir(parents=True, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(logs_dir / "document_service.log")
    ]
)

def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
